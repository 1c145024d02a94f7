"""
Cache package for the Authorization Service.

Provides key-value cache backends used for two things: per-user assignment
sets (see app.assignments.cache) and the parsed hierarchy file (see
app.hierarchy.loader).

- base: The surface the core consumes.
- redis_cache: Redis backend shared between service processes.
- memory: In-process backend.
- dependency: Entry envelopes and file-change invalidation.
"""
