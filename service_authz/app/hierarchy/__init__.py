"""
Hierarchy package.

The authorization hierarchy (roles, tasks and operations with their
parent/child edges) is defined in a file and loaded as one immutable
snapshot. It changes only when an operator edits the file and triggers a
reload.

- models: ItemType, AuthItem and HierarchySnapshot with its reverse index.
- loader: File loading, content caching and the load-scoped clear guard.
"""
