"""
Persistence package for authorization assignments.

- base: The store surface consumed by the core.
- postgres: asyncpg-backed store over the assignment table.
- memory: In-process store with the same row encoding.
- codec: JSON encoding of the business rule and data columns.
"""
