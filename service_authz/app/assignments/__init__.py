"""
Assignments package.

An assignment binds one user to one authorization item, optionally with its
own business rule and data. Assignments are the only mutable authorization
facts; every mutation invalidates exactly the cached assignment set of the
affected user.

- models: The Assignment record.
- cache: Per-user assignment sets with request memo and backend caching.
- manager: Assign, revoke, save and bulk clear.
"""
