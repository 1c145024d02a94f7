"""
Access check package.

Implements the access check: walk the hierarchy upwards from the requested
item, consulting default roles, the user's assignments and business rules at
each node. Evaluation reads one hierarchy snapshot and one assignment set
and performs no writes.
"""
