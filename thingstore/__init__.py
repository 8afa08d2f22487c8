"""
thingstore: PostgreSQL persistence for groups, profiles, things, connections
and per-group memberships.

Entry points live in ``thingstore.repositories``; engines and sessions are
created through ``thingstore.db``.
"""
