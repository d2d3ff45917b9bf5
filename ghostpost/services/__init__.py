"""
Use cases for the Ghost Post core.

Each service module orchestrates the repository to implement business rules
(resolve a session, suspend a member, select a site, walk a registration).
Routers call these services instead of manipulating the database directly,
and pass the resolved ``Identity`` into every call.
"""
