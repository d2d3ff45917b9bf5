"""
Persistence adapters.

Services depend on the repository instead of touching SQLAlchemy sessions
directly; every query used by the core lives in ``SQLRepository``.
"""
