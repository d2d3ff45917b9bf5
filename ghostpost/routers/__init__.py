"""
FastAPI routers grouped by domain (members, users, sites, registration, slug).

Each module exposes an APIRouter included by ``ghostpost.app``. Endpoints
resolve the caller once through ``dependencies.require_identity`` and hand
the Identity to the services.
"""
