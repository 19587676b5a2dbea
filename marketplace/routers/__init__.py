"""
FastAPI routers grouped by use case (auth, vendors, admin).

Each module exposes an APIRouter included by ``marketplace.app.create_app``.
"""
