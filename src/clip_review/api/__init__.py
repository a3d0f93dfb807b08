"""HTTP surface (FastAPI application, dependencies, and routers)."""
