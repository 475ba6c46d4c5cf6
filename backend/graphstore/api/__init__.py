"""API routers for the graph store service."""

from fastapi import APIRouter

from .routes import health_router
from .v1 import relationships, schema

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(schema.router, prefix="/schema", tags=["schema"])
api_router.include_router(relationships.router, prefix="/relationships", tags=["relationships"])

__all__ = ["api_router"]
