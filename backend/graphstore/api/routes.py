"""Health probes."""

from fastapi import APIRouter, Depends

from graphstore.api import deps
from graphstore.services.interface import DatabaseInterface

health_router = APIRouter()


@health_router.get("/", summary="Liveness probe", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Report that the process is serving requests."""

    return {"status": "ok"}


@health_router.get("/ready", summary="Readiness probe", tags=["health"])
async def readiness(
    interface: DatabaseInterface = Depends(deps.get_database_interface),
) -> dict[str, str | int]:
    """Report readiness once the schema has compiled."""

    return {
        "status": "ready",
        "tables": len(interface.schema.tables),
        "relationships": len(interface.relationships),
    }
