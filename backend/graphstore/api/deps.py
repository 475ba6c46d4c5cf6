"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from functools import lru_cache

from fastapi import Depends

from graphstore.core.config import AppSettings, get_settings
from graphstore.core.db import get_executor
from graphstore.services.interface import DatabaseInterface, build_database_interface, load_schema_info
from graphstore.services.loaders import RequestLoaders


def get_app_settings() -> AppSettings:
    """Expose application settings as a dependency."""

    return get_settings()


@lru_cache
def _interface_for(schema_path: str) -> DatabaseInterface:
    return build_database_interface(load_schema_info(schema_path), get_executor())


def get_database_interface(
    settings: AppSettings = Depends(get_app_settings),
) -> DatabaseInterface:
    """Compiled interface for the configured schema, built on first use."""

    return _interface_for(settings.schema_path)


async def get_request_loaders(
    interface: DatabaseInterface = Depends(get_database_interface),
) -> AsyncIterator[RequestLoaders]:
    """Loaders scoped to the current request, closed when it finishes."""

    async with interface.create_loaders() as loaders:
        yield loaders
