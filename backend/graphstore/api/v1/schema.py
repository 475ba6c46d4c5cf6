"""Compiled schema introspection endpoints."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends

from graphstore.api import deps
from graphstore.services.interface import DatabaseInterface
from graphstore.services.schema import render_ddl

router = APIRouter()


@router.get("", summary="Tables, indices and relationship storage derived from the schema.")
async def describe_schema(
    interface: DatabaseInterface = Depends(deps.get_database_interface),
) -> dict[str, Any]:
    schema = interface.schema
    return {
        "extensions": list(schema.extensions),
        "tables": [asdict(table) for table in schema.tables],
        "indices": [{"table": index.table, "columns": list(index.columns)} for index in schema.indices],
        "relationships": {
            signature: {"kind": description.kind, "storage": asdict(description.storage)}
            for signature, description in interface.descriptions.items()
        },
    }


@router.get("/ddl", summary="PostgreSQL DDL for the compiled schema.")
async def schema_ddl(
    interface: DatabaseInterface = Depends(deps.get_database_interface),
) -> dict[str, list[str]]:
    return {"statements": render_ddl(interface.schema)}
