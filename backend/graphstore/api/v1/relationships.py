"""Relationship statement preview and resolution endpoints."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from graphstore.api import deps
from graphstore.core.errors import ConfigurationError, UnknownRelationshipError
from graphstore.core.logging import get_logger
from graphstore.models.api import ResolveRequest, ResolveResponse, StatementResponse
from graphstore.models.connection import ConnectionArguments
from graphstore.services.interface import DatabaseInterface
from graphstore.services.loaders import RequestLoaders
from graphstore.services.pagination import apply_connection_args
from graphstore.services.query import CompiledRelationship, render_query

logger = get_logger(__name__)

router = APIRouter()


def _lookup(interface: DatabaseInterface, type_name: str, field_name: str) -> CompiledRelationship:
    try:
        return interface.relationship(type_name, field_name)
    except UnknownRelationshipError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get(
    "/{type_name}/{field_name}/sql",
    response_model=StatementResponse,
    summary="Show the statement used to load a relationship.",
)
async def relationship_sql(
    type_name: str,
    field_name: str,
    first: int | None = Query(default=None, ge=0),
    last: int | None = Query(default=None, ge=0),
    before: str | None = None,
    after: str | None = None,
    order: str | None = None,
    interface: DatabaseInterface = Depends(deps.get_database_interface),
) -> StatementResponse:
    compiled = _lookup(interface, type_name, field_name)
    args = ConnectionArguments(first=first, last=last, before=before, after=after, order=order)

    sql = compiled.sql
    if not compiled.is_singular and args != ConnectionArguments():
        try:
            sql = render_query(apply_connection_args(compiled.query, args, compiled.columns))
        except ConfigurationError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return StatementResponse(
        relationship=compiled.name,
        cardinality=compiled.relationship.cardinality,
        sql=sql,
        object_key_column=compiled.object_key_column,
        resolved_key_column=compiled.resolved_key_column,
    )


@router.post(
    "/{type_name}/{field_name}/resolve",
    response_model=ResolveResponse,
    response_model_by_alias=True,
    summary="Resolve a relationship for a list of parent rows.",
)
async def resolve_relationship(
    type_name: str,
    field_name: str,
    request: ResolveRequest,
    interface: DatabaseInterface = Depends(deps.get_database_interface),
    loaders: RequestLoaders = Depends(deps.get_request_loaders),
) -> ResolveResponse:
    compiled = _lookup(interface, type_name, field_name)

    try:
        results = await asyncio.gather(
            *(interface.resolve(loaders, compiled, parent, request.args) for parent in request.parents)
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.error("relationship.resolve_failed", relationship=compiled.name, error=str(exc))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Statement execution failed.") from exc

    return ResolveResponse(relationship=compiled.name, results=list(results))
