"""Pydantic schemas for the HTTP surface."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .connection import Connection, ConnectionArguments


class StatementResponse(BaseModel):
    relationship: str = Field(..., description="Type.field of the compiled relationship.")
    cardinality: str
    sql: str = Field(..., description="Statement text with positional placeholders.")
    object_key_column: str = Field(..., description="Parent attribute bound as $1.")
    resolved_key_column: str = Field(..., description="Result column identifying the input key.")


class ResolveRequest(BaseModel):
    parents: list[dict[str, Any]] = Field(..., description="Parent rows the relationship is resolved for.")
    args: ConnectionArguments | None = Field(default=None, description="Connection arguments for plural relationships.")


class ResolveResponse(BaseModel):
    relationship: str
    results: list[dict[str, Any] | Connection | None]
