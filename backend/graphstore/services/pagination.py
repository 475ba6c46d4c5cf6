"""Cursor pagination applied on top of a compiled relationship query."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import replace
from typing import Any

from graphstore.core.errors import PaginationError
from graphstore.models.connection import ConnectionArguments

from .naming import snake
from .query import Condition, Order, Query

DEFAULT_ORDER_COLUMN = "seq"
CURSOR_PLACEHOLDER = "$2"


def order_column(args: ConnectionArguments, columns: Collection[str]) -> str:
    """Column named by ``args.order``; it must be one of ``columns``."""

    if args.order is None:
        return DEFAULT_ORDER_COLUMN

    column = snake(args.order)
    if column not in columns:
        raise PaginationError(f"cannot order by unknown field `{args.order}`")
    return column


def validate_connection_args(args: ConnectionArguments, columns: Collection[str]) -> None:
    # mixing both directions has no single ORDER BY / LIMIT translation
    if args.is_forward and args.is_backward:
        raise PaginationError("forward and reverse pagination arguments should not be combined")
    order_column(args, columns)


def apply_connection_args(query: Query, args: ConnectionArguments, columns: Collection[str]) -> Query:
    """Return a copy of ``query`` ordered, bounded and limited per ``args``.

    ``columns`` are the columns of ``query.table``; the order field is checked
    against them before it reaches the statement text.
    """

    validate_connection_args(args, columns)

    table = query.table
    column = order_column(args, columns)
    conditions = query.conditions

    if args.cursor is not None:
        operator = ">" if args.after is not None else "<"
        value = f"(SELECT {column} FROM {table} WHERE id = {CURSOR_PLACEHOLDER})"
        conditions = conditions + (Condition(table, column, operator, value),)

    return replace(
        query,
        conditions=conditions,
        limit=args.first if args.first is not None else args.last,
        order=Order(column=column, direction="DESC" if args.is_backward else "ASC"),
    )


def connection_params(key: Any, args: ConnectionArguments) -> list[Any]:
    """Bound values for a paginated query loading a single key."""

    params: list[Any] = [[key]]
    if args.cursor is not None:
        params.append(args.cursor)
    return params
