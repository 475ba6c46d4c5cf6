"""Pydantic schemas for paginated relationship results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ConnectionArguments(BaseModel):
    """Cursor arguments for a plural relationship; hashable so it can key a cache."""

    model_config = ConfigDict(frozen=True)

    first: int | None = Field(default=None, ge=0)
    last: int | None = Field(default=None, ge=0)
    before: str | None = None
    after: str | None = None
    order: str | None = Field(default=None, description="Field to order by, defaults to insertion order.")

    @property
    def is_forward(self) -> bool:
        return self.first is not None or self.after is not None

    @property
    def is_backward(self) -> bool:
        return self.last is not None or self.before is not None

    @property
    def cursor(self) -> str | None:
        return self.after if self.after is not None else self.before


class PageInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_previous_page: bool = Field(default=False, alias="hasPreviousPage")
    has_next_page: bool = Field(default=False, alias="hasNextPage")


class Edge(BaseModel):
    node: dict[str, Any]
    cursor: str


class Connection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    edges: list[Edge] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo, alias="pageInfo")
    count: int = 0
    total_count: int = Field(default=0, alias="totalCount")
