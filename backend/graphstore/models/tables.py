"""Relational schema produced by the schema compiler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from .definitions import RelationshipSegment


class ColumnType(str, Enum):
    UUID = "uuid"
    TEXT = "text"
    INTEGER = "integer"
    FLOAT = "double precision"
    TIMESTAMP = "timestamp without time zone"
    MONEY = "money"
    # opaque structured storage for list fields and scalars without a mapping
    JSONB = "jsonb"
    SERIAL = "SERIAL"


@dataclass(frozen=True, slots=True)
class ColumnReference:
    table: str
    column: str


@dataclass(slots=True)
class Column:
    name: str
    type: ColumnType
    primary_key: bool = False
    non_null: bool = False
    unique: bool = False
    default_value: str | None = None
    references: ColumnReference | None = None


@dataclass(frozen=True, slots=True)
class Constraint:
    kind: Literal["UNIQUE"]
    columns: tuple[str, ...]


@dataclass(slots=True)
class Table:
    name: str
    columns: list[Column] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)

    def column(self, name: str) -> Column | None:
        return next((column for column in self.columns if column.name == name), None)


@dataclass(frozen=True, slots=True)
class Index:
    table: str
    columns: tuple[str, ...]

    @property
    def name(self) -> str:
        return f"{self.table}_{'_'.join(self.columns)}_idx"


@dataclass(slots=True)
class DatabaseSchema:
    tables: list[Table] = field(default_factory=list)
    indices: list[Index] = field(default_factory=list)
    extensions: tuple[str, ...] = ("pgcrypto",)

    def table(self, name: str) -> Table | None:
        return next((table for table in self.tables if table.name == name), None)


@dataclass(frozen=True, slots=True)
class RelationshipSegmentPair:
    in_: RelationshipSegment | None = None
    out: RelationshipSegment | None = None


@dataclass(frozen=True, slots=True)
class ForeignKeyDescription:
    """A key column on ``table`` pointing at ``referenced_table.id``.

    ``direction`` is the direction of a segment that walks from the
    referenced table to the owning table.
    """

    direction: Literal["in", "out"]
    table: str
    referenced_table: str
    column: str
    non_null: bool


@dataclass(frozen=True, slots=True)
class JoinTableDescription:
    name: str
    left_table_name: str
    right_table_name: str
    left_column_name: str
    right_column_name: str


@dataclass(frozen=True, slots=True)
class RelationshipSegmentDescription:
    kind: Literal["join", "foreignKey"]
    signature: str
    pair: RelationshipSegmentPair
    storage: ForeignKeyDescription | JoinTableDescription

    @property
    def is_join_table(self) -> bool:
        return self.kind == "join"
