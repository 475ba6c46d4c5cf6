"""Relationship paths compiled to SQL.

Only the small subset of SQL needed for relationship traversal is modelled:
one selected table, inner joins on column equality, ``AND``-ed conditions,
an optional order and an optional limit.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from graphstore.models.definitions import Relationship, RelationshipSegment
from graphstore.models.tables import DatabaseSchema, ForeignKeyDescription, JoinTableDescription

from .naming import table_name_from_type_name
from .segments import DescriptionMap, description_for_segment

KEY_ALIAS = "batch_key"
BATCH_VALUE = "ANY($1)"


@dataclass(frozen=True, slots=True)
class ColumnRef:
    table: str
    column: str

    def __str__(self) -> str:
        return f"{self.table}.{self.column}"


@dataclass(frozen=True, slots=True)
class Join:
    table: str
    left: ColumnRef
    right: ColumnRef


@dataclass(frozen=True, slots=True)
class Condition:
    table: str
    column: str
    operator: str
    value: str


@dataclass(frozen=True, slots=True)
class Order:
    column: str
    direction: Literal["ASC", "DESC"] = "ASC"


@dataclass(frozen=True, slots=True)
class Query:
    table: str
    joins: tuple[Join, ...] = ()
    conditions: tuple[Condition, ...] = ()
    limit: int | None = None
    order: Order | None = None
    batched: bool = True
    # input key column when it does not live on ``table``
    key: ColumnRef | None = None


def condition_from_segment(descriptions: DescriptionMap, segment: RelationshipSegment) -> Condition:
    """WHERE clause comparing the first hop's key column with the batch."""

    storage = description_for_segment(descriptions, segment).storage

    if isinstance(storage, ForeignKeyDescription):
        if segment.direction == storage.direction:
            return Condition(storage.table, storage.column, "=", BATCH_VALUE)
        return Condition(storage.referenced_table, "id", "=", BATCH_VALUE)

    if segment.direction == "in":
        return Condition(storage.name, storage.right_column_name, "=", BATCH_VALUE)
    return Condition(storage.name, storage.left_column_name, "=", BATCH_VALUE)


def _foreign_key_join(segment: RelationshipSegment, storage: ForeignKeyDescription) -> Join:
    owning = ColumnRef(storage.table, storage.column)
    referenced = ColumnRef(storage.referenced_table, "id")
    if segment.direction == storage.direction:
        # the hop ends on the owning table, walk back to the referenced one
        return Join(storage.referenced_table, left=referenced, right=owning)
    return Join(storage.table, left=owning, right=referenced)


def _join_table_joins(segment: RelationshipSegment, storage: JoinTableDescription) -> list[Join]:
    left_id = ColumnRef(storage.left_table_name, "id")
    right_id = ColumnRef(storage.right_table_name, "id")
    left_key = ColumnRef(storage.name, storage.left_column_name)
    right_key = ColumnRef(storage.name, storage.right_column_name)

    if segment.direction == "in":
        # the hop ends on the left table
        return [
            Join(storage.name, left=left_key, right=left_id),
            Join(storage.right_table_name, left=right_id, right=right_key),
        ]
    return [
        Join(storage.name, left=right_key, right=right_id),
        Join(storage.left_table_name, left=left_id, right=left_key),
    ]


def joins_from_segments(descriptions: DescriptionMap, segments: Sequence[RelationshipSegment]) -> list[Join]:
    """Joins for every hop, walked from the far end back towards the start."""

    joins: list[Join] = []
    for segment in reversed(segments):
        storage = description_for_segment(descriptions, segment).storage
        if isinstance(storage, ForeignKeyDescription):
            joins.append(_foreign_key_join(segment, storage))
        else:
            joins.extend(_join_table_joins(segment, storage))
    return joins


def joins_from_initial_segment(descriptions: DescriptionMap, segment: RelationshipSegment) -> list[Join]:
    """The first hop only needs its join table; the batch condition anchors it."""

    storage = description_for_segment(descriptions, segment).storage
    if isinstance(storage, ForeignKeyDescription):
        return []
    return _join_table_joins(segment, storage)[:1]


def joins_from_path(descriptions: DescriptionMap, path: Sequence[RelationshipSegment]) -> list[Join]:
    return joins_from_segments(descriptions, path[1:]) + joins_from_initial_segment(descriptions, path[0])


def _compact_once(joins: Sequence[Join]) -> list[Join]:
    compacted: list[Join] = []
    index = 0
    while index < len(joins):
        join = joins[index]
        following = joins[index + 1] if index + 1 < len(joins) else None
        if following is not None and join.left == following.right:
            compacted.append(Join(following.table, left=following.left, right=join.right))
            index += 2
        else:
            compacted.append(join)
            index += 1
    return compacted


def compact_joins(joins: Sequence[Join]) -> list[Join]:
    """Drop bridge tables that only connect their two neighbouring joins.

    A join whose left side is exactly the right side of the next join is
    merged with it. Passes repeat until nothing changes.
    """

    current = list(joins)
    while True:
        compacted = _compact_once(current)
        if compacted == current:
            return compacted
        current = compacted


def query_from_relationship(descriptions: DescriptionMap, relationship: Relationship) -> Query:
    initial = relationship.path[0]
    table = table_name_from_type_name(relationship.target_type)
    condition = condition_from_segment(descriptions, initial)

    key = None
    if condition.table != table:
        key = ColumnRef(condition.table, condition.column)

    return Query(
        table=table,
        joins=tuple(compact_joins(joins_from_path(descriptions, relationship.path))),
        conditions=(condition,),
        batched=True,
        key=key,
    )


def object_key_column(descriptions: DescriptionMap, relationship: Relationship) -> str:
    """Attribute of the parent row that is fed to the relationship loader."""

    segment = relationship.path[0]
    storage = description_for_segment(descriptions, segment).storage
    if isinstance(storage, ForeignKeyDescription) and storage.direction != segment.direction:
        return storage.column
    return "id"


def resolved_key_column(query: Query) -> str:
    """Column of each result row holding the input key it was loaded for."""

    if query.key is not None:
        return KEY_ALIAS
    return query.conditions[0].column


def render_query(query: Query) -> str:
    """Literal statement text for ``query``; placeholders come from conditions."""

    selection = f"{query.table}.*"
    if query.key is not None:
        selection += f", {query.key} AS {KEY_ALIAS}"

    parts = [f"SELECT {selection} FROM {query.table}"]
    parts.extend(f" JOIN {join.table} ON {join.left} = {join.right}" for join in query.joins)

    if query.conditions:
        rendered = " AND ".join(
            f"{condition.table}.{condition.column} {condition.operator} {condition.value}"
            for condition in query.conditions
        )
        parts.append(f" WHERE {rendered}")

    if query.order is not None:
        parts.append(f" ORDER BY {query.table}.{query.order.column} {query.order.direction}")

    if query.limit is not None:
        parts.append(f" LIMIT {query.limit}")

    return "".join(parts) + ";"


@dataclass(frozen=True, slots=True)
class CompiledRelationship:
    """Everything needed to load one relationship, computed once per process."""

    relationship: Relationship
    query: Query
    sql: str
    object_key_column: str
    resolved_key_column: str
    # columns of the target table, the only valid order fields
    columns: frozenset[str] = frozenset()

    @property
    def name(self) -> str:
        return f"{self.relationship.type_name}.{self.relationship.field_name}"

    @property
    def is_singular(self) -> bool:
        return self.relationship.cardinality == "singular"


def compile_relationship(
    descriptions: DescriptionMap,
    relationship: Relationship,
    schema: DatabaseSchema | None = None,
) -> CompiledRelationship:
    query = query_from_relationship(descriptions, relationship)
    table = schema.table(query.table) if schema is not None else None
    return CompiledRelationship(
        relationship=relationship,
        query=query,
        sql=render_query(query),
        object_key_column=object_key_column(descriptions, relationship),
        resolved_key_column=resolved_key_column(query),
        columns=frozenset(column.name for column in table.columns) if table is not None else frozenset(),
    )
