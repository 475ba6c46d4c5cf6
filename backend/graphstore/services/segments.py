"""Storage decisions for relationship segments.

A relationship can be declared from either of its endpoints. Every segment is
first reduced to its pairing signature, the ``out`` form of the edge, and the
storage (foreign key or join table) is decided once per signature. Nothing in
here branches on which endpoint happened to declare the edge.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from graphstore.core.errors import InvariantViolation, invariant
from graphstore.models.definitions import Relationship, RelationshipSegment
from graphstore.models.tables import (
    ForeignKeyDescription,
    JoinTableDescription,
    RelationshipSegmentDescription,
    RelationshipSegmentPair,
)

from .naming import snake, table_name_from_type_name

DescriptionMap = Mapping[str, RelationshipSegmentDescription]


def flattened_unique_segments(relationships: Iterable[Relationship]) -> list[RelationshipSegment]:
    """Every distinct hop across all relationship paths.

    Hops are keyed by identity signature. A non-null hop replaces a nullable
    one seen earlier; otherwise the first occurrence is kept.
    """

    segment_map: dict[str, RelationshipSegment] = {}
    for relationship in relationships:
        for segment in relationship.path:
            signature = segment.identity_signature
            existing = segment_map.get(signature)
            if existing is None or (segment.non_null and not existing.non_null):
                segment_map[signature] = segment

    return list(segment_map.values())


def segment_pairs(segments: Iterable[RelationshipSegment]) -> dict[str, RelationshipSegmentPair]:
    """Group segments into ``{in, out}`` pairs by pairing signature."""

    grouped: dict[str, dict[str, RelationshipSegment]] = {}
    for segment in segments:
        slots = grouped.setdefault(segment.pairing_signature, {})
        existing = slots.get(segment.direction)
        if existing is not None and existing != segment:
            raise InvariantViolation(
                f"conflicting {segment.direction} segments for relationship {segment.pairing_signature}"
            )
        slots[segment.direction] = segment

    return {
        signature: RelationshipSegmentPair(in_=slots.get("in"), out=slots.get("out"))
        for signature, slots in grouped.items()
    }


def segment_pair_requires_join_table(pair: RelationshipSegmentPair) -> bool:
    # an undeclared side could hold many rows, so it counts as plural
    return (pair.in_ is None or pair.in_.is_plural) and (pair.out is None or pair.out.is_plural)


def join_table_description(pair: RelationshipSegmentPair) -> JoinTableDescription:
    left = (pair.out and pair.out.from_type) or (pair.in_ and pair.in_.to_type)
    right = (pair.out and pair.out.to_type) or (pair.in_ and pair.in_.from_type)
    label = (pair.out and pair.out.label) or (pair.in_ and pair.in_.label)

    invariant(left and right and label, "relationship segment pair must have at least one segment")

    return JoinTableDescription(
        name=table_name_from_type_name(f"{left}_{label}_{right}"),
        left_table_name=table_name_from_type_name(left),
        right_table_name=table_name_from_type_name(right),
        left_column_name=snake(f"{left}_id"),
        right_column_name=snake(f"{label}_{right}_id"),
    )


def _key_holder(pair: RelationshipSegmentPair) -> RelationshipSegment:
    """The segment whose ``from_type`` table stores the foreign key."""

    if pair.in_ is None or pair.out is None:
        holder = pair.in_ or pair.out
        invariant(holder is not None, "relationship segment pair must have at least one segment")
        return holder

    if pair.in_.is_plural or (pair.out.non_null and not pair.in_.non_null):
        return pair.out
    return pair.in_


def foreign_key_description(pair: RelationshipSegmentPair) -> ForeignKeyDescription:
    invariant(
        not segment_pair_requires_join_table(pair),
        "relationship segment pair requires a join table, not a foreign key",
    )
    holder = _key_holder(pair)
    invariant(not holder.is_plural, "foreign key holder segment must be singular")

    # walking from the referenced type back to the holder is the reverse hop
    direction = "out" if holder.direction == "in" else "in"
    referenced = holder.to_type
    column = f"{holder.label}_{referenced}_id" if direction == "in" else f"{holder.label}_by_{referenced}_id"

    return ForeignKeyDescription(
        direction=direction,
        table=table_name_from_type_name(holder.from_type),
        referenced_table=table_name_from_type_name(referenced),
        column=snake(column),
        non_null=holder.non_null,
    )


def describe_pair(signature: str, pair: RelationshipSegmentPair) -> RelationshipSegmentDescription:
    if segment_pair_requires_join_table(pair):
        return RelationshipSegmentDescription(
            kind="join",
            signature=signature,
            pair=pair,
            storage=join_table_description(pair),
        )
    return RelationshipSegmentDescription(
        kind="foreignKey",
        signature=signature,
        pair=pair,
        storage=foreign_key_description(pair),
    )


def segment_descriptions(relationships: Iterable[Relationship]) -> list[RelationshipSegmentDescription]:
    pairs = segment_pairs(flattened_unique_segments(relationships))
    return [describe_pair(signature, pair) for signature, pair in pairs.items()]


def segment_description_map(relationships: Iterable[Relationship]) -> dict[str, RelationshipSegmentDescription]:
    return {description.signature: description for description in segment_descriptions(relationships)}


def description_for_segment(
    descriptions: DescriptionMap,
    segment: RelationshipSegment,
) -> RelationshipSegmentDescription:
    description = descriptions.get(segment.pairing_signature)
    if description is None:
        raise InvariantViolation(f"no storage description for relationship {segment.pairing_signature}")
    return description
