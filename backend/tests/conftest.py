"""Shared schema fixtures and executor stubs."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pytest

from graphstore.models.definitions import (
    EntityDefinition,
    FieldDefinition,
    Relationship,
    RelationshipSegment,
    SchemaInfo,
)


def segment(
    from_type: str,
    to_type: str,
    label: str,
    direction: str,
    cardinality: str = "singular",
    non_null: bool = False,
) -> RelationshipSegment:
    return RelationshipSegment(
        from_type=from_type,
        to_type=to_type,
        label=label,
        direction=direction,
        cardinality=cardinality,
        non_null=non_null,
    )


def relationship(type_name: str, field_name: str, cardinality: str, *path: RelationshipSegment) -> Relationship:
    return Relationship(type_name=type_name, field_name=field_name, cardinality=cardinality, path=path)


def field(name: str, type_: str, *directives: str, non_null: bool = False, is_list: bool = False) -> FieldDefinition:
    return FieldDefinition(name=name, type=type_, non_null=non_null, is_list=is_list, directives=frozenset(directives))


WROTE_OUT = segment("User", "Post", "wrote", "out", "plural")
WROTE_IN = segment("Post", "User", "wrote", "in", "singular", non_null=True)
HAS_TAG_OUT = segment("Post", "Tag", "hasTag", "out", "plural")
HAS_TAG_IN = segment("Tag", "Post", "hasTag", "in", "plural")

USER_POSTS = relationship("User", "posts", "plural", WROTE_OUT)
POST_AUTHOR = relationship("Post", "author", "singular", WROTE_IN)
POST_TAGS = relationship("Post", "tags", "plural", HAS_TAG_OUT)
TAG_POSTS = relationship("Tag", "posts", "plural", HAS_TAG_IN)
USER_TAGS = relationship("User", "tags", "plural", WROTE_OUT, HAS_TAG_OUT)
TAG_AUTHORS = relationship("Tag", "authors", "plural", HAS_TAG_IN, WROTE_IN)


def blog_schema() -> SchemaInfo:
    return SchemaInfo(
        entities=(
            EntityDefinition(
                name="User",
                fields=(
                    field("id", "ID", non_null=True),
                    field("name", "String", non_null=True),
                    field("email", "String", "unique"),
                    field("posts", "Post", "relationship", is_list=True),
                ),
            ),
            EntityDefinition(
                name="Post",
                fields=(
                    field("id", "ID", non_null=True),
                    field("title", "String", non_null=True),
                    field("publishedAt", "Date", "index"),
                    field("keywords", "String", is_list=True),
                    field("excerpt", "String", "virtual"),
                    field("author", "User", "relationship", non_null=True),
                    field("tags", "Tag", "relationship", is_list=True),
                ),
            ),
            EntityDefinition(
                name="Tag",
                fields=(
                    field("id", "ID", non_null=True),
                    field("name", "String", "index", non_null=True),
                    field("posts", "Post", "relationship", is_list=True),
                ),
            ),
        ),
        relationships=(USER_POSTS, POST_AUTHOR, POST_TAGS, TAG_POSTS, USER_TAGS, TAG_AUTHORS),
    )


class RecordingExecutor:
    """Async executor stub recording every statement it receives."""

    def __init__(self, handler: Callable[[str, Sequence[Any]], list[dict[str, Any]]] | None = None) -> None:
        self._handler = handler
        self.calls: list[tuple[str, list[Any]]] = []

    async def execute(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        self.calls.append((sql, list(params)))
        if self._handler is None:
            return []
        return self._handler(sql, params)


@pytest.fixture
def schema_info() -> SchemaInfo:
    return blog_schema()
