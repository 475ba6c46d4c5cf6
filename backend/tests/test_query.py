from __future__ import annotations

from conftest import POST_AUTHOR, POST_TAGS, TAG_AUTHORS, USER_POSTS, USER_TAGS, blog_schema, relationship, segment
from graphstore.services.query import (
    ColumnRef,
    Condition,
    Join,
    Order,
    Query,
    compact_joins,
    compile_relationship,
    object_key_column,
    query_from_relationship,
    render_query,
    resolved_key_column,
)
from graphstore.services.schema import compile_schema
from graphstore.services.segments import segment_description_map


def _descriptions():
    return compile_schema(blog_schema()).descriptions


def test_singular_foreign_key_held_by_parent() -> None:
    compiled = compile_relationship(_descriptions(), POST_AUTHOR)

    assert compiled.sql == "SELECT users.* FROM users WHERE users.id = ANY($1);"
    assert compiled.object_key_column == "wrote_by_user_id"
    assert compiled.resolved_key_column == "id"
    assert compiled.query.batched is True


def test_plural_foreign_key_held_by_children() -> None:
    compiled = compile_relationship(_descriptions(), USER_POSTS)

    assert compiled.sql == "SELECT posts.* FROM posts WHERE posts.wrote_by_user_id = ANY($1);"
    assert compiled.object_key_column == "id"
    assert compiled.resolved_key_column == "wrote_by_user_id"


def test_single_hop_through_join_table_selects_batch_key() -> None:
    compiled = compile_relationship(_descriptions(), POST_TAGS)

    assert compiled.sql == (
        "SELECT tags.*, post_has_tag_tags.post_id AS batch_key FROM tags"
        " JOIN post_has_tag_tags ON post_has_tag_tags.has_tag_tag_id = tags.id"
        " WHERE post_has_tag_tags.post_id = ANY($1);"
    )
    assert compiled.resolved_key_column == "batch_key"


def test_multi_hop_paths() -> None:
    descriptions = _descriptions()

    assert render_query(query_from_relationship(descriptions, USER_TAGS)) == (
        "SELECT tags.*, posts.wrote_by_user_id AS batch_key FROM tags"
        " JOIN post_has_tag_tags ON post_has_tag_tags.has_tag_tag_id = tags.id"
        " JOIN posts ON posts.id = post_has_tag_tags.post_id"
        " WHERE posts.wrote_by_user_id = ANY($1);"
    )
    assert render_query(query_from_relationship(descriptions, TAG_AUTHORS)) == (
        "SELECT users.*, post_has_tag_tags.has_tag_tag_id AS batch_key FROM users"
        " JOIN posts ON posts.wrote_by_user_id = users.id"
        " JOIN post_has_tag_tags ON post_has_tag_tags.post_id = posts.id"
        " WHERE post_has_tag_tags.has_tag_tag_id = ANY($1);"
    )


def test_two_join_table_hops_compact_to_one_join_per_hop() -> None:
    wrote = segment("Author", "Post", "wrote", "out", "plural")
    has_tag = segment("Post", "Tag", "hasTag", "out", "plural")
    author_tags = relationship("Author", "tags", "plural", wrote, has_tag)
    descriptions = segment_description_map([author_tags])

    sql = render_query(query_from_relationship(descriptions, author_tags))

    assert sql.count(" JOIN ") == 2
    assert sql.count("= ANY($1)") == 1
    assert " WHERE author_wrote_posts.author_id = ANY($1)" in sql
    assert sql == (
        "SELECT tags.*, author_wrote_posts.author_id AS batch_key FROM tags"
        " JOIN post_has_tag_tags ON post_has_tag_tags.has_tag_tag_id = tags.id"
        " JOIN author_wrote_posts ON author_wrote_posts.wrote_post_id = post_has_tag_tags.post_id"
        " WHERE author_wrote_posts.author_id = ANY($1);"
    )


def test_compact_joins_is_idempotent() -> None:
    chain = [
        Join("t1", left=ColumnRef("a", "x"), right=ColumnRef("root", "id")),
        Join("t2", left=ColumnRef("b", "y"), right=ColumnRef("a", "x")),
        Join("t3", left=ColumnRef("c", "z"), right=ColumnRef("b", "y")),
        Join("t4", left=ColumnRef("d", "id"), right=ColumnRef("t3", "other")),
    ]

    compacted = compact_joins(chain)

    assert compacted == [
        Join("t3", left=ColumnRef("c", "z"), right=ColumnRef("root", "id")),
        Join("t4", left=ColumnRef("d", "id"), right=ColumnRef("t3", "other")),
    ]
    assert compact_joins(compacted) == compacted


def test_compact_joins_leaves_unrelated_joins() -> None:
    joins = [
        Join("posts", left=ColumnRef("posts", "id"), right=ColumnRef("users", "post_id")),
        Join("tags", left=ColumnRef("tags", "id"), right=ColumnRef("posts", "tag_id")),
    ]

    assert compact_joins(joins) == joins
    assert compact_joins([]) == []


def test_key_columns() -> None:
    descriptions = _descriptions()
    query = query_from_relationship(descriptions, USER_POSTS)

    assert object_key_column(descriptions, POST_AUTHOR) == "wrote_by_user_id"
    assert object_key_column(descriptions, USER_TAGS) == "id"
    assert resolved_key_column(query) == "wrote_by_user_id"


def test_render_query_clause_order() -> None:
    query = Query(
        table="posts",
        joins=(Join("users", left=ColumnRef("users", "id"), right=ColumnRef("posts", "author_id")),),
        conditions=(
            Condition("users", "id", "=", "ANY($1)"),
            Condition("posts", "seq", ">", "(SELECT seq FROM posts WHERE id = $2)"),
        ),
        limit=10,
        order=Order("seq", "DESC"),
    )

    assert render_query(query) == (
        "SELECT posts.* FROM posts JOIN users ON users.id = posts.author_id"
        " WHERE users.id = ANY($1) AND posts.seq > (SELECT seq FROM posts WHERE id = $2)"
        " ORDER BY posts.seq DESC LIMIT 10;"
    )
