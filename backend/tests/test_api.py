import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import RecordingExecutor, blog_schema
from graphstore.api import deps
from graphstore.main import create_app
from graphstore.services.interface import build_database_interface


def _rows(sql, params):
    if sql.startswith("SELECT users.*"):
        return [{"seq": 1, "id": key, "name": key.upper()} for key in params[0]]
    return [{"seq": index, "id": f"p{index}", "wrote_by_user_id": params[0][0]} for index in (1, 2)]


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor(_rows)


@pytest.fixture
def client(executor) -> TestClient:
    app = create_app()
    interface = build_database_interface(blog_schema(), executor)
    app.dependency_overrides[deps.get_database_interface] = lambda: interface
    return TestClient(app)


def test_describe_schema(client) -> None:
    response = client.get("/v1/schema")

    assert response.status_code == 200
    payload = response.json()
    assert payload["extensions"] == ["pgcrypto"]
    assert [table["name"] for table in payload["tables"]] == ["users", "posts", "tags", "post_has_tag_tags"]
    assert payload["relationships"]["Post|hasTag|Tag"]["kind"] == "join"
    assert payload["relationships"]["User|wrote|Post"]["storage"]["column"] == "wrote_by_user_id"


def test_schema_ddl(client) -> None:
    statements = client.get("/v1/schema/ddl").json()["statements"]

    assert statements[0] == "CREATE EXTENSION IF NOT EXISTS pgcrypto"
    assert any(statement.startswith("CREATE TABLE post_has_tag_tags") for statement in statements)


def test_relationship_sql(client) -> None:
    response = client.get("/v1/relationships/Post/author/sql")

    assert response.status_code == 200
    assert response.json() == {
        "relationship": "Post.author",
        "cardinality": "singular",
        "sql": "SELECT users.* FROM users WHERE users.id = ANY($1);",
        "object_key_column": "wrote_by_user_id",
        "resolved_key_column": "id",
    }


def test_relationship_sql_with_pagination(client) -> None:
    response = client.get("/v1/relationships/User/posts/sql", params={"first": 2, "after": "p1"})

    sql = response.json()["sql"]
    assert "posts.seq > (SELECT seq FROM posts WHERE id = $2)" in sql
    assert sql.endswith("LIMIT 2;")


def test_relationship_sql_errors(client) -> None:
    assert client.get("/v1/relationships/Post/title/sql").status_code == 404
    assert client.get("/v1/relationships/User/posts/sql", params={"first": 1, "last": 1}).status_code == 400


def test_resolve_singular_batches_parents(client, executor) -> None:
    parents = [
        {"id": "p1", "wrote_by_user_id": "u1"},
        {"id": "p2", "wrote_by_user_id": "u2"},
        {"id": "p3", "wrote_by_user_id": "u1"},
        {"id": "p4", "wrote_by_user_id": None},
    ]

    response = client.post("/v1/relationships/Post/author/resolve", json={"parents": parents})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [result and result["id"] for result in results] == ["u1", "u2", "u1", None]
    assert len(executor.calls) == 1
    assert executor.calls[0][1] == [["u1", "u2"]]


def test_resolve_plural_returns_connections(client) -> None:
    response = client.post(
        "/v1/relationships/User/posts/resolve",
        json={"parents": [{"id": "u1"}], "args": {"first": 1}},
    )

    assert response.status_code == 200
    connection = response.json()["results"][0]
    assert [edge["cursor"] for edge in connection["edges"]] == ["p1"]
    assert connection["pageInfo"] == {"hasPreviousPage": False, "hasNextPage": True}
    assert connection["totalCount"] == 1


def test_resolve_rejects_mixed_arguments(client, executor) -> None:
    response = client.post(
        "/v1/relationships/User/posts/resolve",
        json={"parents": [{"id": "u1"}], "args": {"first": 1, "last": 1}},
    )

    assert response.status_code == 400
    assert executor.calls == []


def test_resolve_reports_statement_failures() -> None:
    def failing(sql, params):
        raise OperationalError(sql, params, Exception("connection refused"))

    app = create_app()
    interface = build_database_interface(blog_schema(), RecordingExecutor(failing))
    app.dependency_overrides[deps.get_database_interface] = lambda: interface

    response = TestClient(app).post("/v1/relationships/Post/author/resolve", json={"parents": [{"wrote_by_user_id": "u1"}]})

    assert response.status_code == 502


def test_unknown_order_field_is_rejected_before_any_statement(client, executor) -> None:
    sql_response = client.get("/v1/relationships/User/posts/sql", params={"first": 1, "order": "seq; DROP TABLE users"})
    resolve_response = client.post(
        "/v1/relationships/User/posts/resolve",
        json={"parents": [{"id": "u1"}], "args": {"first": 1, "order": "rating"}},
    )

    assert sql_response.status_code == 400
    assert resolve_response.status_code == 400
    assert executor.calls == []


def test_order_by_known_field(client) -> None:
    response = client.get("/v1/relationships/User/posts/sql", params={"first": 1, "order": "publishedAt"})

    assert response.status_code == 200
    assert response.json()["sql"].endswith("ORDER BY posts.published_at ASC LIMIT 1;")
