import pytest
from typer.testing import CliRunner

from conftest import blog_schema
from graphstore.cli import app

runner = CliRunner()


@pytest.fixture
def schema_path(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(blog_schema().model_dump_json(by_alias=True), encoding="utf-8")
    return path


def test_ddl_prints_statements(schema_path) -> None:
    result = runner.invoke(app, ["ddl", str(schema_path)])

    assert result.exit_code == 0
    assert result.stdout.startswith("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    assert "CREATE TABLE post_has_tag_tags" in result.stdout


def test_ddl_writes_file(schema_path, tmp_path) -> None:
    output = tmp_path / "out" / "schema.sql"

    result = runner.invoke(app, ["ddl", str(schema_path), "--output", str(output)])

    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8").rstrip().endswith(";")


def test_describe_lists_storage(schema_path) -> None:
    result = runner.invoke(app, ["describe", str(schema_path)])

    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert lines == [
        "Post|hasTag|Tag: join post_has_tag_tags(post_id, has_tag_tag_id)",
        "User|wrote|Post: foreignKey posts.wrote_by_user_id -> users.id",
    ]


def test_sql_with_pagination(schema_path) -> None:
    result = runner.invoke(app, ["sql", str(schema_path), "User", "posts", "--last", "2", "--before", "p9"])

    assert result.exit_code == 0
    assert "ORDER BY posts.seq DESC LIMIT 2;" in result.stdout
    assert "-- $1: id of each User" in result.stdout


def test_sql_unknown_relationship(schema_path) -> None:
    result = runner.invoke(app, ["sql", str(schema_path), "User", "title"])

    assert result.exit_code == 1


def test_missing_schema_file(tmp_path) -> None:
    result = runner.invoke(app, ["ddl", str(tmp_path / "absent.json")])

    assert result.exit_code == 1


def test_sql_rejects_unknown_order_field(schema_path) -> None:
    result = runner.invoke(app, ["sql", str(schema_path), "User", "posts", "--first", "1", "--order", "rating; --"])

    assert result.exit_code == 1
    assert "ORDER BY" not in result.stdout
