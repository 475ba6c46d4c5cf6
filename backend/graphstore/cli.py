"""Typer-based CLI for inspecting a compiled schema."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from graphstore.core.errors import GraphStoreError
from graphstore.core.logging import setup_logging
from graphstore.models.connection import ConnectionArguments
from graphstore.models.definitions import SchemaInfo
from graphstore.models.tables import ForeignKeyDescription
from graphstore.services.interface import load_schema_info
from graphstore.services.pagination import apply_connection_args
from graphstore.services.query import compile_relationship, render_query
from graphstore.services.schema import compile_schema, render_ddl

app = typer.Typer(help="Schema compilation utilities for the graph relational store")


def _load(schema_path: Path) -> SchemaInfo:
    if not schema_path.exists():
        typer.secho(f"Schema file not found: {schema_path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        return load_schema_info(schema_path)
    except ValidationError as exc:
        typer.secho(f"Invalid schema document: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Emit structured logs.")) -> None:
    setup_logging("DEBUG" if verbose else "WARNING", development=True)


@app.command()
def ddl(
    schema_path: Path = typer.Argument(..., help="JSON schema document."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write statements to a file instead of stdout."),
):
    """Print the PostgreSQL DDL for a schema."""

    try:
        compiled = compile_schema(_load(schema_path))
    except GraphStoreError as exc:
        typer.secho(f"Schema error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    text = ";\n\n".join(render_ddl(compiled.schema)) + ";\n"
    if output is None:
        typer.echo(text)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    typer.secho(f"DDL written to {output}", fg=typer.colors.GREEN)


@app.command()
def describe(schema_path: Path = typer.Argument(..., help="JSON schema document.")):
    """List how every relationship is stored."""

    try:
        compiled = compile_schema(_load(schema_path))
    except GraphStoreError as exc:
        typer.secho(f"Schema error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    for signature, description in sorted(compiled.descriptions.items()):
        storage = description.storage
        if isinstance(storage, ForeignKeyDescription):
            detail = f"{storage.table}.{storage.column} -> {storage.referenced_table}.id"
        else:
            detail = f"{storage.name}({storage.left_column_name}, {storage.right_column_name})"
        typer.echo(f"{signature}: {description.kind} {detail}")


@app.command()
def sql(
    schema_path: Path = typer.Argument(..., help="JSON schema document."),
    type_name: str = typer.Argument(..., help="Type declaring the relationship field."),
    field_name: str = typer.Argument(..., help="Relationship field name."),
    first: Optional[int] = typer.Option(None, "--first", help="Forward page size."),
    last: Optional[int] = typer.Option(None, "--last", help="Backward page size."),
    after: Optional[str] = typer.Option(None, "--after", help="Forward cursor."),
    before: Optional[str] = typer.Option(None, "--before", help="Backward cursor."),
    order: Optional[str] = typer.Option(None, "--order", help="Order field, defaults to insertion order."),
):
    """Print the statement that loads one relationship."""

    schema_info = _load(schema_path)
    relationship = next(
        (
            candidate
            for candidate in schema_info.relationships
            if candidate.type_name == type_name and candidate.field_name == field_name
        ),
        None,
    )
    if relationship is None:
        typer.secho(f"{type_name}.{field_name} is not a relationship", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    args = ConnectionArguments(first=first, last=last, after=after, before=before, order=order)

    try:
        compiled_schema = compile_schema(schema_info)
        compiled = compile_relationship(compiled_schema.descriptions, relationship, compiled_schema.schema)
        statement = compiled.sql
        if args != ConnectionArguments():
            statement = render_query(apply_connection_args(compiled.query, args, compiled.columns))
    except GraphStoreError as exc:
        typer.secho(f"Error: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    typer.echo(statement)
    typer.echo(f"-- $1: {compiled.object_key_column} of each {type_name}")


if __name__ == "__main__":  # pragma: no cover
    app()
