"""Compile entity definitions and relationship storage into tables."""

from __future__ import annotations

from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from graphstore.core.errors import SchemaError
from graphstore.core.logging import get_logger
from graphstore.models.definitions import EntityDefinition, FieldDefinition, SchemaInfo
from graphstore.models.tables import (
    Column,
    ColumnReference,
    ColumnType,
    Constraint,
    DatabaseSchema,
    ForeignKeyDescription,
    Index,
    JoinTableDescription,
    RelationshipSegmentDescription,
    Table,
)

from .naming import snake, table_name_from_type_name
from .segments import segment_descriptions

logger = get_logger(__name__)

RESERVED_FIELD_NAMES = frozenset({"seq"})

_SCALAR_COLUMN_TYPES = {
    "ID": ColumnType.UUID,
    "String": ColumnType.TEXT,
    "Int": ColumnType.INTEGER,
    "Float": ColumnType.FLOAT,
    "Date": ColumnType.TIMESTAMP,
    "Money": ColumnType.MONEY,
    "SERIAL": ColumnType.SERIAL,
}


@dataclass(frozen=True, slots=True)
class CompiledSchema:
    schema: DatabaseSchema
    descriptions: dict[str, RelationshipSegmentDescription]


def is_database_field(definition: FieldDefinition) -> bool:
    # relationship fields become join tables or key columns added separately
    return not (definition.has_directive("virtual") or definition.has_directive("relationship"))


def validate_database_field(definition: FieldDefinition) -> None:
    if definition.name in RESERVED_FIELD_NAMES:
        raise SchemaError(f"The `{definition.name}` field is reserved and cannot be defined")


def column_type_from_field(definition: FieldDefinition) -> ColumnType:
    if definition.is_list:
        return ColumnType.JSONB
    return _SCALAR_COLUMN_TYPES.get(definition.type, ColumnType.JSONB)


def column_from_field(definition: FieldDefinition) -> Column:
    is_id = definition.name == "id"
    return Column(
        name=snake(definition.name),
        type=column_type_from_field(definition),
        primary_key=is_id,
        non_null=definition.non_null,
        unique=definition.has_directive("unique"),
        default_value="gen_random_uuid()" if is_id else None,
    )


def table_from_entity(entity: EntityDefinition) -> Table:
    """Base table for an entity; ``seq`` orders rows by insertion."""

    columns = [Column(name="seq", type=ColumnType.SERIAL, non_null=True, unique=True)]

    for definition in entity.fields:
        if not is_database_field(definition):
            continue
        validate_database_field(definition)
        column = column_from_field(definition)
        if any(existing.name == column.name for existing in columns):
            raise SchemaError(f"Field `{definition.name}` on {entity.name} maps to a duplicate column")
        columns.append(column)

    return Table(name=table_name_from_type_name(entity.name), columns=columns)


def indices_from_entity(entity: EntityDefinition) -> list[Index]:
    table = table_name_from_type_name(entity.name)
    return [
        Index(table=table, columns=(snake(definition.name),))
        for definition in entity.fields
        if is_database_field(definition)
        and (definition.has_directive("index") or definition.has_directive("unique"))
    ]


def join_table_from_description(description: JoinTableDescription) -> Table:
    left = description.left_column_name
    right = description.right_column_name
    return Table(
        name=description.name,
        columns=[
            Column(
                name=left,
                type=ColumnType.UUID,
                non_null=True,
                references=ColumnReference(table=description.left_table_name, column="id"),
            ),
            Column(
                name=right,
                type=ColumnType.UUID,
                non_null=True,
                references=ColumnReference(table=description.right_table_name, column="id"),
            ),
        ],
        constraints=[Constraint(kind="UNIQUE", columns=(left, right))],
    )


def join_table_indices_from_description(description: JoinTableDescription) -> list[Index]:
    # the unique constraint covers lookups from the left column
    return [Index(table=description.name, columns=(description.right_column_name,))]


def column_from_foreign_key_description(description: ForeignKeyDescription) -> Column:
    return Column(
        name=description.column,
        type=ColumnType.UUID,
        non_null=description.non_null,
        references=ColumnReference(table=description.referenced_table, column="id"),
    )


def index_from_foreign_key_description(description: ForeignKeyDescription) -> Index:
    return Index(table=description.table, columns=(description.column,))


def compile_schema(schema_info: SchemaInfo) -> CompiledSchema:
    """Build tables, key columns and indices for a whole schema."""

    schema = DatabaseSchema()
    tables_by_name: dict[str, Table] = {}

    def add_table(table: Table) -> None:
        if table.name in tables_by_name:
            raise SchemaError(f"Table `{table.name}` is defined more than once")
        tables_by_name[table.name] = table
        schema.tables.append(table)

    for entity in schema_info.entities:
        add_table(table_from_entity(entity))
        schema.indices.extend(indices_from_entity(entity))

    descriptions = segment_descriptions(schema_info.relationships)

    for description in descriptions:
        storage = description.storage
        if isinstance(storage, JoinTableDescription):
            add_table(join_table_from_description(storage))
            schema.indices.extend(join_table_indices_from_description(storage))
            continue

        table = tables_by_name.get(storage.table)
        if table is None:
            raise SchemaError(
                f"Relationship {description.signature} stores a key on unknown table `{storage.table}`"
            )
        if table.column(storage.column) is not None:
            raise SchemaError(
                f"Relationship {description.signature} key column `{storage.column}` "
                f"already exists on `{table.name}`"
            )
        table.columns.append(column_from_foreign_key_description(storage))
        schema.indices.append(index_from_foreign_key_description(storage))

    for table in schema.tables:
        for column in table.columns:
            target = column.references
            if target is None:
                continue
            referenced = tables_by_name.get(target.table)
            if referenced is None or referenced.column(target.column) is None:
                raise SchemaError(
                    f"Column `{table.name}.{column.name}` references missing `{target.table}.{target.column}`"
                )

    logger.info(
        "schema.compiled",
        tables=len(schema.tables),
        indices=len(schema.indices),
        relationships=len(descriptions),
    )

    return CompiledSchema(
        schema=schema,
        descriptions={description.signature: description for description in descriptions},
    )


_SQLALCHEMY_TYPES = {
    ColumnType.UUID: postgresql.UUID(as_uuid=False),
    ColumnType.TEXT: sa.Text(),
    ColumnType.INTEGER: sa.Integer(),
    ColumnType.FLOAT: postgresql.DOUBLE_PRECISION(),
    ColumnType.TIMESTAMP: postgresql.TIMESTAMP(timezone=False),
    ColumnType.MONEY: postgresql.MONEY(),
    ColumnType.JSONB: postgresql.JSONB(),
    ColumnType.SERIAL: sa.Integer(),
}


def _sqlalchemy_column(column: Column) -> sa.Column:
    args: list = [column.name, _SQLALCHEMY_TYPES[column.type]]
    if column.type is ColumnType.SERIAL:
        args.append(sa.Identity(always=True))
    if column.references is not None:
        args.append(sa.ForeignKey(f"{column.references.table}.{column.references.column}"))

    return sa.Column(
        *args,
        primary_key=column.primary_key,
        nullable=not (column.non_null or column.primary_key),
        unique=column.unique or None,
        server_default=sa.text(column.default_value) if column.default_value else None,
    )


def metadata_from_schema(schema: DatabaseSchema) -> sa.MetaData:
    """Mirror a compiled schema as SQLAlchemy metadata."""

    metadata = sa.MetaData()
    for table in schema.tables:
        sa.Table(
            table.name,
            metadata,
            *(_sqlalchemy_column(column) for column in table.columns),
            *(
                sa.UniqueConstraint(*constraint.columns, name=f"{table.name}_{'_'.join(constraint.columns)}_key")
                for constraint in table.constraints
            ),
        )

    for index in schema.indices:
        table = metadata.tables[index.table]
        sa.Index(index.name, *(table.c[column] for column in index.columns))

    return metadata


def render_ddl(schema: DatabaseSchema) -> list[str]:
    """PostgreSQL statements creating the schema, in dependency order."""

    dialect = postgresql.dialect()
    metadata = metadata_from_schema(schema)

    statements = [f"CREATE EXTENSION IF NOT EXISTS {extension}" for extension in schema.extensions]
    for table in metadata.sorted_tables:
        statements.append(str(CreateTable(table).compile(dialect=dialect)).strip())
    for table in metadata.sorted_tables:
        for index in sorted(table.indexes, key=lambda item: item.name or ""):
            statements.append(str(CreateIndex(index).compile(dialect=dialect)).strip())

    return statements
