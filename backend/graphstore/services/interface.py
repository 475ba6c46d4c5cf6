"""Process-wide database interface built once from a schema."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from graphstore.core.db import Executor
from graphstore.core.errors import UnknownRelationshipError
from graphstore.core.logging import get_logger
from graphstore.models.connection import Connection, ConnectionArguments
from graphstore.models.definitions import SchemaInfo
from graphstore.models.tables import DatabaseSchema, RelationshipSegmentDescription

from .loaders import RequestLoaders, SingularRelationshipLoader
from .pagination import validate_connection_args
from .query import CompiledRelationship, compile_relationship
from .schema import compile_schema

logger = get_logger(__name__)


@dataclass(frozen=True)
class DatabaseInterface:
    """Compiled schema, storage decisions and statements, shared by all requests."""

    schema: DatabaseSchema
    descriptions: Mapping[str, RelationshipSegmentDescription]
    relationships: Mapping[tuple[str, str], CompiledRelationship]
    executor: Executor

    def relationship(self, type_name: str, field_name: str) -> CompiledRelationship:
        compiled = self.relationships.get((type_name, field_name))
        if compiled is None:
            raise UnknownRelationshipError(f"{type_name}.{field_name} is not a relationship")
        return compiled

    def create_loaders(self) -> RequestLoaders:
        return RequestLoaders(self.executor)

    async def resolve(
        self,
        loaders: RequestLoaders,
        compiled: CompiledRelationship,
        parent: Mapping[str, Any],
        args: ConnectionArguments | None = None,
    ) -> dict[str, Any] | Connection | None:
        """Resolve ``compiled`` for one parent row through the request's loaders."""

        key = parent.get(compiled.object_key_column)
        loader = loaders.get(compiled)

        if isinstance(loader, SingularRelationshipLoader):
            if key is None:
                return None
            return await loader.load(key)

        args = args or ConnectionArguments()
        validate_connection_args(args, compiled.columns)
        if key is None:
            return Connection()
        return await loader.load(key, args)


def build_database_interface(schema_info: SchemaInfo, executor: Executor) -> DatabaseInterface:
    compiled_schema = compile_schema(schema_info)
    descriptions = MappingProxyType(compiled_schema.descriptions)

    relationships = {
        (relationship.type_name, relationship.field_name): compile_relationship(
            descriptions, relationship, compiled_schema.schema
        )
        for relationship in schema_info.relationships
    }
    logger.info("interface.ready", relationships=len(relationships))

    return DatabaseInterface(
        schema=compiled_schema.schema,
        descriptions=descriptions,
        relationships=MappingProxyType(relationships),
        executor=executor,
    )


def load_schema_info(path: str | Path) -> SchemaInfo:
    """Read a JSON schema document produced by the schema front end."""

    return SchemaInfo.model_validate_json(Path(path).read_text(encoding="utf-8"))
