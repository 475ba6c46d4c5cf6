"""Graph-shaped schemas mapped onto PostgreSQL with batched relationship loading."""

from .models.connection import Connection, ConnectionArguments
from .models.definitions import EntityDefinition, FieldDefinition, Relationship, RelationshipSegment, SchemaInfo
from .services.interface import DatabaseInterface, build_database_interface, load_schema_info

__all__ = [
    "Connection",
    "ConnectionArguments",
    "DatabaseInterface",
    "EntityDefinition",
    "FieldDefinition",
    "Relationship",
    "RelationshipSegment",
    "SchemaInfo",
    "build_database_interface",
    "load_schema_info",
]
