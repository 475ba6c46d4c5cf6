"""Service exports."""

from . import interface, loaders, pagination, query, schema, segments

__all__ = ["interface", "loaders", "pagination", "query", "schema", "segments"]
