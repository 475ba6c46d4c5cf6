"""Error taxonomy shared across the schema compiler and resolution engine."""

from __future__ import annotations


class GraphStoreError(Exception):
    """Base class for every error raised by graphstore itself."""


class ConfigurationError(GraphStoreError):
    """The schema or the caller asked for something that cannot be built."""


class SchemaError(ConfigurationError):
    """Entity or relationship declarations that do not compile to tables."""


class PaginationError(ConfigurationError):
    """Connection arguments that cannot be translated to a single query."""


class UnknownRelationshipError(ConfigurationError):
    """Lookup of a relationship that was never declared."""


class InvariantViolation(GraphStoreError):
    """Internal state that should be impossible for a compiled schema."""


def invariant(condition: object, message: str) -> None:
    """Raise InvariantViolation when ``condition`` is falsy."""

    if not condition:
        raise InvariantViolation(message)
