"""Pydantic schemas for entity and relationship declarations."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["in", "out"]
Cardinality = Literal["singular", "plural"]
Directive = Literal["virtual", "relationship", "unique", "index"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class FieldDefinition(_Frozen):
    name: str = Field(..., min_length=1, description="Field name as declared on the entity.")
    type: str = Field(..., min_length=1, description="Scalar type name (ID, String, Int, ...).")
    non_null: bool = Field(default=False, alias="nonNull")
    is_list: bool = Field(default=False, alias="isList")
    directives: frozenset[Directive] = Field(default_factory=frozenset)

    def has_directive(self, name: Directive) -> bool:
        return name in self.directives


class EntityDefinition(_Frozen):
    name: str = Field(..., min_length=1, description="Entity type name, e.g. User.")
    fields: tuple[FieldDefinition, ...] = Field(default_factory=tuple)


class RelationshipSegment(_Frozen):
    """One directed hop between two entity types."""

    from_type: str = Field(..., alias="fromType")
    to_type: str = Field(..., alias="toType")
    label: str = Field(..., min_length=1)
    direction: Direction
    cardinality: Cardinality
    non_null: bool = Field(default=False, alias="nonNull")

    @property
    def identity_signature(self) -> str:
        return "|".join((self.from_type, self.to_type, self.label, self.direction))

    @property
    def pairing_signature(self) -> str:
        if self.direction == "in":
            return f"{self.to_type}|{self.label}|{self.from_type}"
        return f"{self.from_type}|{self.label}|{self.to_type}"

    @property
    def is_plural(self) -> bool:
        return self.cardinality == "plural"


class Relationship(_Frozen):
    """A relationship field exposed on ``type_name``, resolved by walking ``path``."""

    type_name: str = Field(..., alias="typeName")
    field_name: str = Field(..., alias="fieldName")
    cardinality: Cardinality
    path: tuple[RelationshipSegment, ...] = Field(..., min_length=1)

    @property
    def target_type(self) -> str:
        return self.path[-1].to_type


class SchemaInfo(_Frozen):
    """Everything the schema front end hands over to the database layer."""

    entities: tuple[EntityDefinition, ...] = Field(default_factory=tuple)
    relationships: tuple[Relationship, ...] = Field(default_factory=tuple)
