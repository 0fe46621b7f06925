"""
Declarative metadata for predecessor/heir entity types.

This module provides:
1. Persistable - the pydantic base class every mapped entity model derives from
2. HeirSpec - the description of one subtype table linked to a predecessor
3. PredecessorSpec - the description of a base type and its registered heirs

Specs are created once by the SchemaRegistry and are immutable afterwards,
except that a PredecessorSpec's heir list grows as heirs are registered.
"""
from typing import List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class Persistable(BaseModel):
    """
    Base class for entity models that can be mapped by the registry.

    The model's fields are exactly the columns of the entity's own table.
    Persistence behaviour lives in the LifecycleCoordinator, and the
    predecessor/heir relationship is held by the SchemaRegistry, so a
    model class is never modified by registration.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @classmethod
    def column_names(cls) -> List[str]:
        return list(cls.model_fields.keys())


class HeirSpec(BaseModel):
    """Subtype entity stored in its own table, one row per predecessor row."""
    entity_name: str
    predecessor_name: str
    table_name: str
    foreign_key_column: str
    discriminator_value: Optional[str] = None
    model: Type[Persistable] = Field(exclude=True)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def columns(self) -> List[str]:
        return self.model.column_names()

    @property
    def type_tag(self) -> str:
        """Value written to the predecessor's discriminator column for this heir."""
        return self.discriminator_value or self.entity_name

    def same_definition(self, other: "HeirSpec") -> bool:
        return (
            self.predecessor_name == other.predecessor_name
            and self.table_name == other.table_name
            and self.foreign_key_column == other.foreign_key_column
            and self.type_tag == other.type_tag
            and self.model is other.model
        )


class PredecessorSpec(BaseModel):
    """
    Base entity type whose table holds the shared columns.

    Attributes:
        entity_name: Logical name of the base type
        table_name: Backing table
        model: Persistable subclass describing the shared columns
        discriminator_column: Optional type-tag column on the base table
        heirs: Registered heirs, in registration order
    """
    entity_name: str
    table_name: str
    model: Type[Persistable] = Field(exclude=True)
    discriminator_column: Optional[str] = None
    heirs: List[HeirSpec] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def columns(self) -> List[str]:
        return self.model.column_names()

    @property
    def reserved_columns(self) -> List[str]:
        reserved = ["id"]
        if self.discriminator_column:
            reserved.append(self.discriminator_column)
        return reserved

    def heir(self, entity_name: str) -> Optional[HeirSpec]:
        for heir in self.heirs:
            if heir.entity_name == entity_name:
                return heir
        return None

    def heir_for_value(self, value: str) -> Optional[HeirSpec]:
        for heir in self.heirs:
            if heir.type_tag == value:
                return heir
        return None

    def same_definition(self, other: "PredecessorSpec") -> bool:
        return (
            self.table_name == other.table_name
            and self.discriminator_column == other.discriminator_column
            and self.model is other.model
        )
