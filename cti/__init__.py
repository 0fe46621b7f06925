"""
Class-table inheritance for SQLAlchemy-backed pydantic models.

A predecessor (base) entity keeps its shared columns in one table; each
heir (subtype) keeps its own columns in a separate table linked one-to-one
by a foreign key. The engine saves and deletes both rows together, resolves
attributes across them and loads stored rows as their concrete heir type.
"""
from .errors import (
    AmbiguousHeir, AttributeCollision, CtiError, DiscriminationError,
    DuplicateRegistration, NotFound, NotPersisted, PersistenceFailure,
    RegistrationError, RegistrySealed, UnknownAttribute,
    UnknownDiscriminatorValue, UnknownPredecessor, UnsupportedColumnType
)
from .schema import (
    HeirSpec, Persistable, PredecessorSpec, SchemaRegistry, acts_as_heir,
    acts_as_predecessor
)
from .mapping import (
    AttributeResolver, CompositeRecord, LifecycleCoordinator, QueryComposer,
    RecordState, ResolvedAttribute, TypeDiscriminator
)
from .config import CtiSettings
from .bootstrap import initialize

__all__ = [
    "CtiError", "RegistrationError", "DuplicateRegistration", "AttributeCollision",
    "UnsupportedColumnType", "RegistrySealed", "NotFound", "UnknownPredecessor",
    "UnknownAttribute", "DiscriminationError", "AmbiguousHeir",
    "UnknownDiscriminatorValue", "NotPersisted", "PersistenceFailure",
    "Persistable", "PredecessorSpec", "HeirSpec", "SchemaRegistry",
    "acts_as_predecessor", "acts_as_heir",
    "CompositeRecord", "RecordState", "AttributeResolver", "ResolvedAttribute",
    "QueryComposer", "TypeDiscriminator", "LifecycleCoordinator",
    "CtiSettings", "initialize",
]
