"""
Exception hierarchy for the class-table-inheritance mapping engine.

Setup-time errors (RegistrationError and subclasses) are meant to abort
application startup. Everything else is raised to the immediate caller of
a registry lookup or a save/delete/load call.
"""
from typing import Optional


class CtiError(Exception):
    """Base class for all mapping engine errors."""


##############################
# Setup-time errors
##############################

class RegistrationError(CtiError):
    """A declaration could not be added to the schema registry."""


class DuplicateRegistration(RegistrationError):
    """An entity or table name is already registered under a different definition."""


class AttributeCollision(RegistrationError):
    """A heir declares a column already owned by its predecessor (or a reserved column)."""

    def __init__(self, entity_name: str, predecessor_name: str, attributes: set) -> None:
        self.entity_name = entity_name
        self.predecessor_name = predecessor_name
        self.attributes = set(attributes)
        names = ", ".join(sorted(self.attributes))
        super().__init__(
            f"Heir '{entity_name}' redeclares attribute(s) of predecessor '{predecessor_name}': {names}"
        )


class UnsupportedColumnType(RegistrationError):
    """A model field has a Python type with no column mapping."""


class RegistrySealed(RegistrationError):
    """Registration attempted after the registry was sealed."""


##############################
# Lookup misses
##############################

class NotFound(CtiError, LookupError):
    """No entity, spec or row exists for the requested key."""


class UnknownPredecessor(NotFound):
    """The named predecessor was never registered."""


class UnknownAttribute(NotFound):
    """The attribute is owned neither by the predecessor nor by the heir."""

    def __init__(self, entity_name: str, attribute: str) -> None:
        self.entity_name = entity_name
        self.attribute = attribute
        super().__init__(f"'{entity_name}' has no attribute '{attribute}'")


##############################
# Discrimination
##############################

class DiscriminationError(CtiError):
    """The concrete type of a stored row could not be determined."""


class AmbiguousHeir(DiscriminationError):
    """More than one heir table references the same predecessor row."""

    def __init__(self, predecessor_name: str, primary_key: object, heir_names: list) -> None:
        self.predecessor_name = predecessor_name
        self.primary_key = primary_key
        self.heir_names = list(heir_names)
        super().__init__(
            f"{predecessor_name}({primary_key}) is referenced by several heirs: {', '.join(self.heir_names)}"
        )


class UnknownDiscriminatorValue(DiscriminationError):
    """The discriminator column holds a value no heir is registered for."""


##############################
# Lifecycle and storage
##############################

class NotPersisted(CtiError):
    """The operation requires a record in the PERSISTED state."""


class PersistenceFailure(CtiError):
    """
    Wraps any storage backend error raised during a save, delete or load.

    The underlying exception is available as ``cause`` and ``__cause__``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)
