"""
Runtime representation of one logical entity spanning a base row and a heir row.
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from cti.errors import UnknownAttribute
from cti.schema.models import Persistable


class RecordState(str, Enum):
    NEW = "new"
    PERSISTED = "persisted"
    DELETED = "deleted"


class CompositeRecord(BaseModel):
    """
    The union of a predecessor row and at most one matching heir row.

    ``entity_name`` is the concrete type: the heir's name when ``heir`` is
    set, the predecessor's name otherwise. ``primary_key`` is the
    predecessor row's id, which is also the value of the heir row's
    foreign key. Attribute names are unique across ``base`` and ``heir``,
    so the unified accessors below are unambiguous.
    """
    entity_name: str
    predecessor_name: str
    base: Persistable
    heir: Optional[Persistable] = None
    primary_key: Optional[int] = None
    state: RecordState = RecordState.NEW

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __getitem__(self, name: str) -> Any:
        return getattr(self._owner(name), name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self.attributes()

    def __repr__(self) -> str:
        return f"{self.entity_name}({self.primary_key}, {self.state.value})"

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self[name]
        except UnknownAttribute:
            return default

    def set(self, name: str, value: Any) -> None:
        """Assign an attribute on whichever half owns it (validated by pydantic)."""
        setattr(self._owner(name), name, value)

    def attributes(self) -> Dict[str, Any]:
        values = self.base.model_dump()
        if self.heir is not None:
            values.update(self.heir.model_dump())
        return values

    def is_a(self, entity_name: str) -> bool:
        return entity_name in (self.entity_name, self.predecessor_name)

    @property
    def is_heir(self) -> bool:
        return self.heir is not None

    @property
    def persisted(self) -> bool:
        return self.state == RecordState.PERSISTED

    def _owner(self, name: str) -> Persistable:
        if name in type(self.base).model_fields:
            return self.base
        if self.heir is not None and name in type(self.heir).model_fields:
            return self.heir
        raise UnknownAttribute(self.entity_name, name)
