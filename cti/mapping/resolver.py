"""
Attribute resolution across a predecessor table and a heir table.
"""
import logging
from typing import Any, Dict, List, NamedTuple, Tuple

from sqlalchemy import Column

from cti.errors import UnknownAttribute
from cti.schema.models import HeirSpec
from cti.schema.registry import SchemaRegistry


class ResolvedAttribute(NamedTuple):
    entity_name: str
    owning_table: str
    column: str


class AttributeResolver:
    """
    Maps logical attribute names of an entity to the table that stores them.

    Predecessor columns are checked first, then the heir's own columns.
    Collisions between the two are rejected by the registry at
    registration time, so the order never hides a heir column.
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry
        self._logger = logging.getLogger("AttributeResolver")

    def resolve(self, entity_name: str, attribute: str) -> ResolvedAttribute:
        spec = self._registry.lookup(entity_name)
        predecessor = self._registry.predecessor_of(entity_name)
        if attribute in predecessor.columns:
            return ResolvedAttribute(entity_name, predecessor.table_name, attribute)
        if isinstance(spec, HeirSpec) and attribute in spec.columns:
            return ResolvedAttribute(entity_name, spec.table_name, attribute)
        self._logger.debug(f"Unresolved attribute {entity_name}.{attribute}")
        raise UnknownAttribute(entity_name, attribute)

    def column(self, entity_name: str, attribute: str) -> Column:
        """The SQLAlchemy column behind an attribute, for building query criteria."""
        resolved = self.resolve(entity_name, attribute)
        predecessor = self._registry.predecessor_of(entity_name)
        owner = predecessor.entity_name if resolved.owning_table == predecessor.table_name else entity_name
        return self._registry.table(owner).c[resolved.column]

    def attribute_names(self, entity_name: str) -> List[str]:
        spec = self._registry.lookup(entity_name)
        names = list(self._registry.predecessor_of(entity_name).columns)
        if isinstance(spec, HeirSpec):
            names.extend(spec.columns)
        return names

    def split(self, entity_name: str, values: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Partition a flat attribute mapping into predecessor and heir values.

        Raises:
            UnknownAttribute: a key belongs to neither table
        """
        predecessor = self._registry.predecessor_of(entity_name)
        base_values: Dict[str, Any] = {}
        heir_values: Dict[str, Any] = {}
        for name, value in values.items():
            resolved = self.resolve(entity_name, name)
            if resolved.owning_table == predecessor.table_name:
                base_values[name] = value
            else:
                heir_values[name] = value
        return base_values, heir_values
