"""
Load query composition over predecessor and heir tables.

A predecessor is loaded through a LEFT OUTER JOIN to every registered heir
table, so one fetch yields the shared columns and tells which heir (if
any) holds the row. A heir is loaded through an INNER JOIN to its
predecessor. Every selected column is labelled ``<table>__<column>`` so
heirs may reuse each other's column names.

Filtering is left to SQLAlchemy: callers pass ordinary column criteria,
e.g. ``resolver.column("Car", "wheel_count") >= 4``.
"""
import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy import Select, Table, select
from sqlalchemy.sql.elements import ColumnElement

from cti.schema.models import HeirSpec, PredecessorSpec
from cti.schema.registry import SchemaRegistry


def column_label(table_name: str, column: str) -> str:
    return f"{table_name}__{column}"


class QueryComposer:
    """Builds SELECT statements spanning a predecessor and its heirs."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self._registry = registry
        self._logger = logging.getLogger("QueryComposer")

    def build_load_query(self, entity_name: str, *criteria: ColumnElement) -> Select:
        spec = self._registry.lookup(entity_name)
        predecessor = self._registry.predecessor_of(entity_name)
        base = self._registry.table(predecessor.entity_name)

        if isinstance(spec, HeirSpec):
            heir_table = self._registry.table(spec.entity_name)
            columns = self._labelled(base) + self._labelled(heir_table)
            source = heir_table.join(base, heir_table.c[spec.foreign_key_column] == base.c.id)
            self._logger.debug(f"Composed inner join {heir_table.name} -> {base.name} for {entity_name}")
        else:
            columns = self._labelled(base)
            source = base
            for heir in predecessor.heirs:
                heir_table = self._registry.table(heir.entity_name)
                columns += self._labelled(heir_table)
                source = source.outerjoin(heir_table, heir_table.c[heir.foreign_key_column] == base.c.id)
            self._logger.debug(
                f"Composed outer join over {[h.table_name for h in predecessor.heirs]} for {entity_name}"
            )

        query = select(*columns).select_from(source)
        if criteria:
            query = query.where(*criteria)
        return query.order_by(base.c.id)

    def primary_key_criterion(self, entity_name: str, primary_key: int) -> ColumnElement:
        predecessor = self._registry.predecessor_of(entity_name)
        return self._registry.table(predecessor.entity_name).c.id == primary_key

    ##############################
    # Row unpacking
    ##############################

    def primary_key(self, predecessor: PredecessorSpec, row: Mapping[str, Any]) -> int:
        return row[column_label(predecessor.table_name, "id")]

    def base_values(self, predecessor: PredecessorSpec, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: row[column_label(predecessor.table_name, name)] for name in predecessor.columns}

    def heir_values(self, heir: HeirSpec, row: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: row[column_label(heir.table_name, name)] for name in heir.columns}

    def heir_present(self, heir: HeirSpec, row: Mapping[str, Any]) -> bool:
        return row.get(column_label(heir.table_name, heir.foreign_key_column)) is not None

    def _labelled(self, table: Table) -> List[ColumnElement]:
        return [column.label(column_label(table.name, column.name)) for column in table.columns]
