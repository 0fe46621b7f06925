"""
Concrete-type discrimination for stored predecessor rows.

Two strategies are supported:

1. PROBING (default):
   - Each heir table is checked for a row whose foreign key equals the
     predecessor's primary key, in registration order
   - No match means the row is a plain predecessor
   - More than one match is a data-integrity violation (AmbiguousHeir)

2. DISCRIMINATOR COLUMN (opt-in, ``discriminator_column`` on the predecessor):
   - The type tag stored on the predecessor row is mapped to a heir directly
   - Avoids one probe per heir table
   - On joined loads, a tag that disagrees with the heir rows present is a
     data-integrity violation (DiscriminationError)
"""
import logging
from typing import Any, List, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from cti.errors import AmbiguousHeir, DiscriminationError, UnknownDiscriminatorValue
from cti.mapping.composer import QueryComposer, column_label
from cti.schema.models import HeirSpec, PredecessorSpec
from cti.schema.registry import SchemaRegistry


class TypeDiscriminator:
    """Determines which heir, if any, a predecessor row belongs to."""

    def __init__(self, registry: SchemaRegistry, composer: QueryComposer) -> None:
        self._registry = registry
        self._composer = composer
        self._logger = logging.getLogger("TypeDiscriminator")

    def discriminate(self, session: Session, predecessor_name: str, base_row: Mapping[str, Any]) -> str:
        """
        Return the concrete entity name for an unlabelled predecessor row.

        Args:
            session: Session used for probing heir tables
            predecessor_name: Registered predecessor the row belongs to
            base_row: The predecessor table's columns, keyed by column name
        """
        predecessor = self._registry.predecessor(predecessor_name)
        if predecessor.discriminator_column:
            return self._from_tag(predecessor, base_row.get(predecessor.discriminator_column))

        primary_key = base_row["id"]
        matches: List[HeirSpec] = []
        for heir in predecessor.heirs:
            table = self._registry.table(heir.entity_name)
            fk = table.c[heir.foreign_key_column]
            found = session.execute(select(fk).where(fk == primary_key).limit(1)).first()
            self._logger.debug(f"Probed {heir.table_name} for {predecessor_name}({primary_key}): {found is not None}")
            if found is not None:
                matches.append(heir)
        return self._decide(predecessor, primary_key, matches)

    def from_joined_row(self, predecessor_name: str, row: Mapping[str, Any]) -> str:
        """Return the concrete entity name for a row of the composed outer-join query."""
        predecessor = self._registry.predecessor(predecessor_name)
        primary_key = self._composer.primary_key(predecessor, row)
        present = [heir for heir in predecessor.heirs if self._composer.heir_present(heir, row)]

        if predecessor.discriminator_column:
            tag = row.get(column_label(predecessor.table_name, predecessor.discriminator_column))
            entity_name = self._from_tag(predecessor, tag)
            if len(present) > 1:
                raise AmbiguousHeir(predecessor_name, primary_key, [h.entity_name for h in present])
            if entity_name == predecessor.entity_name and present:
                message = f"{predecessor_name}({primary_key}) is tagged '{tag}' but has a {present[0].entity_name} row"
                self._logger.error(message)
                raise DiscriminationError(message)
            if entity_name != predecessor.entity_name and entity_name not in [h.entity_name for h in present]:
                self._logger.error(f"{predecessor_name}({primary_key}) is tagged '{tag}' but has no heir row")
                raise DiscriminationError(
                    f"{predecessor_name}({primary_key}) is tagged '{tag}' but has no matching heir row"
                )
            return entity_name

        return self._decide(predecessor, primary_key, present)

    def _decide(self, predecessor: PredecessorSpec, primary_key: Any, matches: List[HeirSpec]) -> str:
        if len(matches) > 1:
            names = [heir.entity_name for heir in matches]
            self._logger.error(f"{predecessor.entity_name}({primary_key}) matched several heirs: {names}")
            raise AmbiguousHeir(predecessor.entity_name, primary_key, names)
        if matches:
            return matches[0].entity_name
        return predecessor.entity_name

    def _from_tag(self, predecessor: PredecessorSpec, tag: Any) -> str:
        if tag is None or tag == predecessor.entity_name:
            return predecessor.entity_name
        heir = predecessor.heir_for_value(tag)
        if heir is None:
            self._logger.error(f"Unknown discriminator value '{tag}' for {predecessor.entity_name}")
            raise UnknownDiscriminatorValue(
                f"'{tag}' does not name a heir of {predecessor.entity_name}"
            )
        return heir.entity_name
