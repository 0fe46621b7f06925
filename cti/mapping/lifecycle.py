"""
Lifecycle coordination for composite (predecessor + heir) records.

Record states:
    NEW -> PERSISTED -> DELETED (terminal)

1. SAVE:
   - NEW: insert the predecessor row, take its generated id, insert the heir
     row with that id as foreign key
   - PERSISTED: update both rows
2. DELETE:
   - PERSISTED only: delete the heir row, then the predecessor row
3. LOAD:
   - One composed query; the discriminator picks the concrete heir

Every operation runs in one transaction. Without a caller-provided session
the coordinator opens its own, commits on success, rolls back on any error
and closes it. With a caller session the statements join the caller's
transaction and commit/rollback stays with the caller. Storage errors
surface as PersistenceFailure; record state only changes after success.
"""
import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

from sqlalchemy import Column, Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from cti.errors import NotFound, NotPersisted, PersistenceFailure
from cti.mapping.composer import QueryComposer
from cti.mapping.discriminator import TypeDiscriminator
from cti.mapping.records import CompositeRecord, RecordState
from cti.mapping.resolver import AttributeResolver
from cti.schema.models import HeirSpec, PredecessorSpec
from cti.schema.registry import SchemaRegistry


class LifecycleCoordinator:
    """Saves, deletes and loads composite records against a SQLAlchemy backend."""

    def __init__(
        self,
        registry: SchemaRegistry,
        session_factory: Callable[[], Session],
        composer: Optional[QueryComposer] = None,
        discriminator: Optional[TypeDiscriminator] = None,
        resolver: Optional[AttributeResolver] = None
    ) -> None:
        self._logger = logging.getLogger("LifecycleCoordinator")
        self._registry = registry
        self._session_factory = session_factory
        self.composer = composer or QueryComposer(registry)
        self.discriminator = discriminator or TypeDiscriminator(registry, self.composer)
        self.resolver = resolver or AttributeResolver(registry)
        self._logger.info(f"Initialized coordinator for entities {registry.entity_names()}")

    @property
    def registry(self) -> SchemaRegistry:
        return self._registry

    def get_session(self, existing_session: Optional[Session] = None) -> Tuple[Session, bool]:
        """
        Get a session - either the provided one or a new one.

        Returns:
            Tuple of (session, should_close_when_done)
        """
        if existing_session is not None:
            self._logger.debug("Reusing provided session")
            return existing_session, False

        self._logger.debug("Creating new session")
        return self._session_factory(), True

    ##############################
    # Construction
    ##############################

    def new(self, entity_name: str, **attributes: Any) -> CompositeRecord:
        """
        Build an unsaved record of ``entity_name`` from a flat attribute mapping.

        Raises:
            NotFound: entity_name is not registered
            UnknownAttribute: an attribute belongs to neither table
            pydantic.ValidationError: values do not fit the models
        """
        spec = self._registry.lookup(entity_name)
        predecessor = self._registry.predecessor_of(entity_name)
        base_values, heir_values = self.resolver.split(entity_name, attributes)

        heir = spec.model(**heir_values) if isinstance(spec, HeirSpec) else None
        return CompositeRecord(
            entity_name=entity_name,
            predecessor_name=predecessor.entity_name,
            base=predecessor.model(**base_values),
            heir=heir,
        )

    ##############################
    # Persistence
    ##############################

    def save(self, record: CompositeRecord, session: Optional[Session] = None) -> CompositeRecord:
        """Insert a NEW record or update a PERSISTED one, both rows in one transaction."""
        if record.state == RecordState.DELETED:
            raise NotPersisted(f"{record!r} was deleted and cannot be saved")

        predecessor = self._registry.predecessor(record.predecessor_name)
        heir = self._heir_spec(record)
        base_table = self._registry.table(predecessor.entity_name)
        base_values = record.base.model_dump()
        if predecessor.discriminator_column:
            base_values[predecessor.discriminator_column] = heir.type_tag if heir else predecessor.entity_name

        if record.state == RecordState.NEW:
            self._logger.info(f"Inserting new {record.entity_name} into {predecessor.table_name}")
            with self._unit_of_work(f"save {record.entity_name}", session) as s:
                result = s.execute(insert(base_table).values(**base_values))
                primary_key = result.inserted_primary_key[0]
                if heir is not None:
                    heir_table = self._registry.table(heir.entity_name)
                    s.execute(insert(heir_table).values(
                        {heir.foreign_key_column: primary_key, **record.heir.model_dump()}
                    ))
            record.primary_key = primary_key
            record.state = RecordState.PERSISTED
            self._logger.info(f"Saved {record!r}")
            return record

        self._logger.info(f"Updating {record!r}")
        with self._unit_of_work(f"update {record.entity_name}", session) as s:
            if not self._update_row(s, base_table, base_table.c.id, record.primary_key, base_values):
                raise NotFound(f"{record.predecessor_name}({record.primary_key}) no longer exists")
            if heir is not None:
                heir_table = self._registry.table(heir.entity_name)
                fk = heir_table.c[heir.foreign_key_column]
                if not self._update_row(s, heir_table, fk, record.primary_key, record.heir.model_dump()):
                    raise NotFound(
                        f"{heir.entity_name} row for {record.predecessor_name}({record.primary_key}) is missing"
                    )
        return record

    def delete(self, record: CompositeRecord, session: Optional[Session] = None) -> None:
        """Delete the heir row, then the predecessor row, in one transaction."""
        if record.state != RecordState.PERSISTED:
            raise NotPersisted(f"Cannot delete {record!r}: record is {record.state.value}")

        heir = self._heir_spec(record)
        base_table = self._registry.table(record.predecessor_name)
        self._logger.info(f"Deleting {record!r}")
        with self._unit_of_work(f"delete {record.entity_name}", session) as s:
            if heir is not None:
                heir_table = self._registry.table(heir.entity_name)
                s.execute(delete(heir_table).where(heir_table.c[heir.foreign_key_column] == record.primary_key))
            result = s.execute(delete(base_table).where(base_table.c.id == record.primary_key))
            if result.rowcount == 0:
                raise NotFound(f"{record.predecessor_name}({record.primary_key}) no longer exists")
        record.state = RecordState.DELETED

    ##############################
    # Reads
    ##############################

    def load(self, entity_name: str, primary_key: int, session: Optional[Session] = None) -> CompositeRecord:
        """
        Load one record by the predecessor's primary key.

        Loading through a predecessor returns the concrete heir, if any.
        Loading through a heir only matches rows that belong to that heir.

        Raises:
            NotFound: no matching row
            AmbiguousHeir: several heir tables reference the row
            PersistenceFailure: the backend failed
        """
        criterion = self.composer.primary_key_criterion(entity_name, primary_key)
        with self._unit_of_work(f"load {entity_name}", session) as s:
            row = s.execute(self.composer.build_load_query(entity_name, criterion)).first()
            if row is None:
                raise NotFound(f"{entity_name}({primary_key}) not found")
            record = self._assemble(entity_name, row._mapping)
        self._logger.debug(f"Loaded {record!r} as {entity_name}")
        return record

    def get(self, entity_name: str, primary_key: int, session: Optional[Session] = None) -> Optional[CompositeRecord]:
        """Like load(), but returns None when the record does not exist."""
        try:
            return self.load(entity_name, primary_key, session)
        except NotFound:
            return None

    def find(self, entity_name: str, *criteria: ColumnElement, session: Optional[Session] = None) -> List[CompositeRecord]:
        """Load every record of ``entity_name`` matching the given column criteria."""
        with self._unit_of_work(f"find {entity_name}", session) as s:
            rows = s.execute(self.composer.build_load_query(entity_name, *criteria)).all()
            records = [self._assemble(entity_name, row._mapping) for row in rows]
        self._logger.debug(f"Found {len(records)} {entity_name} record(s)")
        return records

    def type_of(self, predecessor_name: str, primary_key: int, session: Optional[Session] = None) -> str:
        """Concrete entity name of a stored predecessor row, without loading heir columns."""
        predecessor = self._registry.predecessor(predecessor_name)
        table = self._registry.table(predecessor.entity_name)
        with self._unit_of_work(f"discriminate {predecessor_name}", session) as s:
            row = s.execute(select(table).where(table.c.id == primary_key)).first()
            if row is None:
                raise NotFound(f"{predecessor_name}({primary_key}) not found")
            return self.discriminator.discriminate(s, predecessor_name, row._mapping)

    ##############################
    # Helpers
    ##############################

    @contextmanager
    def _unit_of_work(self, operation: str, session: Optional[Session] = None) -> Iterator[Session]:
        session, own_session = self.get_session(session)
        try:
            yield session
            if own_session:
                session.commit()
        except SQLAlchemyError as e:
            if own_session:
                session.rollback()
            self._logger.error(f"Error during {operation}: {str(e)}")
            raise PersistenceFailure(f"{operation} failed: {e}", cause=e) from e
        except Exception:
            if own_session:
                session.rollback()
            raise
        finally:
            if own_session:
                session.close()

    def _update_row(self, session: Session, table: Table, key: Column, value: int, values: Dict[str, Any]) -> bool:
        """Update the row where ``key == value``; report whether it exists."""
        if not values:
            return session.execute(select(key).where(key == value)).first() is not None
        return session.execute(update(table).where(key == value).values(**values)).rowcount > 0

    def _heir_spec(self, record: CompositeRecord) -> Optional[HeirSpec]:
        spec = self._registry.lookup(record.entity_name)
        if isinstance(spec, HeirSpec):
            if record.heir is None:
                raise ValueError(f"{record!r} is a {spec.entity_name} without heir attributes")
            return spec
        if record.heir is not None:
            raise ValueError(f"{record!r} is a plain {spec.entity_name} but carries heir attributes")
        return None

    def _assemble(self, entity_name: str, row: Mapping[str, Any]) -> CompositeRecord:
        spec = self._registry.lookup(entity_name)
        predecessor: PredecessorSpec = self._registry.predecessor_of(entity_name)
        if isinstance(spec, HeirSpec):
            concrete = spec.entity_name
        else:
            concrete = self.discriminator.from_joined_row(predecessor.entity_name, row)

        heir_spec = predecessor.heir(concrete)
        heir_values: Optional[Dict[str, Any]] = self.composer.heir_values(heir_spec, row) if heir_spec else None
        return CompositeRecord(
            entity_name=concrete,
            predecessor_name=predecessor.entity_name,
            base=predecessor.model.model_validate(self.composer.base_values(predecessor, row)),
            heir=heir_spec.model.model_validate(heir_values) if heir_spec else None,
            primary_key=self.composer.primary_key(predecessor, row),
            state=RecordState.PERSISTED,
        )
