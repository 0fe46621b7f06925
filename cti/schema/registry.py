"""
Schema registry for predecessor/heir declarations.

The registry is populated once during application setup and is read-only
afterwards. It owns the SQLAlchemy MetaData and the Table objects generated
for every registered entity, so the lifecycle coordinator and the query
composer never need to know how tables were derived from models.

Main components:
- SchemaRegistry: holds PredecessorSpec/HeirSpec metadata and tables
- Registration checks: duplicate names, duplicate tables, attribute collisions
- Log capture: registration activity is mirrored into an in-memory stream
"""
import logging
from io import StringIO
from typing import Any, Dict, List, NoReturn, Optional, Type, Union

from sqlalchemy import MetaData, Table
from sqlalchemy.engine import Engine

from cti.errors import (
    AttributeCollision, DuplicateRegistration, NotFound, RegistrySealed,
    UnknownPredecessor
)
from cti.schema.columns import build_heir_table, build_predecessor_table
from cti.schema.models import HeirSpec, Persistable, PredecessorSpec
from cti.schema.naming import default_foreign_key

EntitySpec = Union[PredecessorSpec, HeirSpec]


class SchemaRegistry:
    """Registry of class-table-inheritance mappings."""

    # Setup logging
    _log_stream = StringIO()
    _logger = logging.getLogger("SchemaRegistry")
    _handler = logging.StreamHandler(_log_stream)
    _handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)

    def __init__(self, metadata: Optional[MetaData] = None) -> None:
        self.metadata = metadata if metadata is not None else MetaData()
        self._predecessors: Dict[str, PredecessorSpec] = {}
        self._heirs: Dict[str, HeirSpec] = {}
        self._tables: Dict[str, Table] = {}
        self._table_owners: Dict[str, str] = {}
        self._sealed = False

    @classmethod
    def get_logs(cls) -> str:
        """Get all logs as text."""
        return cls._log_stream.getvalue()

    @classmethod
    def clear_logs(cls) -> None:
        """Clear all logs."""
        cls._log_stream.truncate(0)
        cls._log_stream.seek(0)
        cls._logger.info("Logs cleared")

    @classmethod
    def set_log_level(cls, level: Union[int, str]) -> None:
        """Set the logging level."""
        cls._logger.setLevel(level)
        cls._logger.info(f"Log level set to {level}")

    ##############################
    # Registration
    ##############################

    def register_predecessor(
        self,
        entity_name: str,
        table_name: str,
        model: Type[Persistable],
        discriminator_column: Optional[str] = None
    ) -> PredecessorSpec:
        """
        Register a base entity type.

        Re-registering an identical definition returns the existing spec.

        Raises:
            DuplicateRegistration: name or table already used by another definition
            AttributeCollision: the model declares a reserved column
            RegistrySealed: called after seal()
        """
        self._logger.info(f"Attempting to register predecessor: {entity_name} ({table_name})")
        self._check_open(entity_name)

        spec = PredecessorSpec(
            entity_name=entity_name,
            table_name=table_name,
            model=model,
            discriminator_column=discriminator_column,
        )

        existing = self._predecessors.get(entity_name)
        if existing is not None:
            if existing.same_definition(spec):
                self._logger.info(f"Predecessor '{entity_name}' already registered, skipping")
                return existing
            self._fail(DuplicateRegistration(
                f"Predecessor '{entity_name}' already registered with table '{existing.table_name}'"
            ))
        if entity_name in self._heirs:
            self._fail(DuplicateRegistration(
                f"'{entity_name}' is already registered as heir of '{self._heirs[entity_name].predecessor_name}'"
            ))
        self._check_table_free(table_name, entity_name)

        reserved = set(spec.columns) & set(spec.reserved_columns)
        if reserved:
            self._fail(AttributeCollision(entity_name, entity_name, reserved))

        table = build_predecessor_table(self.metadata, spec)
        self._predecessors[entity_name] = spec
        self._tables[entity_name] = table
        self._table_owners[table_name] = entity_name
        self._logger.info(
            f"Registered predecessor '{entity_name}' with columns {spec.columns}"
            + (f", discriminator column '{discriminator_column}'" if discriminator_column else "")
        )
        return spec

    def register_heir(
        self,
        predecessor_name: str,
        entity_name: str,
        table_name: str,
        model: Type[Persistable],
        foreign_key_column: Optional[str] = None,
        discriminator_value: Optional[str] = None
    ) -> HeirSpec:
        """
        Register a subtype of an already registered predecessor.

        Args:
            predecessor_name: Name the predecessor was registered under
            entity_name: Name of the heir type
            table_name: Backing table for the heir's own columns
            model: Persistable subclass describing the heir's own columns
            foreign_key_column: Column referencing the predecessor's primary key,
                defaults to ``<snake_case(predecessor_name)>_id``
            discriminator_value: Tag written to the predecessor's discriminator
                column, defaults to the entity name

        Raises:
            UnknownPredecessor: predecessor_name was never registered
            DuplicateRegistration: entity_name already registered differently,
                table already used, or discriminator value already taken
            AttributeCollision: the heir redeclares a predecessor or reserved column
        """
        self._logger.info(f"Attempting to register heir: {entity_name} of {predecessor_name} ({table_name})")
        self._check_open(entity_name)

        predecessor = self._predecessors.get(predecessor_name)
        if predecessor is None:
            self._fail(UnknownPredecessor(f"Predecessor '{predecessor_name}' is not registered"))

        spec = HeirSpec(
            entity_name=entity_name,
            predecessor_name=predecessor_name,
            table_name=table_name,
            foreign_key_column=foreign_key_column or default_foreign_key(predecessor.entity_name),
            discriminator_value=discriminator_value,
            model=model,
        )

        existing = self._heirs.get(entity_name)
        if existing is not None:
            if existing.same_definition(spec):
                self._logger.info(f"Heir '{entity_name}' already registered, skipping")
                return existing
            self._fail(DuplicateRegistration(
                f"Heir '{entity_name}' already registered under predecessor '{existing.predecessor_name}'"
            ))
        if entity_name in self._predecessors:
            self._fail(DuplicateRegistration(f"'{entity_name}' is already registered as a predecessor"))
        self._check_table_free(table_name, entity_name)

        if predecessor.discriminator_column:
            taken_by = predecessor.heir_for_value(spec.type_tag)
            if taken_by is not None or spec.type_tag == predecessor.entity_name:
                owner = taken_by.entity_name if taken_by is not None else predecessor.entity_name
                self._fail(DuplicateRegistration(
                    f"Discriminator value '{spec.type_tag}' already used by '{owner}'"
                ))

        reserved = set(predecessor.columns) | set(predecessor.reserved_columns) | {spec.foreign_key_column}
        collisions = set(spec.columns) & reserved
        if collisions:
            self._fail(AttributeCollision(entity_name, predecessor_name, collisions))

        table = build_heir_table(self.metadata, predecessor, spec)
        predecessor.heirs.append(spec)
        self._heirs[entity_name] = spec
        self._tables[entity_name] = table
        self._table_owners[table_name] = entity_name
        self._logger.info(
            f"Registered heir '{entity_name}' of '{predecessor_name}' "
            f"(foreign key {table_name}.{spec.foreign_key_column}) with columns {spec.columns}"
        )
        return spec

    def seal(self) -> None:
        """Make the registry read-only. Further registrations raise RegistrySealed."""
        self._sealed = True
        self._logger.info(
            f"Registry sealed with {len(self._predecessors)} predecessor(s) and {len(self._heirs)} heir(s)"
        )

    @property
    def sealed(self) -> bool:
        return self._sealed

    ##############################
    # Lookup
    ##############################

    def lookup(self, entity_name: str) -> EntitySpec:
        """Return the spec registered under entity_name."""
        if entity_name in self._predecessors:
            return self._predecessors[entity_name]
        if entity_name in self._heirs:
            return self._heirs[entity_name]
        raise NotFound(f"Entity '{entity_name}' is not registered")

    def is_registered(self, entity_name: str) -> bool:
        return entity_name in self._predecessors or entity_name in self._heirs

    def predecessor(self, entity_name: str) -> PredecessorSpec:
        try:
            return self._predecessors[entity_name]
        except KeyError:
            raise UnknownPredecessor(f"Predecessor '{entity_name}' is not registered") from None

    def heir(self, entity_name: str) -> HeirSpec:
        try:
            return self._heirs[entity_name]
        except KeyError:
            raise NotFound(f"Heir '{entity_name}' is not registered") from None

    def predecessor_for_model(self, model: Type[Persistable]) -> PredecessorSpec:
        for spec in self._predecessors.values():
            if spec.model is model:
                return spec
        raise UnknownPredecessor(f"Model {model.__name__} is not registered as a predecessor")

    def predecessor_of(self, entity_name: str) -> PredecessorSpec:
        """The predecessor an entity belongs to (itself, for a predecessor)."""
        spec = self.lookup(entity_name)
        if isinstance(spec, HeirSpec):
            return self._predecessors[spec.predecessor_name]
        return spec

    def table(self, entity_name: str) -> Table:
        try:
            return self._tables[entity_name]
        except KeyError:
            raise NotFound(f"No table registered for '{entity_name}'") from None

    def entity_names(self) -> List[str]:
        names: List[str] = []
        for predecessor in self._predecessors.values():
            names.append(predecessor.entity_name)
            names.extend(heir.entity_name for heir in predecessor.heirs)
        return names

    def create_all(self, engine: Engine) -> None:
        """Create every registered table that does not exist yet."""
        self._logger.info(f"Creating tables: {sorted(self._table_owners)}")
        self.metadata.create_all(engine)

    def get_registry_status(self) -> Dict[str, Any]:
        return {
            "predecessors": len(self._predecessors),
            "heirs": len(self._heirs),
            "tables": sorted(self._table_owners),
            "sealed": self._sealed,
        }

    ##############################
    # Helpers
    ##############################

    def _check_open(self, entity_name: str) -> None:
        if self._sealed:
            self._fail(RegistrySealed(f"Cannot register '{entity_name}': registry is sealed"))

    def _check_table_free(self, table_name: str, entity_name: str) -> None:
        owner = self._table_owners.get(table_name)
        if owner is not None and owner != entity_name:
            self._fail(DuplicateRegistration(f"Table '{table_name}' is already mapped by '{owner}'"))

    def _fail(self, error: Exception) -> NoReturn:
        self._logger.error(f"Registration failed: {error}")
        raise error
