"""
Table generation from Persistable models.

Every mapped table gets an autoincrement integer ``id`` primary key. Heir
tables additionally carry a unique, non-null foreign key to the
predecessor's ``id``; predecessor tables may carry a discriminator column.
"""
import types
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Tuple, Type, Union, get_args, get_origin
from uuid import UUID

from pydantic.fields import FieldInfo
from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, MetaData,
    Numeric, String, Table, Uuid
)
from sqlalchemy.types import TypeEngine

from cti.errors import UnsupportedColumnType
from cti.schema.models import HeirSpec, Persistable, PredecessorSpec

DISCRIMINATOR_LENGTH = 50

# bool before int: bool is a subclass of int
_COLUMN_TYPES: List[Tuple[type, Any]] = [
    (bool, Boolean),
    (int, Integer),
    (float, Float),
    (Decimal, Numeric),
    (str, String),
    # TIMESTAMP WITH TIME ZONE on PostgreSQL; SQLite stores the wall clock and drops tzinfo
    (datetime, lambda: DateTime(timezone=True)),
    (date, Date),
    (UUID, Uuid),
    (dict, JSON),
    (list, JSON),
]


def _unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    """Strip ``Optional[...]`` / ``X | None`` and report whether None was allowed."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        optional = len(args) != len(get_args(annotation))
        if len(args) == 1:
            return args[0], optional
        return annotation, optional
    return annotation, False


def column_type_for(owner: str, name: str, annotation: Any) -> TypeEngine:
    """Map a Python field annotation to a SQLAlchemy column type."""
    base, _ = _unwrap_optional(annotation)
    container = get_origin(base) or base
    if isinstance(container, type):
        for python_type, sql_type in _COLUMN_TYPES:
            if issubclass(container, python_type):
                return sql_type()
    raise UnsupportedColumnType(f"{owner}.{name}: no column type for annotation {annotation!r}")


def column_for_field(owner: str, name: str, field: FieldInfo) -> Column:
    _, optional = _unwrap_optional(field.annotation)
    nullable = optional or not field.is_required()
    return Column(name, column_type_for(owner, name, field.annotation), nullable=nullable)


def model_columns(owner: str, model: Type[Persistable]) -> List[Column]:
    return [column_for_field(owner, name, field) for name, field in model.model_fields.items()]


def build_predecessor_table(metadata: MetaData, spec: PredecessorSpec) -> Table:
    columns: List[Column] = [Column("id", Integer, primary_key=True, autoincrement=True)]
    if spec.discriminator_column:
        columns.append(
            Column(spec.discriminator_column, String(DISCRIMINATOR_LENGTH), nullable=True, index=True)
        )
    columns.extend(model_columns(spec.entity_name, spec.model))
    return Table(spec.table_name, metadata, *columns)


def build_heir_table(metadata: MetaData, predecessor: PredecessorSpec, heir: HeirSpec) -> Table:
    return Table(
        heir.table_name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column(
            heir.foreign_key_column,
            Integer,
            ForeignKey(f"{predecessor.table_name}.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        *model_columns(heir.entity_name, heir.model),
    )
