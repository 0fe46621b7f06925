"""
Class decorators for declaring predecessor/heir mappings next to the models.

    registry = SchemaRegistry()

    @acts_as_predecessor(registry)
    class Vehicle(Persistable):
        name: str

    @acts_as_heir(registry, Vehicle)
    class Car(Persistable):
        wheel_count: int

The decorators only record metadata in the registry; the decorated class
is returned unchanged.
"""
from typing import Callable, Optional, Type, TypeVar, Union

from cti.schema.models import Persistable
from cti.schema.naming import default_table_name
from cti.schema.registry import SchemaRegistry

P = TypeVar("P", bound=Type[Persistable])


def acts_as_predecessor(
    registry: SchemaRegistry,
    table_name: Optional[str] = None,
    entity_name: Optional[str] = None,
    discriminator_column: Optional[str] = None
) -> Callable[[P], P]:
    def decorator(model: P) -> P:
        name = entity_name or model.__name__
        registry.register_predecessor(
            name,
            table_name or default_table_name(name),
            model,
            discriminator_column=discriminator_column,
        )
        return model
    return decorator


def acts_as_heir(
    registry: SchemaRegistry,
    predecessor: Union[str, Type[Persistable]],
    table_name: Optional[str] = None,
    foreign_key_column: Optional[str] = None,
    entity_name: Optional[str] = None,
    discriminator_value: Optional[str] = None
) -> Callable[[P], P]:
    """
    Register the decorated model as a heir of ``predecessor``.

    ``predecessor`` is either the registered entity name or a model class
    previously decorated with acts_as_predecessor.
    """
    def decorator(model: P) -> P:
        if isinstance(predecessor, str):
            predecessor_name = predecessor
        else:
            predecessor_name = registry.predecessor_for_model(predecessor).entity_name
        name = entity_name or model.__name__
        registry.register_heir(
            predecessor_name,
            name,
            table_name or default_table_name(name),
            model,
            foreign_key_column=foreign_key_column,
            discriminator_value=discriminator_value,
        )
        return model
    return decorator
