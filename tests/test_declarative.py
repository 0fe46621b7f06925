"""
Tests for the acts_as_predecessor / acts_as_heir class decorators.
"""
import pytest
from typing import Optional

from cti import (
    AttributeCollision, Persistable, SchemaRegistry, UnknownPredecessor,
    acts_as_heir, acts_as_predecessor
)
from cti.schema.naming import default_table_name, snake_case


def test_snake_case_and_table_names():
    assert snake_case("Vehicle") == "vehicle"
    assert snake_case("DeliveryTruck") == "delivery_truck"
    assert snake_case("HTTPRoute") == "http_route"
    assert default_table_name("Vehicle") == "vehicles"
    assert default_table_name("Bus") == "buses"
    assert default_table_name("Lorry") == "lorries"
    assert default_table_name("Subway") == "subways"


def test_decorators_register_models():
    registry = SchemaRegistry()

    @acts_as_predecessor(registry)
    class Vehicle(Persistable):
        name: str

    @acts_as_heir(registry, Vehicle)
    class DeliveryTruck(Persistable):
        payload_tons: float

    @acts_as_heir(registry, "Vehicle", table_name="autos", foreign_key_column="base_id", entity_name="Car")
    class Automobile(Persistable):
        doors: Optional[int] = None

    vehicle = registry.predecessor("Vehicle")
    assert vehicle.table_name == "vehicles"
    assert vehicle.model is Vehicle
    assert [heir.entity_name for heir in vehicle.heirs] == ["DeliveryTruck", "Car"]

    truck = registry.heir("DeliveryTruck")
    assert truck.table_name == "delivery_trucks"
    assert truck.foreign_key_column == "vehicle_id"

    car = registry.heir("Car")
    assert car.table_name == "autos"
    assert car.foreign_key_column == "base_id"
    assert car.model is Automobile


def test_decorated_class_is_unchanged():
    registry = SchemaRegistry()

    class Plain(Persistable):
        name: str

    decorated = acts_as_predecessor(registry, table_name="plains")(Plain)
    assert decorated is Plain
    assert Plain(name="x").model_dump() == {"name": "x"}


def test_heir_of_renamed_predecessor_class():
    registry = SchemaRegistry()

    @acts_as_predecessor(registry, entity_name="Asset", discriminator_column="kind")
    class AssetRecord(Persistable):
        label: str

    @acts_as_heir(registry, AssetRecord, discriminator_value="laptop")
    class Laptop(Persistable):
        ram_gb: int

    assert registry.heir("Laptop").predecessor_name == "Asset"
    assert registry.predecessor("Asset").heir_for_value("laptop").entity_name == "Laptop"


def test_heir_of_undeclared_class():
    registry = SchemaRegistry()

    class Stray(Persistable):
        name: str

    with pytest.raises(UnknownPredecessor):
        @acts_as_heir(registry, Stray)
        class Child(Persistable):
            size: int


def test_collision_raised_at_class_definition():
    registry = SchemaRegistry()

    @acts_as_predecessor(registry)
    class Account(Persistable):
        owner: str

    with pytest.raises(AttributeCollision):
        @acts_as_heir(registry, Account)
        class SavingsAccount(Persistable):
            owner: str
            rate: float
