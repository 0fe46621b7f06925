import pytest
from typing import Dict, List, Optional, Set

from cti import (
    AttributeCollision, DuplicateRegistration, HeirSpec, NotFound, Persistable,
    PredecessorSpec, RegistrySealed, SchemaRegistry, UnknownPredecessor,
    UnsupportedColumnType
)
from cti.schema.naming import default_foreign_key
from tests.conftest import Animal, Car, Dog, Truck, Vehicle


class Vessel(Persistable):
    displacement: float


class Convertible(Persistable):
    """Heir that redeclares the predecessor's 'name' column."""
    name: str
    roof: str


class Gadget(Persistable):
    tags: Set[int]


class Document(Persistable):
    title: str
    payload: Dict[str, int]
    authors: List[str]
    summary: Optional[str] = None


# Registration and lookup

def test_register_predecessor_and_heirs(registry):
    vehicle = registry.lookup("Vehicle")
    assert isinstance(vehicle, PredecessorSpec)
    assert vehicle.table_name == "vehicles"
    assert [heir.entity_name for heir in vehicle.heirs] == ["Car", "Truck"]

    car = registry.lookup("Car")
    assert isinstance(car, HeirSpec)
    assert car.predecessor_name == "Vehicle"
    assert car.foreign_key_column == "vehicle_id"
    assert registry.predecessor_of("Car") is vehicle
    assert registry.predecessor_of("Vehicle") is vehicle
    assert registry.entity_names() == ["Vehicle", "Car", "Truck"]


def test_lookup_unknown_entity(registry):
    with pytest.raises(NotFound):
        registry.lookup("Boat")
    assert not registry.is_registered("Boat")
    with pytest.raises(UnknownPredecessor):
        registry.predecessor("Car")


def test_predecessor_table_columns(registry):
    vehicles = registry.table("Vehicle")
    assert [c.name for c in vehicles.columns] == ["id", "name", "color"]
    assert vehicles.c.id.primary_key
    assert vehicles.c.name.nullable is False
    assert vehicles.c.color.nullable is True


def test_heir_foreign_key_is_unique_and_references_predecessor(registry):
    cars = registry.table("Car")
    assert [c.name for c in cars.columns] == ["id", "vehicle_id", "wheel_count", "convertible"]
    fk_column = cars.c.vehicle_id
    assert fk_column.unique is True
    assert fk_column.nullable is False
    (foreign_key,) = fk_column.foreign_keys
    assert foreign_key.target_fullname == "vehicles.id"


def test_json_and_optional_columns():
    reg = SchemaRegistry()
    reg.register_predecessor("Document", "documents", Document)
    documents = reg.table("Document")
    assert documents.c.payload.type.__class__.__name__ == "JSON"
    assert documents.c.authors.type.__class__.__name__ == "JSON"
    assert documents.c.summary.nullable is True


def test_default_foreign_key():
    assert default_foreign_key("Vehicle") == "vehicle_id"
    assert default_foreign_key("Staff") == "staff_id"
    assert default_foreign_key("Category") == "category_id"
    assert default_foreign_key("Bus") == "bus_id"
    assert default_foreign_key("DeliveryTruck") == "delivery_truck_id"

    reg = SchemaRegistry()
    reg.register_predecessor("Vehicle", "vehicles", Vehicle)
    car = reg.register_heir("Vehicle", "Car", "cars", Car)
    assert car.foreign_key_column == "vehicle_id"


def test_default_foreign_key_ignores_table_plural():
    class Category(Persistable):
        title: str

    class Tag(Persistable):
        color: str

    class Bus(Persistable):
        seats: int

    class Coach(Persistable):
        toilet: bool = True

    reg = SchemaRegistry()
    reg.register_predecessor("Category", "categories", Category)
    reg.register_predecessor("Bus", "buses", Bus)
    tag = reg.register_heir("Category", "Tag", "tags", Tag)
    coach = reg.register_heir("Bus", "Coach", "coaches", Coach)

    assert tag.foreign_key_column == "category_id"
    assert coach.foreign_key_column == "bus_id"
    assert "bus_id" in reg.table("Coach").c


# Conflicting definitions

def test_heir_under_two_predecessors_is_duplicate(registry):
    registry.register_predecessor("Vessel", "vessels", Vessel)
    with pytest.raises(DuplicateRegistration):
        registry.register_heir("Vessel", "Car", "amphibious_cars", Car)
    assert registry.predecessor_of("Car").entity_name == "Vehicle"


def test_identical_reregistration_is_idempotent(registry):
    vehicle = registry.lookup("Vehicle")
    car = registry.lookup("Car")
    assert registry.register_predecessor("Vehicle", "vehicles", Vehicle) is vehicle
    assert registry.register_heir("Vehicle", "Car", "cars", Car, foreign_key_column="vehicle_id") is car
    assert len(vehicle.heirs) == 2


def test_predecessor_redefinition_is_duplicate(registry):
    with pytest.raises(DuplicateRegistration):
        registry.register_predecessor("Vehicle", "automobiles", Vehicle)


def test_heir_name_cannot_become_predecessor(registry):
    with pytest.raises(DuplicateRegistration):
        registry.register_predecessor("Car", "car_bases", Car)
    with pytest.raises(DuplicateRegistration):
        registry.register_heir("Vehicle", "Vehicle", "vehicle_heirs", Car)


def test_table_name_reuse_is_duplicate(registry):
    with pytest.raises(DuplicateRegistration):
        registry.register_heir("Vehicle", "Van", "cars", Truck)
    assert not registry.is_registered("Van")


def test_unknown_predecessor():
    reg = SchemaRegistry()
    with pytest.raises(UnknownPredecessor):
        reg.register_heir("Vehicle", "Car", "cars", Car)


# Attribute collisions are caught at registration time

def test_heir_attribute_collision_fails_at_registration(registry):
    with pytest.raises(AttributeCollision) as excinfo:
        registry.register_heir("Vehicle", "Convertible", "convertibles", Convertible)
    assert excinfo.value.attributes == {"name"}
    assert not registry.is_registered("Convertible")
    assert [heir.entity_name for heir in registry.lookup("Vehicle").heirs] == ["Car", "Truck"]


def test_heir_field_named_like_foreign_key_collides(registry):
    class Bike(Persistable):
        vehicle_id: int

    with pytest.raises(AttributeCollision):
        registry.register_heir("Vehicle", "Bike", "bikes", Bike)


def test_reserved_id_column_collides():
    class Keyed(Persistable):
        id: int

    reg = SchemaRegistry()
    with pytest.raises(AttributeCollision):
        reg.register_predecessor("Keyed", "keyed", Keyed)


def test_siblings_may_share_column_names(registry):
    assert "wheel_count" in registry.lookup("Car").columns
    assert "wheel_count" in registry.lookup("Truck").columns


def test_unsupported_column_type():
    reg = SchemaRegistry()
    with pytest.raises(UnsupportedColumnType):
        reg.register_predecessor("Gadget", "gadgets", Gadget)
    assert not reg.is_registered("Gadget")


# Discriminator values

def test_discriminator_values(tagged_registry):
    animal = tagged_registry.predecessor("Animal")
    assert animal.discriminator_column == "kind"
    assert animal.heir_for_value("dog").entity_name == "Dog"
    assert animal.heir_for_value("Cat").entity_name == "Cat"
    assert "kind" in tagged_registry.table("Animal").c


def test_duplicate_discriminator_value(tagged_registry):
    class Wolf(Persistable):
        pack: str

    with pytest.raises(DuplicateRegistration):
        tagged_registry.register_heir("Animal", "Wolf", "wolves", Wolf, discriminator_value="dog")
    with pytest.raises(DuplicateRegistration):
        tagged_registry.register_heir("Animal", "Wolf", "wolves", Wolf, discriminator_value="Animal")


# Sealing and status

def test_sealed_registry_rejects_registration(registry):
    registry.seal()
    assert registry.sealed
    with pytest.raises(RegistrySealed):
        registry.register_predecessor("Vessel", "vessels", Vessel)
    assert registry.lookup("Car").entity_name == "Car"


def test_registry_status(registry):
    status = registry.get_registry_status()
    assert status["predecessors"] == 1
    assert status["heirs"] == 2
    assert status["tables"] == ["cars", "trucks", "vehicles"]
    assert status["sealed"] is False


def test_registration_is_logged():
    SchemaRegistry.clear_logs()
    reg = SchemaRegistry()
    reg.register_predecessor("Animal", "animals", Animal)
    reg.register_heir("Animal", "Dog", "dogs", Dog)
    with pytest.raises(UnknownPredecessor):
        reg.register_heir("Plant", "Fern", "ferns", Dog)

    logs = SchemaRegistry.get_logs()
    assert "Registered predecessor 'Animal'" in logs
    assert "Registered heir 'Dog' of 'Animal'" in logs
    assert "Registration failed" in logs
