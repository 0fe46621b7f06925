"""
Common fixtures for the class-table inheritance tests.
Provides the Vehicle/Car/Truck and Animal/Dog/Cat model families and
registries, engines and coordinators built from them.
"""
import pytest
from typing import Optional

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from cti import LifecycleCoordinator, Persistable, SchemaRegistry


# Custom test markers
def pytest_configure(config):
    """Configure custom markers."""
    markers = [
        "integration: marks tests that hit a SQLite database",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# ========================================================================
# Test entity classes
# ========================================================================

class Vehicle(Persistable):
    """Predecessor with the shared vehicle columns."""
    name: str
    color: Optional[str] = None


class Car(Persistable):
    wheel_count: int
    convertible: bool = False


class Truck(Persistable):
    """Heir that reuses a column name of its sibling Car."""
    payload_tons: float
    wheel_count: int = 6


class Animal(Persistable):
    """Predecessor using a discriminator column."""
    name: str


class Dog(Persistable):
    breed: str


class Cat(Persistable):
    lives: int = 9


# ========================================================================
# Fixtures
# ========================================================================

@pytest.fixture
def registry():
    """Vehicle registry: Car and Truck heirs, probing discrimination."""
    reg = SchemaRegistry()
    reg.register_predecessor("Vehicle", "vehicles", Vehicle)
    reg.register_heir("Vehicle", "Car", "cars", Car, foreign_key_column="vehicle_id")
    reg.register_heir("Vehicle", "Truck", "trucks", Truck, foreign_key_column="vehicle_id")
    return reg


@pytest.fixture
def tagged_registry():
    """Animal registry: Dog and Cat heirs, discriminator column 'kind'."""
    reg = SchemaRegistry()
    reg.register_predecessor("Animal", "animals", Animal, discriminator_column="kind")
    reg.register_heir("Animal", "Dog", "dogs", Dog, discriminator_value="dog")
    reg.register_heir("Animal", "Cat", "cats", Cat)
    return reg


@pytest.fixture
def engine(registry):
    eng = create_engine("sqlite:///:memory:")
    registry.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def coordinator(registry, engine):
    return LifecycleCoordinator(registry, sessionmaker(bind=engine))


@pytest.fixture
def tagged_engine(tagged_registry):
    eng = create_engine("sqlite:///:memory:")
    tagged_registry.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def tagged_coordinator(tagged_registry, tagged_engine):
    return LifecycleCoordinator(tagged_registry, sessionmaker(bind=tagged_engine))


def count_rows(engine, table) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar_one()
