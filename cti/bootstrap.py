"""
Application wiring: turns a populated SchemaRegistry into a working coordinator.

Call ``initialize`` once at startup, after every acts_as_predecessor /
acts_as_heir declaration has run. The registry is sealed on the way out,
so late declarations fail loudly instead of racing with persistence calls.
"""
import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from cti.config import CtiSettings
from cti.mapping.composer import QueryComposer
from cti.mapping.discriminator import TypeDiscriminator
from cti.mapping.lifecycle import LifecycleCoordinator
from cti.mapping.resolver import AttributeResolver
from cti.schema.registry import SchemaRegistry

ENGINE_LOGGERS = (
    "SchemaRegistry", "AttributeResolver", "QueryComposer", "TypeDiscriminator", "LifecycleCoordinator",
)


def configure_logging(level: str) -> None:
    """Set the level of every named engine logger."""
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(level)


def initialize(
    registry: SchemaRegistry,
    settings: Optional[CtiSettings] = None,
    engine: Optional[Engine] = None
) -> LifecycleCoordinator:
    """
    Create the engine, tables and coordinator for a registry.

    Args:
        registry: Registry holding every predecessor/heir declaration
        settings: Defaults to CtiSettings.from_env()
        engine: Use an existing engine instead of creating one from settings

    Returns:
        A LifecycleCoordinator bound to a sessionmaker on the engine
    """
    settings = settings or CtiSettings.from_env()
    configure_logging(settings.log_level)
    logger = logging.getLogger("LifecycleCoordinator")

    if engine is None:
        engine = create_engine(settings.database_url, echo=settings.echo_sql)
    logger.info(f"Initializing class-table inheritance on {engine.url.render_as_string(hide_password=True)}")

    if settings.create_tables:
        registry.create_all(engine)
    registry.seal()

    composer = QueryComposer(registry)
    return LifecycleCoordinator(
        registry,
        sessionmaker(bind=engine),
        composer=composer,
        discriminator=TypeDiscriminator(registry, composer),
        resolver=AttributeResolver(registry),
    )
