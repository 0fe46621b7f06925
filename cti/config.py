"""
Runtime settings for wiring the mapping engine into an application.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


class CtiSettings(BaseModel):
    """
    Engine, logging and schema settings.

    Attributes:
        database_url: SQLAlchemy URL of the storage backend (CTI_DATABASE_URL)
        echo_sql: Log every SQL statement (CTI_ECHO_SQL)
        log_level: Level for the engine's loggers (CTI_LOG_LEVEL)
        create_tables: Create missing registered tables at startup (CTI_CREATE_TABLES)
    """
    database_url: str = Field(default="sqlite:///:memory:")
    echo_sql: bool = False
    log_level: str = "INFO"
    create_tables: bool = True

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "CtiSettings":
        """Read settings from the environment, loading a .env file first."""
        load_dotenv(dotenv_path)
        return cls(
            database_url=os.getenv("CTI_DATABASE_URL", "sqlite:///:memory:"),
            echo_sql=_env_flag("CTI_ECHO_SQL", False),
            log_level=os.getenv("CTI_LOG_LEVEL", "INFO").upper(),
            create_tables=_env_flag("CTI_CREATE_TABLES", True),
        )
