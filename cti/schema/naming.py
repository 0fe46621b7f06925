"""
Default table and column names derived from entity names.
"""
import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def default_table_name(entity_name: str) -> str:
    """``DeliveryTruck`` -> ``delivery_trucks``."""
    snake = snake_case(entity_name)
    if snake.endswith(("s", "x", "z", "ch", "sh")):
        return f"{snake}es"
    if snake.endswith("y") and not snake.endswith(("ay", "ey", "oy", "uy")):
        return f"{snake[:-1]}ies"
    return f"{snake}s"


def default_foreign_key(predecessor_name: str) -> str:
    """``Vehicle`` -> ``vehicle_id``."""
    return f"{snake_case(predecessor_name)}_id"
