"""
Predecessor/heir declarations and the registry that holds them.
"""
from .models import HeirSpec, Persistable, PredecessorSpec
from .registry import SchemaRegistry
from .declarative import acts_as_heir, acts_as_predecessor

__all__ = [
    "Persistable", "PredecessorSpec", "HeirSpec", "SchemaRegistry",
    "acts_as_predecessor", "acts_as_heir",
]
