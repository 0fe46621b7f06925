"""
Runtime mapping between composite records and predecessor/heir tables.
"""
from .records import CompositeRecord, RecordState
from .resolver import AttributeResolver, ResolvedAttribute
from .composer import QueryComposer, column_label
from .discriminator import TypeDiscriminator
from .lifecycle import LifecycleCoordinator

__all__ = [
    "CompositeRecord", "RecordState", "AttributeResolver", "ResolvedAttribute",
    "QueryComposer", "column_label", "TypeDiscriminator", "LifecycleCoordinator",
]
