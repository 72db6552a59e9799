"""
Data classification taxonomy for snapshots.

Levels and data types are opaque keys to the lifecycle evaluator.
"""

from .taxonomy import (
    ClassificationLevel,
    DataType,
    all_levels,
    all_data_types,
    level_priority,
    max_level,
    taxonomy_key,
)

__all__ = [
    'ClassificationLevel',
    'DataType',
    'all_levels',
    'all_data_types',
    'level_priority',
    'max_level',
    'taxonomy_key',
]
