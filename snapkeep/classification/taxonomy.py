"""
Classification levels and data types assigned to snapshots.

Both enums are string-valued; rule tables key on the plain string values so
that strings coming from a snapshot store and enum members are interchangeable.
"""

from enum import Enum
from typing import List, Union


class ClassificationLevel(str, Enum):
    """Sensitivity tier of a snapshot, least sensitive first."""
    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    RESTRICTED = "restricted"


class DataType(str, Enum):
    """Category of sensitive content present in a snapshot."""
    PII = "pii"                  # personal data
    PHI = "phi"                  # health data (HIPAA)
    PCI = "pci"                  # payment card data (PCI-DSS)
    PROPRIETARY = "proprietary"
    GENERAL = "general"


_LEVEL_PRIORITY = {
    ClassificationLevel.PUBLIC.value: 1,
    ClassificationLevel.INTERNAL.value: 2,
    ClassificationLevel.CONFIDENTIAL.value: 3,
    ClassificationLevel.RESTRICTED.value: 4,
}


def taxonomy_key(value: Union[Enum, str]) -> str:
    """Return the plain string key for a level or data type."""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def all_levels() -> List[ClassificationLevel]:
    """Return all classification levels in order of sensitivity."""
    return [
        ClassificationLevel.PUBLIC,
        ClassificationLevel.INTERNAL,
        ClassificationLevel.CONFIDENTIAL,
        ClassificationLevel.RESTRICTED,
    ]


def all_data_types() -> List[DataType]:
    return list(DataType)


def level_priority(level: Union[ClassificationLevel, str]) -> int:
    """Return the sensitivity rank of a level (higher is more sensitive, unknown is 0)."""
    return _LEVEL_PRIORITY.get(taxonomy_key(level), 0)


def max_level(*levels: Union[ClassificationLevel, str]) -> ClassificationLevel:
    """Return the most sensitive of the given levels, defaulting to public."""
    highest = ClassificationLevel.PUBLIC
    for level in levels:
        if level_priority(level) > level_priority(highest):
            highest = ClassificationLevel(taxonomy_key(level))
    return highest
