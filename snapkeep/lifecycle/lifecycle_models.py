"""
Data models for the snapshot lifecycle system.

This module contains the retention windows, classification rules, evaluation
results and dry-run accumulator used by the lifecycle evaluator. The default
compliance rule set is defined here and nowhere else.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Mapping, Union

from snapkeep.classification import ClassificationLevel, DataType, taxonomy_key


class InvalidRetentionError(ValueError):
    """Raised when a rule set contains an invalid retention window."""


@dataclass(frozen=True)
class RetentionDuration:
    """Minimum and maximum retention periods in days.

    ``min_days`` is the compliance floor: a snapshot cannot be deleted before
    it elapses. ``max_days`` is the auto-delete ceiling; 0 means no cap.
    """
    min_days: int = 0
    max_days: int = 0

    @property
    def has_cap(self) -> bool:
        return self.max_days > 0

    def validate(self) -> bool:
        """Check that both periods are non-negative and a set cap is not below the minimum."""
        if self.min_days < 0 or self.max_days < 0:
            return False
        if self.max_days > 0 and self.max_days < self.min_days:
            return False
        return True


@dataclass(frozen=True)
class ClassificationRule:
    """Retention policy for one classification level, with per-data-type exceptions."""
    level: Union[ClassificationLevel, str]
    retention: RetentionDuration
    data_type_overrides: Mapping[str, RetentionDuration] = field(default_factory=dict)

    def __post_init__(self):
        # Known levels are stored as enum members, custom ones as plain strings
        level = taxonomy_key(self.level)
        if level in {member.value for member in ClassificationLevel}:
            object.__setattr__(self, 'level', ClassificationLevel(level))
        else:
            object.__setattr__(self, 'level', level)

        overrides = {taxonomy_key(dt): window for dt, window in (self.data_type_overrides or {}).items()}
        object.__setattr__(self, 'data_type_overrides', MappingProxyType(overrides))

    @property
    def level_key(self) -> str:
        return taxonomy_key(self.level)

    def effective_retention(self, data_type: Union[DataType, str]) -> RetentionDuration:
        """Return the override for a data type, falling back to the level's base retention."""
        return self.data_type_overrides.get(taxonomy_key(data_type), self.retention)

    def validate(self) -> bool:
        """Check the base window and every override window."""
        if not self.retention.validate():
            return False
        return all(window.validate() for window in self.data_type_overrides.values())


def default_classification_rules() -> List[ClassificationRule]:
    """
    Get the default retention rules per classification level.

    These align with common compliance frameworks:
    - Public: 30 days min, 90 days max
    - Internal: 90 days min, 365 days max (business records)
    - Confidential: 365 days min, 2555 days (7 years) max
    - Restricted: 2555 days min, no max (manual deletion only)

    A new list is built on every call so evaluators never share a rule table.
    """
    return [
        ClassificationRule(
            level=ClassificationLevel.PUBLIC,
            retention=RetentionDuration(min_days=30, max_days=90),
        ),
        ClassificationRule(
            level=ClassificationLevel.INTERNAL,
            retention=RetentionDuration(min_days=90, max_days=365),
        ),
        ClassificationRule(
            level=ClassificationLevel.CONFIDENTIAL,
            retention=RetentionDuration(min_days=365, max_days=2555),
            data_type_overrides={
                # audit trails over personal data
                DataType.PII: RetentionDuration(min_days=365, max_days=2555),
            },
        ),
        ClassificationRule(
            level=ClassificationLevel.RESTRICTED,
            retention=RetentionDuration(min_days=2555, max_days=0),
            data_type_overrides={
                # HIPAA six-year minimum, never auto-deleted
                DataType.PHI: RetentionDuration(min_days=2190, max_days=0),
                # PCI-DSS one-year minimum
                DataType.PCI: RetentionDuration(min_days=365, max_days=2555),
            },
        ),
    ]


class SnapshotAction(Enum):
    """Action recommended for a snapshot."""
    KEEP = "keep"
    CAN_DELETE = "can_delete"
    MUST_DELETE = "must_delete"
    HOLD = "hold"


@dataclass(frozen=True)
class SnapshotEvaluation:
    """Lifecycle evaluation result for a single snapshot."""
    snapshot_id: str
    action: SnapshotAction
    reason: str
    snapshot_age_days: int
    min_retention_days: int
    max_retention_days: int  # 0 = no max
    days_until_deletable: int  # negative once past the minimum
    days_until_auto_delete: int  # 0 when no max applies
    classification_level: Union[ClassificationLevel, str]
    is_on_legal_hold: bool

    @property
    def is_deletable(self) -> bool:
        return self.action in (SnapshotAction.CAN_DELETE, SnapshotAction.MUST_DELETE)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the dictionary shape consumed by reporting layers."""
        return {
            'snapshot_id': self.snapshot_id,
            'action': self.action.value,
            'reason': self.reason,
            'snapshot_age_days': self.snapshot_age_days,
            'min_retention_days': self.min_retention_days,
            'max_retention_days': self.max_retention_days,
            'days_until_deletable': self.days_until_deletable,
            'days_until_auto_delete': self.days_until_auto_delete,
            'classification_level': taxonomy_key(self.classification_level),
            'is_on_legal_hold': self.is_on_legal_hold,
        }


@dataclass
class DryRunResult:
    """
    Aggregate of a bulk, non-destructive lifecycle evaluation.

    Not thread-safe: callers feeding it from concurrent workers must
    serialize calls to ``add_evaluation``.
    """
    evaluated_at: datetime = field(default_factory=datetime.now)
    policy_id: Optional[str] = None
    total_snapshots: int = 0
    keep_count: int = 0
    can_delete_count: int = 0
    must_delete_count: int = 0
    hold_count: int = 0
    evaluations: List[SnapshotEvaluation] = field(default_factory=list)
    total_size_to_delete_bytes: int = 0
    # Per-evaluation snapshot context (time, repository, schedule), same order as evaluations
    snapshot_details: List[Dict[str, Any]] = field(default_factory=list)

    def add_evaluation(self, evaluation: SnapshotEvaluation, size_bytes: int = 0,
                       details: Optional[Dict[str, Any]] = None):
        """Add an evaluation and update the counters.

        Only snapshots that can or must be deleted contribute ``size_bytes``
        to the reclaimable total. ``details`` is rendered next to the
        evaluation in report rows.
        """
        self.evaluations.append(evaluation)
        self.snapshot_details.append(dict(details or {}))
        self.total_snapshots += 1

        if evaluation.action == SnapshotAction.KEEP:
            self.keep_count += 1
        elif evaluation.action == SnapshotAction.CAN_DELETE:
            self.can_delete_count += 1
            self.total_size_to_delete_bytes += size_bytes
        elif evaluation.action == SnapshotAction.MUST_DELETE:
            self.must_delete_count += 1
            self.total_size_to_delete_bytes += size_bytes
        elif evaluation.action == SnapshotAction.HOLD:
            self.hold_count += 1

    def deletion_candidates(self) -> List[SnapshotEvaluation]:
        """Get evaluations that can or must be deleted, in evaluation order."""
        return [evaluation for evaluation in self.evaluations if evaluation.is_deletable]

    def report_rows(self) -> List[Dict[str, Any]]:
        """Get one report row per evaluation, with its snapshot context."""
        return [
            {**evaluation.to_dict(), **details}
            for evaluation, details in zip(self.evaluations, self.snapshot_details)
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'evaluated_at': self.evaluated_at.isoformat(),
            'policy_id': self.policy_id,
            'total_snapshots': self.total_snapshots,
            'keep_count': self.keep_count,
            'can_delete_count': self.can_delete_count,
            'must_delete_count': self.must_delete_count,
            'hold_count': self.hold_count,
            'evaluations': self.report_rows(),
            'total_size_to_delete_bytes': self.total_size_to_delete_bytes,
        }
