"""
Snapshot lifecycle evaluator.

Decides, for a single snapshot, whether retention policy requires keeping it,
allows deleting it, or forces its deletion. Legal holds always win, and
missing policy errs toward keeping data.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

import structlog

from snapkeep.classification import ClassificationLevel, DataType, taxonomy_key
from .lifecycle_models import (
    ClassificationRule,
    InvalidRetentionError,
    RetentionDuration,
    SnapshotAction,
    SnapshotEvaluation,
    default_classification_rules,
)

logger = structlog.get_logger(__name__)

# Minimum retention applied when the rule set has neither the requested
# level nor a restricted rule.
FALLBACK_MIN_RETENTION_DAYS = 365

SECONDS_PER_DAY = 86400


class LifecycleEvaluator:
    """
    Evaluates snapshots against classification-based retention rules.

    The rule set is validated once at construction and held read-only; the
    evaluator keeps no other state, so ``evaluate_snapshot`` may be called
    from several threads at once.
    """

    def __init__(self, rules: Iterable[ClassificationRule]):
        """
        Initialize the evaluator.

        Args:
            rules: Classification rules, at most one per level

        Raises:
            InvalidRetentionError: If a retention window is invalid or a level
                has more than one rule
        """
        self._rules: Dict[str, ClassificationRule] = {}

        for rule in rules:
            if not rule.validate():
                raise InvalidRetentionError(
                    f"Invalid retention window in rule for level '{rule.level_key}'"
                )
            if rule.level_key in self._rules:
                raise InvalidRetentionError(f"Duplicate rule for level '{rule.level_key}'")
            self._rules[rule.level_key] = rule

        logger.debug("Lifecycle evaluator initialized", levels=sorted(self._rules))

    @property
    def rules(self) -> List[ClassificationRule]:
        return list(self._rules.values())

    def find_rule(self, level: Union[ClassificationLevel, str]) -> Optional[ClassificationRule]:
        """Get the rule for a classification level, or None if there is none."""
        return self._rules.get(taxonomy_key(level))

    def evaluate_snapshot(
        self,
        snapshot_id: str,
        snapshot_time: datetime,
        classification_level: Union[ClassificationLevel, str],
        data_types: Optional[Iterable[Union[DataType, str]]] = None,
        is_on_legal_hold: bool = False,
        now: Optional[datetime] = None,
    ) -> SnapshotEvaluation:
        """
        Evaluate a single snapshot and return the recommended action.

        Args:
            snapshot_id: Identifier of the snapshot
            snapshot_time: When the snapshot was taken
            classification_level: Classification level assigned to the snapshot
            data_types: Data types present in the snapshot
            is_on_legal_hold: Whether the snapshot is under legal hold
            now: Evaluation time, defaults to the current time

        Returns:
            Evaluation describing the action and the retention that applied
        """
        age_days = snapshot_age_days(snapshot_time, now)

        if is_on_legal_hold:
            return SnapshotEvaluation(
                snapshot_id=snapshot_id,
                action=SnapshotAction.HOLD,
                reason="Snapshot is under legal hold and cannot be deleted",
                snapshot_age_days=age_days,
                min_retention_days=0,
                max_retention_days=0,
                days_until_deletable=0,
                days_until_auto_delete=0,
                classification_level=classification_level,
                is_on_legal_hold=True,
            )

        rule = self.find_rule(classification_level)
        if rule is None:
            logger.debug("No rule for classification level, using restricted rule",
                         snapshot_id=snapshot_id,
                         classification_level=taxonomy_key(classification_level))
            rule = self.find_rule(ClassificationLevel.RESTRICTED)

        if rule is None:
            logger.debug("No restricted rule configured, keeping snapshot",
                         snapshot_id=snapshot_id)
            return SnapshotEvaluation(
                snapshot_id=snapshot_id,
                action=SnapshotAction.KEEP,
                reason="No lifecycle policy found, keeping by default",
                snapshot_age_days=age_days,
                min_retention_days=FALLBACK_MIN_RETENTION_DAYS,
                max_retention_days=0,
                days_until_deletable=FALLBACK_MIN_RETENTION_DAYS - age_days,
                days_until_auto_delete=0,
                classification_level=classification_level,
                is_on_legal_hold=False,
            )

        retention = merge_retention(rule, data_types or [])

        days_until_auto_delete = 0
        if retention.has_cap:
            days_until_auto_delete = retention.max_days - age_days

        if age_days < retention.min_days:
            action = SnapshotAction.KEEP
            reason = "Snapshot is within minimum retention period (compliance)"
        elif retention.has_cap and age_days >= retention.max_days:
            action = SnapshotAction.MUST_DELETE
            reason = "Snapshot has exceeded maximum retention period"
        elif retention.has_cap:
            action = SnapshotAction.CAN_DELETE
            reason = "Snapshot is past minimum retention and can be deleted before max retention"
        else:
            action = SnapshotAction.CAN_DELETE
            reason = "Snapshot is past minimum retention, no auto-delete configured"

        return SnapshotEvaluation(
            snapshot_id=snapshot_id,
            action=action,
            reason=reason,
            snapshot_age_days=age_days,
            min_retention_days=retention.min_days,
            max_retention_days=retention.max_days,
            days_until_deletable=retention.min_days - age_days,
            days_until_auto_delete=days_until_auto_delete,
            classification_level=classification_level,
            is_on_legal_hold=False,
        )


def merge_retention(rule: ClassificationRule,
                    data_types: Iterable[Union[DataType, str]]) -> RetentionDuration:
    """
    Fold each data type's effective retention into the rule's base retention.

    The longest minimum wins. For the maximum, an override with no cap (0)
    removes the cap entirely; otherwise the longest cap wins.
    """
    min_days = rule.retention.min_days
    max_days = rule.retention.max_days

    for data_type in data_types:
        window = rule.effective_retention(data_type)
        if window.min_days > min_days:
            min_days = window.min_days
        if window.max_days == 0 or (max_days > 0 and window.max_days > max_days):
            max_days = window.max_days

    return RetentionDuration(min_days=min_days, max_days=max_days)


def snapshot_age_days(snapshot_time: datetime, now: Optional[datetime] = None) -> int:
    """Whole days elapsed since the snapshot, truncated toward zero.

    Naive datetimes are read as UTC when compared against aware ones.
    """
    if now is None:
        now = datetime.now(timezone.utc) if snapshot_time.tzinfo else datetime.now()

    if (now.tzinfo is None) != (snapshot_time.tzinfo is None):
        now = _as_utc(now)
        snapshot_time = _as_utc(snapshot_time)

    return int((now - snapshot_time).total_seconds() / SECONDS_PER_DAY)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def create_lifecycle_evaluator(rules: Iterable[ClassificationRule]) -> LifecycleEvaluator:
    """Create a new LifecycleEvaluator instance with the given rules."""
    return LifecycleEvaluator(rules)


def create_default_evaluator() -> LifecycleEvaluator:
    """Create an evaluator with the default classification rules."""
    return LifecycleEvaluator(default_classification_rules())
