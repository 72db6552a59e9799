"""
Unit tests for the snapshot lifecycle evaluator.

Covers legal hold precedence, rule fallbacks, most-restrictive merging of
data type overrides and the keep/can-delete/must-delete decision.
"""

from datetime import datetime, timedelta, timezone

import pytest

from snapkeep.classification import ClassificationLevel, DataType
from snapkeep.lifecycle.evaluator import (
    FALLBACK_MIN_RETENTION_DAYS,
    LifecycleEvaluator,
    create_default_evaluator,
    create_lifecycle_evaluator,
    merge_retention,
    snapshot_age_days,
)
from snapkeep.lifecycle.lifecycle_models import (
    ClassificationRule,
    InvalidRetentionError,
    RetentionDuration,
    SnapshotAction,
)

NOW = datetime(2026, 6, 1, 12, 0, 0)


def aged(days: int) -> datetime:
    """Snapshot time that is exactly ``days`` old at NOW."""
    return NOW - timedelta(days=days)


@pytest.fixture
def evaluator():
    return create_default_evaluator()


class TestEvaluatorConstruction:
    """Test evaluator construction and rule validation."""

    def test_default_evaluator_has_four_levels(self, evaluator):
        """Test the default evaluator carries every classification level."""
        for level in ClassificationLevel:
            assert evaluator.find_rule(level) is not None
        assert len(evaluator.rules) == 4

    def test_custom_rules(self):
        """Test construction from a custom rule set."""
        rules = [ClassificationRule(ClassificationLevel.PUBLIC, RetentionDuration(1, 2))]
        custom = create_lifecycle_evaluator(rules)

        assert custom.find_rule("public").retention == RetentionDuration(1, 2)
        assert custom.find_rule(ClassificationLevel.RESTRICTED) is None

    def test_invalid_window_rejected(self):
        """Test a rule with max below min blocks construction."""
        rules = [ClassificationRule(ClassificationLevel.PUBLIC, RetentionDuration(90, 30))]

        with pytest.raises(InvalidRetentionError):
            LifecycleEvaluator(rules)

    def test_invalid_override_rejected(self):
        """Test an invalid data type override blocks construction."""
        rules = [
            ClassificationRule(
                ClassificationLevel.INTERNAL,
                RetentionDuration(90, 365),
                {DataType.PII: RetentionDuration(-1, 0)},
            )
        ]

        with pytest.raises(InvalidRetentionError):
            LifecycleEvaluator(rules)

    def test_duplicate_level_rejected(self):
        """Test two rules for the same level are rejected."""
        rules = [
            ClassificationRule(ClassificationLevel.PUBLIC, RetentionDuration(30, 90)),
            ClassificationRule("public", RetentionDuration(10, 20)),
        ]

        with pytest.raises(InvalidRetentionError):
            LifecycleEvaluator(rules)

    def test_rules_from_generator(self):
        """Test rules can be supplied as any iterable."""
        custom = LifecycleEvaluator(rule for rule in [
            ClassificationRule(ClassificationLevel.PUBLIC, RetentionDuration(30, 90)),
        ])
        assert custom.find_rule(ClassificationLevel.PUBLIC) is not None


class TestLegalHold:
    """Test legal hold takes precedence over every rule."""

    @pytest.mark.parametrize("level", ["public", "internal", "confidential", "restricted", "unknown"])
    @pytest.mark.parametrize("age", [0, 10, 95, 9999])
    def test_hold_dominates(self, evaluator, level, age):
        """Test a held snapshot is never deletable."""
        result = evaluator.evaluate_snapshot(
            "snap", aged(age), level, [DataType.PII, DataType.PHI], True, now=NOW
        )

        assert result.action == SnapshotAction.HOLD
        assert result.is_on_legal_hold is True
        assert result.is_deletable is False

    def test_hold_on_old_public_snapshot(self, evaluator):
        """Test a 9999 day old public snapshot on hold is held, not deleted."""
        result = evaluator.evaluate_snapshot("snap-hold", aged(9999), "public", [], True, now=NOW)

        assert result.action == SnapshotAction.HOLD
        assert result.snapshot_age_days == 9999
        assert "legal hold" in result.reason


class TestDefaultScenarios:
    """Test the documented behaviour of the default rule set."""

    def test_young_public_snapshot_kept(self, evaluator):
        result = evaluator.evaluate_snapshot("s1", aged(10), ClassificationLevel.PUBLIC, [], False, now=NOW)

        assert result.action == SnapshotAction.KEEP
        assert result.days_until_deletable == 20
        assert result.days_until_auto_delete == 80
        assert result.min_retention_days == 30
        assert result.max_retention_days == 90
        assert "minimum retention" in result.reason

    def test_public_past_max_must_delete(self, evaluator):
        result = evaluator.evaluate_snapshot("s2", aged(95), ClassificationLevel.PUBLIC, [], False, now=NOW)

        assert result.action == SnapshotAction.MUST_DELETE
        assert result.days_until_auto_delete == -5
        assert result.days_until_deletable == -65

    def test_restricted_health_data_kept(self, evaluator):
        result = evaluator.evaluate_snapshot(
            "s3", aged(2000), ClassificationLevel.RESTRICTED, [DataType.PHI], False, now=NOW
        )

        assert result.action == SnapshotAction.KEEP
        assert result.max_retention_days == 0
        assert result.days_until_auto_delete == 0

    def test_confidential_personal_data_past_max(self, evaluator):
        result = evaluator.evaluate_snapshot(
            "s4", aged(2600), ClassificationLevel.CONFIDENTIAL, [DataType.PII], False, now=NOW
        )

        assert result.action == SnapshotAction.MUST_DELETE
        assert result.max_retention_days == 2555

    def test_unknown_level_falls_back_to_restricted(self, evaluator):
        result = evaluator.evaluate_snapshot("s5", aged(10), "top-secret", [], False, now=NOW)

        assert result.action == SnapshotAction.KEEP
        assert result.min_retention_days == 2555
        assert result.max_retention_days == 0
        assert result.classification_level == "top-secret"

    def test_string_level_matches_enum_rule(self, evaluator):
        """Test plain strings from a store find the same rule as enum members."""
        by_string = evaluator.evaluate_snapshot("s", aged(50), "internal", ["pii"], False, now=NOW)
        by_enum = evaluator.evaluate_snapshot(
            "s", aged(50), ClassificationLevel.INTERNAL, [DataType.PII], False, now=NOW
        )

        assert by_string.action == by_enum.action == SnapshotAction.KEEP
        assert by_string.min_retention_days == by_enum.min_retention_days == 90


class TestActionBoundaries:
    """Test the decision boundaries around min and max retention."""

    def test_monotonic_keep_below_minimum(self, evaluator):
        for age in range(0, 30):
            result = evaluator.evaluate_snapshot("s", aged(age), "public", [], False, now=NOW)
            assert result.action == SnapshotAction.KEEP

    def test_can_delete_between_min_and_max(self, evaluator):
        for age in (30, 31, 60, 89):
            result = evaluator.evaluate_snapshot("s", aged(age), "public", [], False, now=NOW)
            assert result.action == SnapshotAction.CAN_DELETE
            assert "before max retention" in result.reason

    def test_must_delete_at_and_after_max(self, evaluator):
        for age in (90, 91, 365, 5000):
            result = evaluator.evaluate_snapshot("s", aged(age), "public", [], False, now=NOW)
            assert result.action == SnapshotAction.MUST_DELETE

    def test_uncapped_snapshot_can_delete(self, evaluator):
        """Test a restricted snapshot past its minimum is optional to delete."""
        result = evaluator.evaluate_snapshot("s", aged(3000), "restricted", [], False, now=NOW)

        assert result.action == SnapshotAction.CAN_DELETE
        assert "no auto-delete configured" in result.reason
        assert result.days_until_auto_delete == 0
        assert result.days_until_deletable == 2555 - 3000

    def test_partial_day_is_truncated(self, evaluator):
        """Test 29 days and 23 hours counts as 29 days."""
        snapshot_time = NOW - timedelta(days=29, hours=23)
        result = evaluator.evaluate_snapshot("s", snapshot_time, "public", [], False, now=NOW)

        assert result.snapshot_age_days == 29
        assert result.action == SnapshotAction.KEEP


class TestMostRestrictiveMerge:
    """Test data type overrides only tighten retention."""

    def _rule(self, base, **overrides):
        return ClassificationRule(
            ClassificationLevel.INTERNAL,
            base,
            {data_type: window for data_type, window in overrides.items()},
        )

    def test_indefinite_override_wins(self):
        rule = self._rule(RetentionDuration(90, 365), pii=RetentionDuration(365, 0))

        assert merge_retention(rule, ["pii"]) == RetentionDuration(365, 0)

    def test_zero_cap_wins_in_either_order(self):
        """Test an explicit no-cap override beats a finite cap regardless of order."""
        rule = self._rule(
            RetentionDuration(30, 100),
            pii=RetentionDuration(30, 0),
            pci=RetentionDuration(30, 500),
        )

        assert merge_retention(rule, ["pii", "pci"]).max_days == 0
        assert merge_retention(rule, ["pci", "pii"]).max_days == 0

    def test_longest_cap_wins(self):
        rule = self._rule(
            RetentionDuration(30, 100),
            pii=RetentionDuration(30, 200),
            pci=RetentionDuration(30, 150),
        )

        assert merge_retention(rule, ["pii", "pci"]).max_days == 200
        assert merge_retention(rule, ["pci", "pii"]).max_days == 200

    def test_shorter_override_does_not_loosen(self):
        rule = self._rule(RetentionDuration(90, 365), pci=RetentionDuration(10, 50))

        assert merge_retention(rule, ["pci"]) == RetentionDuration(90, 365)

    def test_unknown_data_type_uses_base(self):
        rule = self._rule(RetentionDuration(90, 365), pii=RetentionDuration(365, 0))

        assert merge_retention(rule, ["telemetry"]) == RetentionDuration(90, 365)

    def test_base_without_cap_stays_uncapped(self):
        """Test a finite override cannot introduce a cap on an uncapped level."""
        rule = self._rule(RetentionDuration(90, 0), pci=RetentionDuration(365, 2555))

        assert merge_retention(rule, ["pci"]) == RetentionDuration(365, 0)

    def test_merge_applied_during_evaluation(self):
        rule = self._rule(RetentionDuration(90, 365), pii=RetentionDuration(365, 0))
        custom = LifecycleEvaluator([rule])

        result = custom.evaluate_snapshot("s", aged(400), "internal", ["pii"], False, now=NOW)

        assert result.min_retention_days == 365
        assert result.max_retention_days == 0
        assert result.action == SnapshotAction.CAN_DELETE

    def test_restricted_pci_keeps_no_cap(self, evaluator):
        """Test the restricted level's missing cap survives a capped override."""
        result = evaluator.evaluate_snapshot("s", aged(3000), "restricted", [DataType.PCI], False, now=NOW)

        assert result.max_retention_days == 0
        assert result.min_retention_days == 2555


class TestFallbacks:
    """Test behaviour when the rule set lacks the requested level."""

    def test_absolute_fallback_without_restricted_rule(self):
        custom = LifecycleEvaluator([
            ClassificationRule(ClassificationLevel.PUBLIC, RetentionDuration(30, 90)),
        ])

        result = custom.evaluate_snapshot("s", aged(400), "confidential", [], False, now=NOW)

        assert result.action == SnapshotAction.KEEP
        assert result.min_retention_days == FALLBACK_MIN_RETENTION_DAYS
        assert result.days_until_deletable == FALLBACK_MIN_RETENTION_DAYS - 400
        assert result.max_retention_days == 0
        assert "No lifecycle policy found" in result.reason

    def test_empty_rule_set_keeps_everything(self):
        custom = LifecycleEvaluator([])

        for age in (0, 365, 10000):
            result = custom.evaluate_snapshot("s", aged(age), "public", [], False, now=NOW)
            assert result.action == SnapshotAction.KEEP

    def test_empty_rule_set_still_honours_hold(self):
        result = LifecycleEvaluator([]).evaluate_snapshot("s", aged(5), "public", [], True, now=NOW)

        assert result.action == SnapshotAction.HOLD


class TestEvaluationProperties:
    """Test idempotence and totality of evaluation."""

    def test_idempotent(self, evaluator):
        args = ("snap-1", aged(123), "confidential", [DataType.PII, DataType.PROPRIETARY], False)

        first = evaluator.evaluate_snapshot(*args, now=NOW)
        second = evaluator.evaluate_snapshot(*args, now=NOW)

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_none_data_types(self, evaluator):
        result = evaluator.evaluate_snapshot("s", aged(10), "public", None, False, now=NOW)

        assert result.action == SnapshotAction.KEEP

    def test_future_snapshot(self, evaluator):
        """Test a snapshot dated after evaluation time is kept."""
        result = evaluator.evaluate_snapshot("s", NOW + timedelta(days=3), "public", [], False, now=NOW)

        assert result.snapshot_age_days == -3
        assert result.action == SnapshotAction.KEEP

    def test_mixed_timezone_awareness(self, evaluator):
        """Test naive and aware datetimes can be compared without raising."""
        snapshot_time = datetime(2026, 1, 1, tzinfo=timezone.utc)
        result = evaluator.evaluate_snapshot("s", snapshot_time, "public", [], False, now=datetime(2026, 1, 11))

        assert result.snapshot_age_days == 10

    def test_default_now(self, evaluator):
        """Test evaluation without an explicit time uses the current time."""
        result = evaluator.evaluate_snapshot(
            "s", datetime.now(timezone.utc) - timedelta(days=45, hours=1), "public", [], False
        )

        assert result.snapshot_age_days == 45
        assert result.action == SnapshotAction.CAN_DELETE


class TestSnapshotAge:
    """Test age computation."""

    def test_whole_days(self):
        assert snapshot_age_days(aged(7), NOW) == 7

    def test_aware_datetimes(self):
        now = datetime(2026, 3, 10, tzinfo=timezone.utc)
        snapshot_time = datetime(2026, 3, 1, 1, tzinfo=timezone(timedelta(hours=2)))

        assert snapshot_age_days(snapshot_time, now) == 9
