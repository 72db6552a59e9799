"""
Lifecycle metrics collector for snapkeep.

Tracks evaluation outcomes per action and classification level, snapshot age
distribution, and the counters of the most recent dry run.
"""

from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry

from snapkeep.classification import taxonomy_key
from snapkeep.lifecycle.lifecycle_models import DryRunResult, SnapshotAction, SnapshotEvaluation
from .metrics_collector import MetricsCollector


class LifecycleMetricsCollector(MetricsCollector):
    """Collects metrics about snapshot lifecycle evaluations and dry runs."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self._action_totals: Dict[str, int] = {action.value: 0 for action in SnapshotAction}
        self._last_dry_run: Optional[Dict[str, Any]] = None
        super().__init__(registry)

    def _initialize_metrics(self) -> None:
        self.evaluations_total = self.create_counter(
            'snapshot_lifecycle_evaluations_total',
            'Total snapshot lifecycle evaluations',
            ['action', 'classification_level']
        )

        self.snapshot_age = self.create_histogram(
            'snapshot_lifecycle_age_days',
            'Age of evaluated snapshots in days',
            ['classification_level'],
            buckets=[7, 30, 90, 365, 730, 2190, 2555, 3650]
        )

        self.dry_runs_total = self.create_counter(
            'snapshot_lifecycle_dry_runs_total',
            'Total lifecycle dry runs recorded'
        )

        self.last_dry_run_snapshots = self.create_gauge(
            'snapshot_lifecycle_last_dry_run_snapshots',
            'Snapshots per action in the most recent dry run',
            ['action']
        )

        self.last_dry_run_bytes_to_delete = self.create_gauge(
            'snapshot_lifecycle_last_dry_run_bytes_to_delete',
            'Bytes reclaimable according to the most recent dry run'
        )

    def record_evaluation(self, evaluation: SnapshotEvaluation) -> None:
        """Record the outcome of a single evaluation."""
        level = taxonomy_key(evaluation.classification_level)
        self.evaluations_total.labels(
            action=evaluation.action.value,
            classification_level=level
        ).inc()
        self.snapshot_age.labels(classification_level=level).observe(evaluation.snapshot_age_days)
        self._action_totals[evaluation.action.value] += 1

    def record_dry_run(self, result: DryRunResult) -> None:
        """Record every evaluation of a dry run and publish its counters."""
        for evaluation in result.evaluations:
            self.record_evaluation(evaluation)

        self.dry_runs_total.inc()
        counts = {
            SnapshotAction.KEEP.value: result.keep_count,
            SnapshotAction.CAN_DELETE.value: result.can_delete_count,
            SnapshotAction.MUST_DELETE.value: result.must_delete_count,
            SnapshotAction.HOLD.value: result.hold_count,
        }
        for action, count in counts.items():
            self.last_dry_run_snapshots.labels(action=action).set(count)
        self.last_dry_run_bytes_to_delete.set(result.total_size_to_delete_bytes)

        self._last_dry_run = {
            'evaluated_at': result.evaluated_at.isoformat(),
            'policy_id': result.policy_id,
            'total_snapshots': result.total_snapshots,
            'counts': counts,
            'total_size_to_delete_bytes': result.total_size_to_delete_bytes,
        }

    async def collect_metrics(self) -> Dict[str, Any]:
        return {
            'evaluations_by_action': dict(self._action_totals),
            'total_evaluations': sum(self._action_totals.values()),
            'last_dry_run': self._last_dry_run,
        }
