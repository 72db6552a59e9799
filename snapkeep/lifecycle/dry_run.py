"""
Dry-run lifecycle evaluation over a set of snapshots.

Snapshot metadata is supplied by the caller from its own store; nothing here
reads storage or deletes data.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Union

import structlog

from snapkeep.classification import ClassificationLevel, DataType
from .evaluator import LifecycleEvaluator
from .lifecycle_config import LifecyclePolicy
from .lifecycle_models import DryRunResult

logger = structlog.get_logger(__name__)


@dataclass
class SnapshotRecord:
    """Snapshot metadata needed to evaluate its lifecycle."""
    snapshot_id: str
    snapshot_time: datetime
    classification_level: Optional[Union[ClassificationLevel, str]] = None
    data_types: List[Union[DataType, str]] = field(default_factory=list)
    is_on_legal_hold: bool = False
    size_bytes: Optional[int] = None
    repository_id: Optional[str] = None
    schedule_id: Optional[str] = None
    schedule_name: str = ""


def run_dry_run(evaluator: LifecycleEvaluator,
                snapshots: Iterable[SnapshotRecord],
                policy_id: Optional[str] = None,
                repository_ids: Optional[Iterable[str]] = None,
                schedule_ids: Optional[Iterable[str]] = None,
                now: Optional[datetime] = None) -> DryRunResult:
    """
    Evaluate every snapshot in scope and aggregate the results.

    Args:
        evaluator: Evaluator holding the rule set to apply
        snapshots: Snapshot records to evaluate
        policy_id: Policy id stamped on the result
        repository_ids: Limit to these repositories (empty or None = all)
        schedule_ids: Limit to these schedules (empty or None = all)
        now: Evaluation time shared by every snapshot in the run

    Returns:
        Dry-run result with one evaluation per snapshot in scope
    """
    now = now or datetime.now()
    repo_filter = set(repository_ids or [])
    schedule_filter = set(schedule_ids or [])

    result = DryRunResult(evaluated_at=now, policy_id=policy_id)
    skipped = 0

    for record in snapshots:
        if not record.snapshot_id:
            skipped += 1
            continue

        if repo_filter and record.repository_id is not None and record.repository_id not in repo_filter:
            skipped += 1
            continue

        if schedule_filter and record.schedule_id not in schedule_filter:
            skipped += 1
            continue

        # Backups without a classification record are treated as public
        level = record.classification_level or ClassificationLevel.PUBLIC

        evaluation = evaluator.evaluate_snapshot(
            record.snapshot_id,
            record.snapshot_time,
            level,
            record.data_types,
            record.is_on_legal_hold,
            now=now,
        )
        result.add_evaluation(evaluation, record.size_bytes or 0, details={
            'snapshot_time': record.snapshot_time.isoformat(),
            'repository_id': record.repository_id,
            'schedule_name': record.schedule_name,
        })

    logger.info("Lifecycle dry run completed",
                policy_id=policy_id,
                total_snapshots=result.total_snapshots,
                keep=result.keep_count,
                can_delete=result.can_delete_count,
                must_delete=result.must_delete_count,
                hold=result.hold_count,
                skipped=skipped,
                total_size_to_delete_bytes=result.total_size_to_delete_bytes)

    return result


def run_policy_dry_run(policy: LifecyclePolicy,
                       snapshots: Iterable[SnapshotRecord],
                       now: Optional[datetime] = None) -> DryRunResult:
    """Dry-run a lifecycle policy within its repository and schedule scope."""
    now = now or datetime.now()
    if not policy.is_active():
        logger.warning("Dry run of inactive lifecycle policy",
                       policy_id=policy.id, status=policy.status.value)

    result = run_dry_run(
        policy.build_evaluator(),
        snapshots,
        policy_id=policy.id,
        repository_ids=policy.repository_ids,
        schedule_ids=policy.schedule_ids,
        now=now,
    )
    policy.last_evaluated_at = now
    return result
