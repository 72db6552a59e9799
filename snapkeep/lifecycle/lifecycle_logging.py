"""
Logging and reporting for lifecycle dry runs.

This module handles run logging, audit trails, and summary reports. Failures
to write files are logged and never interrupt the caller.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Optional

from snapkeep.classification import taxonomy_key
from .lifecycle_models import DryRunResult, SnapshotAction, SnapshotEvaluation

logger = logging.getLogger(__name__)


class LifecycleAuditLogger:
    """Handles logging and reporting for lifecycle evaluations."""

    def __init__(self, logs_dir: str = "logs/lifecycle", write_reports: bool = True):
        self.logs_dir = Path(logs_dir)
        self.write_reports = write_reports
        if self.write_reports:
            try:
                self.logs_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"Failed to create lifecycle logs directory {self.logs_dir}: {e}")

    def log_evaluation(self, evaluation: SnapshotEvaluation):
        """Log a single snapshot evaluation at a level matching its action."""
        if evaluation.action == SnapshotAction.MUST_DELETE:
            logger.warning(f"Snapshot {evaluation.snapshot_id} must be deleted: {evaluation.reason} "
                           f"(age {evaluation.snapshot_age_days}d, max {evaluation.max_retention_days}d)")
        elif evaluation.action == SnapshotAction.HOLD:
            logger.info(f"Snapshot {evaluation.snapshot_id} on legal hold")
        else:
            logger.debug(f"Snapshot {evaluation.snapshot_id} {evaluation.action.value}: {evaluation.reason}")

    def log_dry_run(self, result: DryRunResult) -> Dict[str, Any]:
        """Log a dry run, store its audit entry and write its summary report."""
        summary = self.create_dry_run_summary(result)

        logger.info(f"Lifecycle dry run: {result.total_snapshots} snapshots - "
                    f"{result.keep_count} keep, {result.can_delete_count} can delete, "
                    f"{result.must_delete_count} must delete, {result.hold_count} on hold, "
                    f"{self._format_bytes(result.total_size_to_delete_bytes)} reclaimable")

        if result.must_delete_count:
            logger.warning(f"{result.must_delete_count} snapshots exceeded maximum retention")

        if self.write_reports:
            self._store_run_log(summary["overall_summary"], result)
            self._save_summary_report(summary)

        return summary

    def create_dry_run_summary(self, result: DryRunResult) -> Dict[str, Any]:
        """Create a summary report for a dry run."""
        by_level = self._breakdown_by_level(result.evaluations)

        return {
            "report_metadata": {
                "generated_at": datetime.now().isoformat(),
                "report_type": "lifecycle_dry_run",
                "evaluated_at": result.evaluated_at.isoformat(),
                "policy_id": result.policy_id,
                "report_version": "1.0.0"
            },
            "overall_summary": {
                "total_snapshots": result.total_snapshots,
                "keep_count": result.keep_count,
                "can_delete_count": result.can_delete_count,
                "must_delete_count": result.must_delete_count,
                "hold_count": result.hold_count,
                "total_size_to_delete_bytes": result.total_size_to_delete_bytes,
                "total_size_to_delete": self._format_bytes(result.total_size_to_delete_bytes)
            },
            "classification_breakdown": by_level,
            "evaluations": result.report_rows(),
            "recommendations": self._generate_recommendations(result)
        }

    def _breakdown_by_level(self, evaluations: List[SnapshotEvaluation]) -> Dict[str, Dict[str, int]]:
        """Count actions per classification level."""
        by_level: Dict[str, Dict[str, int]] = {}
        for evaluation in evaluations:
            level = taxonomy_key(evaluation.classification_level)
            if level not in by_level:
                by_level[level] = {action.value: 0 for action in SnapshotAction}
            by_level[level][evaluation.action.value] += 1
        return by_level

    def _generate_recommendations(self, result: DryRunResult) -> List[str]:
        """Generate recommendations based on dry run results."""
        recommendations = []

        if result.must_delete_count:
            recommendations.append(
                f"{result.must_delete_count} snapshots exceeded maximum retention - "
                f"schedule deletion to stay compliant")

        if result.hold_count:
            recommendations.append(
                f"{result.hold_count} snapshots are under legal hold - review holds that are no longer needed")

        no_policy = [e for e in result.evaluations if e.reason.startswith("No lifecycle policy found")]
        if no_policy:
            recommendations.append(
                f"{len(no_policy)} snapshots had no matching policy - add a restricted rule to the rule set")

        if result.total_snapshots and result.keep_count == result.total_snapshots:
            recommendations.append("All snapshots are within minimum retention - nothing to reclaim")

        if not recommendations:
            recommendations.append("No compliance issues detected")

        return recommendations

    def _format_bytes(self, size_bytes: int) -> str:
        """Format a byte count in a human-readable form."""
        if size_bytes < 1024:
            return f"{size_bytes} B"
        size = size_bytes / 1024
        for unit in ("KB", "MB", "GB"):
            if size < 1024:
                return f"{size:.2f} {unit}"
            size /= 1024
        return f"{size:.2f} TB"

    def _store_run_log(self, overall_summary: Dict[str, Any], result: DryRunResult):
        """Append the run summary to the daily JSONL audit log."""
        try:
            log_date = datetime.now().strftime("%Y-%m-%d")
            log_file = self.logs_dir / f"dry_runs_{log_date}.jsonl"

            log_entry = {
                "evaluated_at": result.evaluated_at.isoformat(),
                "policy_id": result.policy_id,
                **overall_summary
            }

            with open(log_file, 'a') as f:
                f.write(json.dumps(log_entry) + '\n')

        except OSError as e:
            logger.error(f"Failed to store dry run log: {e}")

    def _save_summary_report(self, report: Dict[str, Any]) -> Optional[Path]:
        """Save summary report to file."""
        try:
            reports_dir = self.logs_dir / "reports"
            reports_dir.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            report_file = reports_dir / f"dry_run_summary_{timestamp}.json"

            with open(report_file, 'w') as f:
                json.dump(report, f, indent=2)

            logger.info(f"Dry run summary report saved: {report_file}")
            return report_file

        except OSError as e:
            logger.error(f"Failed to save summary report: {e}")
            return None
