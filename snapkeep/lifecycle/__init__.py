"""
Snapshot lifecycle evaluation with compliance retention.

Retention windows come from classification rules; the evaluator turns a
snapshot's classification, data types, age and legal-hold flag into one of
four actions, and dry runs aggregate those actions for audit.
"""

from .lifecycle_models import (
    InvalidRetentionError,
    RetentionDuration,
    ClassificationRule,
    SnapshotAction,
    SnapshotEvaluation,
    DryRunResult,
    default_classification_rules,
)
from .evaluator import (
    LifecycleEvaluator,
    create_lifecycle_evaluator,
    create_default_evaluator,
    merge_retention,
    snapshot_age_days,
)
from .lifecycle_config import (
    LifecycleConfigError,
    LifecycleConfigManager,
    LifecyclePolicy,
    LifecyclePolicyStatus,
    LifecycleSettings,
    AuditSettings,
    ClassificationRetention,
    DataTypeOverride,
    RetentionWindow,
)
from .dry_run import SnapshotRecord, run_dry_run, run_policy_dry_run
from .lifecycle_logging import LifecycleAuditLogger

__all__ = [
    'InvalidRetentionError',
    'RetentionDuration',
    'ClassificationRule',
    'SnapshotAction',
    'SnapshotEvaluation',
    'DryRunResult',
    'default_classification_rules',
    'LifecycleEvaluator',
    'create_lifecycle_evaluator',
    'create_default_evaluator',
    'merge_retention',
    'snapshot_age_days',
    'LifecycleConfigError',
    'LifecycleConfigManager',
    'LifecyclePolicy',
    'LifecyclePolicyStatus',
    'LifecycleSettings',
    'AuditSettings',
    'ClassificationRetention',
    'DataTypeOverride',
    'RetentionWindow',
    'SnapshotRecord',
    'run_dry_run',
    'run_policy_dry_run',
    'LifecycleAuditLogger',
]
