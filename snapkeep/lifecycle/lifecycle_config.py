"""
Configuration management for the lifecycle system.

This module handles loading, validation, and management of lifecycle policies
and classification retention rules from YAML.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from snapkeep.classification import taxonomy_key
from .evaluator import LifecycleEvaluator
from .lifecycle_logging import LifecycleAuditLogger
from .lifecycle_models import (
    ClassificationRule,
    InvalidRetentionError,
    RetentionDuration,
    default_classification_rules,
)

logger = logging.getLogger(__name__)


class LifecycleConfigError(Exception):
    """Raised when lifecycle configuration cannot be loaded or is invalid."""


class RetentionWindow(BaseModel):
    """Retention window as written in configuration."""
    min_days: int = 0
    max_days: int = 0

    def to_duration(self) -> RetentionDuration:
        return RetentionDuration(min_days=self.min_days, max_days=self.max_days)


class DataTypeOverride(BaseModel):
    """Different retention for one data type within a classification level."""
    data_type: str
    retention: RetentionWindow


class ClassificationRetention(BaseModel):
    """Retention rules for a classification level as written in configuration."""
    level: str
    retention: RetentionWindow
    data_type_overrides: List[DataTypeOverride] = Field(default_factory=list)

    @field_validator("data_type_overrides")
    @classmethod
    def unique_data_types(cls, overrides: List[DataTypeOverride]) -> List[DataTypeOverride]:
        seen = set()
        for override in overrides:
            if override.data_type in seen:
                raise ValueError(f"duplicate data type override '{override.data_type}'")
            seen.add(override.data_type)
        return overrides

    def to_rule(self) -> ClassificationRule:
        return ClassificationRule(
            level=self.level,
            retention=self.retention.to_duration(),
            data_type_overrides={
                override.data_type: override.retention.to_duration()
                for override in self.data_type_overrides
            },
        )

    @classmethod
    def from_rule(cls, rule: ClassificationRule) -> "ClassificationRetention":
        return cls(
            level=rule.level_key,
            retention=RetentionWindow(min_days=rule.retention.min_days,
                                      max_days=rule.retention.max_days),
            data_type_overrides=[
                DataTypeOverride(
                    data_type=data_type,
                    retention=RetentionWindow(min_days=window.min_days, max_days=window.max_days),
                )
                for data_type, window in rule.data_type_overrides.items()
            ],
        )


class LifecyclePolicyStatus(str, Enum):
    """Status of a lifecycle policy."""
    ACTIVE = "active"
    DRAFT = "draft"
    DISABLED = "disabled"


class LifecyclePolicy(BaseModel):
    """A named lifecycle policy for automatic snapshot deletion."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    description: str = ""
    status: LifecyclePolicyStatus = LifecyclePolicyStatus.DRAFT
    rules: List[ClassificationRetention] = Field(default_factory=list)
    # Empty scope lists mean the policy covers all repositories/schedules
    repository_ids: List[str] = Field(default_factory=list)
    schedule_ids: List[str] = Field(default_factory=list)
    last_evaluated_at: Optional[datetime] = None
    deletion_count: int = 0
    bytes_reclaimed: int = 0

    def is_active(self) -> bool:
        return self.status == LifecyclePolicyStatus.ACTIVE

    def to_classification_rules(self) -> List[ClassificationRule]:
        """Convert the configured rules into evaluator rules."""
        return [rule.to_rule() for rule in self.rules]

    def build_evaluator(self) -> LifecycleEvaluator:
        """Create an evaluator for this policy's rules."""
        return LifecycleEvaluator(self.to_classification_rules())


class LifecycleSettings(BaseModel):
    """Global settings from the ``lifecycle`` section."""
    enabled: bool = True
    default_policy_id: Optional[str] = None


class AuditSettings(BaseModel):
    """Audit trail settings from the ``audit`` section."""
    enabled: bool = True
    logs_dir: str = "logs/lifecycle"
    write_reports: bool = True


@dataclass
class LifecycleConfig:
    """Parsed lifecycle configuration."""
    global_settings: LifecycleSettings
    default_rules: List[ClassificationRule]
    policies: Dict[str, LifecyclePolicy]
    audit: AuditSettings


class LifecycleConfigManager:
    """Manages lifecycle system configuration.

    A missing config file is replaced by the built-in defaults, which are
    written out for editing. An unreadable or invalid file raises
    ``LifecycleConfigError``: retention rules never fall back silently.
    """

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        self.config = self._load_config()

    def _load_config(self) -> LifecycleConfig:
        """Load configuration from YAML file."""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    config_data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise LifecycleConfigError(f"Failed to read config {self.config_path}: {e}") from e
        else:
            logger.warning(f"Config file not found at {self.config_path}. Using defaults.")
            config_data = self._get_default_config()
            self._save_config(config_data)

        if not isinstance(config_data, dict):
            raise LifecycleConfigError(f"Config {self.config_path} must be a mapping")

        config = self._parse_config(config_data)
        logger.info(f"Loaded lifecycle config with {len(config.policies)} policies "
                    f"from {self.config_path}")
        return config

    def _parse_config(self, config_data: Dict[str, Any]) -> LifecycleConfig:
        """Parse configuration data into a LifecycleConfig object."""
        try:
            # An empty section (null in YAML) means all defaults
            global_settings = LifecycleSettings.model_validate(config_data.get('lifecycle') or {})
            audit = AuditSettings.model_validate(config_data.get('audit') or {})

            if 'default_rules' in config_data:
                default_rules = [
                    ClassificationRetention(**rule_data).to_rule()
                    for rule_data in config_data.get('default_rules') or []
                ]
            else:
                default_rules = default_classification_rules()

            policies = {}
            for policy_data in config_data.get('policies') or []:
                policy = LifecyclePolicy(**policy_data)
                if policy.id in policies:
                    raise LifecycleConfigError(f"Duplicate lifecycle policy id: {policy.id}")
                policies[policy.id] = policy
        except (TypeError, ValidationError) as e:
            raise LifecycleConfigError(f"Invalid lifecycle config: {e}") from e

        self._validate_rules("default_rules", default_rules)
        for policy in policies.values():
            self._validate_rules(f"policy '{policy.name}'", policy.to_classification_rules())

        return LifecycleConfig(
            global_settings=global_settings,
            default_rules=default_rules,
            policies=policies,
            audit=audit,
        )

    def _validate_rules(self, source: str, rules: List[ClassificationRule]):
        """Reject rule sets the evaluator would refuse."""
        try:
            LifecycleEvaluator(rules)
        except InvalidRetentionError as e:
            raise LifecycleConfigError(f"Invalid retention rules in {source}: {e}") from e

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            'lifecycle': {
                'enabled': True,
                'default_policy_id': None,
            },
            'default_rules': [
                ClassificationRetention.from_rule(rule).model_dump()
                for rule in default_classification_rules()
            ],
            'policies': [],
            'audit': {
                'enabled': True,
                'logs_dir': 'logs/lifecycle',
                'write_reports': True,
            },
        }

    def _save_config(self, config_data: Dict[str, Any]):
        """Save configuration to YAML file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, 'w') as f:
                yaml.safe_dump(config_data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    def is_enabled(self) -> bool:
        """Check if lifecycle evaluation is enabled."""
        return self.config.global_settings.enabled

    def get_default_rules(self) -> List[ClassificationRule]:
        return list(self.config.default_rules)

    def get_policy(self, policy_id: str) -> Optional[LifecyclePolicy]:
        """Get a lifecycle policy by id."""
        return self.config.policies.get(policy_id)

    def get_active_policies(self) -> List[LifecyclePolicy]:
        """Get all policies that are actively enforced."""
        return [policy for policy in self.config.policies.values() if policy.is_active()]

    def build_evaluator(self, policy_id: Optional[str] = None) -> LifecycleEvaluator:
        """
        Create an evaluator for a policy, or for the default rules.

        Args:
            policy_id: Policy to evaluate with. If None, the configured
                ``default_policy_id`` is used, then the default rules.

        Raises:
            LifecycleConfigError: If the requested policy does not exist.
        """
        policy_id = policy_id or self.config.global_settings.default_policy_id
        if not policy_id:
            return LifecycleEvaluator(self.config.default_rules)

        policy = self.get_policy(policy_id)
        if policy is None:
            raise LifecycleConfigError(f"Lifecycle policy not found: {policy_id}")
        return policy.build_evaluator()

    def create_audit_logger(self) -> LifecycleAuditLogger:
        """Create an audit logger from the ``audit`` section.

        With auditing disabled the logger still logs, but writes no files.
        """
        audit = self.config.audit
        return LifecycleAuditLogger(audit.logs_dir,
                                    write_reports=audit.enabled and audit.write_reports)

    def describe_rules(self, rules: Optional[List[ClassificationRule]] = None) -> List[Dict[str, Any]]:
        """Summarize rules as plain dictionaries for audit trails."""
        rules = self.config.default_rules if rules is None else rules
        return [
            {
                'level': rule.level_key,
                'min_days': rule.retention.min_days,
                'max_days': rule.retention.max_days,
                'data_type_overrides': {
                    taxonomy_key(data_type): {'min_days': window.min_days, 'max_days': window.max_days}
                    for data_type, window in rule.data_type_overrides.items()
                },
            }
            for rule in rules
        ]


def create_config_manager(config_path: str) -> LifecycleConfigManager:
    """Create a new LifecycleConfigManager instance."""
    return LifecycleConfigManager(config_path)
