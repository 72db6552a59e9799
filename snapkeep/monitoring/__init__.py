"""
Monitoring module for snapkeep.

Prometheus metrics for lifecycle evaluations and dry runs.
"""

from .metrics_collector import MetricsCollector
from .lifecycle_metrics import LifecycleMetricsCollector

__all__ = [
    'MetricsCollector',
    'LifecycleMetricsCollector',
]
