"""
Base metrics collector for snapkeep.

Provides registry management, metric factories and timed asynchronous
collection shared by all collectors.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry


class MetricsCollector(ABC):
    """
    Base class for all metrics collectors.

    Each collector owns a registry (a fresh one unless one is injected) so
    several collectors can coexist in one process or test session.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional Prometheus registry. If None, a new registry is created.
        """
        self.registry = registry or CollectorRegistry()
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")
        self._collection_start_time = time.time()
        self._last_collection_time = 0.0
        self._collection_count = 0

        collector_type = self.__class__.__name__.lower()
        self._collection_duration = Histogram(
            f'metrics_collection_duration_seconds_{collector_type}',
            'Time spent collecting metrics',
            registry=self.registry
        )

        self._collection_errors = Counter(
            f'metrics_collection_errors_total_{collector_type}',
            'Total number of metrics collection errors',
            ['error_type'],
            registry=self.registry
        )

        self._initialize_metrics()

    @abstractmethod
    def _initialize_metrics(self) -> None:
        """Initialize collector-specific metrics."""

    @abstractmethod
    async def collect_metrics(self) -> Dict[str, Any]:
        """Collect metrics. Must be implemented by subclasses."""

    async def collect(self) -> Dict[str, Any]:
        """
        Main collection method with duration and error tracking.

        Returns:
            Dictionary containing collected metrics data
        """
        start_time = time.time()

        try:
            metrics_data = await self.collect_metrics()
        except Exception as e:
            self._collection_errors.labels(error_type=type(e).__name__).inc()
            self.logger.error(f"Error collecting metrics: {e}")
            raise

        duration = time.time() - start_time
        self._collection_duration.observe(duration)
        self._last_collection_time = time.time()
        self._collection_count += 1

        self.logger.debug(f"Collected {len(metrics_data)} metrics in {duration:.4f}s")
        return metrics_data

    def get_registry(self) -> CollectorRegistry:
        return self.registry

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get a summary of collection activity."""
        uptime = time.time() - self._collection_start_time
        return {
            'collector_type': self.__class__.__name__,
            'uptime_seconds': uptime,
            'collection_count': self._collection_count,
            'last_collection_time': self._last_collection_time,
        }

    def create_counter(self,
                       name: str,
                       description: str,
                       labelnames: Optional[List[str]] = None) -> Counter:
        return Counter(name, description, labelnames or [], registry=self.registry)

    def create_histogram(self,
                         name: str,
                         description: str,
                         labelnames: Optional[List[str]] = None,
                         buckets: Optional[List[float]] = None) -> Histogram:
        if buckets is None:
            return Histogram(name, description, labelnames or [], registry=self.registry)
        return Histogram(name, description, labelnames or [], buckets=buckets, registry=self.registry)

    def create_gauge(self,
                     name: str,
                     description: str,
                     labelnames: Optional[List[str]] = None) -> Gauge:
        return Gauge(name, description, labelnames or [], registry=self.registry)
