"""Latest-result metrics per (check, cloud), exposed as a Prometheus collector.

``CheckMetrics`` only keeps the most recent observation for each key. The
collector renders from a snapshot, so the aggregator lock is never held
while Prometheus formats the exposition.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from dataclasses import dataclass

from prometheus_client import CollectorRegistry
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ..checker.manager import CheckResult

logger = logging.getLogger(__name__)

LABELS = ["name", "cloud"]


@dataclass(frozen=True)
class MetricSample:
    """Most recent observation for one check on one cloud."""

    name: str
    cloud: str
    healthy: bool
    duration_seconds: float
    last_update_unix: int


class CheckMetrics:
    """Thread-safe table of the latest MetricSample per (name, cloud)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: dict[tuple[str, str], MetricSample] = {}

    def update(self, result: CheckResult) -> MetricSample:
        sample = MetricSample(
            name=result.name,
            cloud=result.cloud,
            healthy=result.error is None,
            duration_seconds=result.duration,
            last_update_unix=int(result.end.timestamp()),
        )
        with self._lock:
            self._samples[(result.name, result.cloud)] = sample
        return sample

    def snapshot(self) -> list[MetricSample]:
        """Point-in-time copy of every sample, sorted by (name, cloud)."""
        with self._lock:
            samples = list(self._samples.values())
        return sorted(samples, key=lambda s: (s.name, s.cloud))


class CheckMetricsCollector(Collector):
    """Renders a CheckMetrics snapshot as three labelled gauges."""

    def __init__(self, metrics: CheckMetrics) -> None:
        self.metrics = metrics

    def collect(self) -> Iterator[GaugeMetricFamily]:
        healthy = GaugeMetricFamily(
            "check_healthy",
            "Whether the last run of the check succeeded (1) or failed (0)",
            labels=LABELS,
        )
        duration = GaugeMetricFamily(
            "check_duration_seconds",
            "How long the last run of the check took",
            labels=LABELS,
        )
        last_update = GaugeMetricFamily(
            "check_last_update_time_seconds",
            "Seconds since epoch when the last run of the check finished",
            labels=LABELS,
        )

        for s in self.metrics.snapshot():
            labels = [s.name, s.cloud]
            healthy.add_metric(labels, 1.0 if s.healthy else 0.0)
            duration.add_metric(labels, s.duration_seconds)
            last_update.add_metric(labels, float(s.last_update_unix))

        yield healthy
        yield duration
        yield last_update


def register(metrics: CheckMetrics, registry: CollectorRegistry) -> CheckMetricsCollector:
    """Attach a collector for ``metrics`` to ``registry``."""
    collector = CheckMetricsCollector(metrics)
    registry.register(collector)
    return collector
