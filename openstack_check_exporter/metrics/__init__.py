"""Metrics subsystem: latest result per check, exposed to Prometheus."""

from .collector import CheckMetrics, CheckMetricsCollector, MetricSample, register
