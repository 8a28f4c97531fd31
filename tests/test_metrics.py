"""Tests for the latest-result metrics and their Prometheus collector."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from openstack_check_exporter.checker.errors import ApiError
from openstack_check_exporter.checker.manager import CheckResult
from openstack_check_exporter.metrics.collector import CheckMetrics, register

START = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_result(name="nova_list_flavors", cloud="prod", error=None, duration=2.5) -> CheckResult:
    return CheckResult(cloud=cloud, name=name, error=error, start=START, duration=duration)


@pytest.fixture
def metrics():
    return CheckMetrics()


@pytest.fixture
def registry(metrics):
    registry = CollectorRegistry()
    register(metrics, registry)
    return registry


class TestCheckMetrics:
    def test_update(self, metrics):
        sample = metrics.update(make_result())
        assert sample.healthy is True
        assert sample.duration_seconds == 2.5
        assert sample.last_update_unix == int(START.timestamp()) + 2

    def test_latest_wins(self, metrics):
        metrics.update(make_result())
        metrics.update(make_result(error=ApiError(503, "unavailable"), duration=0.1))
        [sample] = metrics.snapshot()
        assert sample.healthy is False
        assert sample.duration_seconds == 0.1

    def test_keyed_by_name_and_cloud(self, metrics):
        metrics.update(make_result(cloud="b"))
        metrics.update(make_result(cloud="a"))
        metrics.update(make_result(name="glance_list_images", cloud="b"))
        assert [(s.name, s.cloud) for s in metrics.snapshot()] == [
            ("glance_list_images", "b"),
            ("nova_list_flavors", "a"),
            ("nova_list_flavors", "b"),
        ]


class TestCollector:
    def test_series(self, metrics, registry):
        metrics.update(make_result())
        metrics.update(make_result(name="cinder_check_services", error=ApiError(500, "x"), duration=0.5))

        labels = {"name": "nova_list_flavors", "cloud": "prod"}
        assert registry.get_sample_value("check_healthy", labels) == 1.0
        assert registry.get_sample_value("check_duration_seconds", labels) == 2.5
        assert registry.get_sample_value("check_last_update_time_seconds", labels) == float(
            int(START.timestamp()) + 2,
        )

        bad = {"name": "cinder_check_services", "cloud": "prod"}
        assert registry.get_sample_value("check_healthy", bad) == 0.0

    def test_empty_exposition_still_has_families(self, registry):
        text = generate_latest(registry).decode()
        assert "# TYPE check_healthy gauge" in text
        assert "# TYPE check_duration_seconds gauge" in text
        assert "# TYPE check_last_update_time_seconds gauge" in text

    def test_reflects_later_updates(self, metrics, registry):
        labels = {"name": "nova_list_flavors", "cloud": "prod"}
        assert registry.get_sample_value("check_healthy", labels) is None
        metrics.update(make_result())
        assert registry.get_sample_value("check_healthy", labels) == 1.0
