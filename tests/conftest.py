"""Shared test fixtures."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any, TextIO

import httpx
import pytest

from openstack_check_exporter.checker.auth import CloudConfig, Session
from openstack_check_exporter.checker.context import Context
from openstack_check_exporter.checker.errors import CheckFailed
from openstack_check_exporter.checker.manager import CheckManager
from openstack_check_exporter.checker.options import CloudOptions

CATALOG = [
    {
        "type": "image",
        "endpoints": [
            {"interface": "public", "region_id": "RegionOne", "url": "http://glance.test:9292"},
        ],
    },
    {
        "type": "compute",
        "endpoints": [
            {"interface": "public", "region_id": "RegionOne", "url": "http://nova.test:8774/v2.1"},
            {"interface": "internal", "region_id": "RegionOne", "url": "http://nova.internal:8774/v2.1"},
        ],
    },
    {
        "type": "network",
        "endpoints": [
            {"interface": "public", "region_id": "RegionOne", "url": "http://neutron.test:9696"},
        ],
    },
    {
        "type": "volumev3",
        "endpoints": [
            {"interface": "public", "region_id": "RegionOne", "url": "http://cinder.test:8776/v3/p1"},
        ],
    },
]


class FakeCheck:
    """Configurable in-memory check.

    ``duration`` is slept uninterruptibly unless ``cooperative`` is set, in
    which case the check waits on its context instead.
    """

    def __init__(
        self,
        name: str,
        duration: float = 0.0,
        fail: bool = False,
        cooperative: bool = False,
    ) -> None:
        self.name = name
        self.duration = duration
        self.fail = fail
        self.cooperative = cooperative
        self.runs = 0
        self.active = 0
        self.max_active = 0
        self.sessions: list[Any] = []
        self._lock = threading.Lock()

    def check(self, ctx: Context, session: Any, region: str, output: TextIO) -> None:
        with self._lock:
            self.runs += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.sessions.append(session)
        try:
            print(f"{self.name} run {self.runs} in {region}", file=output)
            if self.cooperative:
                if ctx.wait(self.duration):
                    ctx.raise_if_done()
            elif self.duration:
                time.sleep(self.duration)
            if self.fail:
                raise CheckFailed(f"{self.name} is broken")
        finally:
            with self._lock:
                self.active -= 1


class FakeSession:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def cloud_config() -> CloudConfig:
    return CloudConfig(
        name="test",
        auth_url="http://keystone.test:5000/v3",
        username="admin",
        password="secret",
        project_name="admin",
        region_name="RegionOne",
    )


@pytest.fixture
def make_manager(cloud_config: CloudConfig) -> Callable[..., CheckManager]:
    """Build a CheckManager around pre-made check objects."""

    def factory(
        checks: list[Any],
        options: dict[str, dict[str, Any]] | None = None,
        authenticate_fn: Callable[[], Any] | None = None,
    ) -> CheckManager:
        return CheckManager(
            "test",
            CloudOptions(options or {}),
            [lambda cfg, opts, c=c: c for c in checks],
            cloud_config=cloud_config,
            authenticate_fn=authenticate_fn or FakeSession,
        )

    return factory


@pytest.fixture
def make_session(cloud_config: CloudConfig) -> Callable[..., Session]:
    """Build a Session whose HTTP calls go to ``handler``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> Session:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return Session(client, "test-token", CATALOG, cloud_config)

    return factory
