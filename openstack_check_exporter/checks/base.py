"""Shared helpers for the cloud checks."""

from __future__ import annotations

from typing import Any, TextIO

from ..checker.auth import CloudConfig, Session
from ..checker.context import Context
from ..checker.errors import CheckFailed, ConfigurationError
from ..checker.options import CloudOptions


class BaseCheck:
    """Common construction: every check is built from (cloud config, options).

    Subclasses provide ``check()``; see ``checker.manager.Checker``.
    """

    name = ""

    def __init__(self, cloud_config: CloudConfig, options: CloudOptions) -> None:
        self.cloud_config = cloud_config
        self.options = options

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"

    def required_str(self, key: str, default: str) -> str:
        value = self.options.get_str(self.name, key, default)
        if not value:
            raise ConfigurationError(f"{self.name}/{key} must be non-empty")
        return value


def id_from_name(items: list[dict[str, Any]], name: str, kind: str) -> str:
    """Resolve a unique resource name to its ID."""
    matches = [item["id"] for item in items if item.get("name") == name]
    if not matches:
        raise CheckFailed(f"{kind} {name!r} not found")
    if len(matches) > 1:
        raise CheckFailed(f"multiple {kind}s named {name!r}")
    return matches[0]


def check_services(
    ctx: Context, session: Session, service_type: str, region: str, output: TextIO, label: str,
) -> None:
    """List os-services; any enabled service that is not up is unhealthy."""
    services = session.get_json(ctx, service_type, "/os-services", region=region).get("services", [])

    healthy = True
    for s in services:
        if s.get("status") == "enabled" and s.get("state") != "up":
            healthy = False
        print(
            s.get("binary"), s.get("zone"), s.get("host"),
            s.get("state"), s.get("status"), s.get("disabled_reason") or "",
            file=output,
        )

    if not healthy:
        raise CheckFailed(f"{label} services not healthy")
