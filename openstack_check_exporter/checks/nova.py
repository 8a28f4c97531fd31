"""Compute (nova) checks."""

from __future__ import annotations

import json
import logging
from typing import TextIO
from urllib.parse import urlencode

from ..checker.auth import Session
from ..checker.context import Context
from ..checker.errors import CheckFailed
from ..checker.options import CloudOptions
from .base import BaseCheck, check_services, id_from_name
from .glance import list_images
from .neutron import CLEANUP_TIMEOUT, list_networks

logger = logging.getLogger(__name__)

SERVICE = "compute"

POLL_INTERVAL = 1.0


def list_flavors(ctx: Context, session: Session, region: str) -> list[dict]:
    return session.get_json(ctx, SERVICE, "/flavors", region=region).get("flavors", [])


class NovaServices(BaseCheck):
    """Lists nova services and checks that every enabled one is up."""

    name = "nova_check_services"

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        check_services(ctx, session, SERVICE, region, output, label="nova")


class NovaListFlavors(BaseCheck):
    """Lists nova flavors."""

    name = "nova_list_flavors"

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        for flavor in list_flavors(ctx, session, region):
            print(flavor.get("id"), flavor.get("name"), file=output)


class NovaCreateInstance(BaseCheck):
    """Boots a server, waits for it to go ACTIVE, then deletes it.

    The server is always deleted once created, even when the run times out or
    the exporter is shutting down.
    """

    name = "nova_create_instance"

    def __init__(self, cloud_config, options: CloudOptions) -> None:
        super().__init__(cloud_config, options)
        self.server_name = self.required_str("server_name", "monitoring-test")
        self.flavor_name = self.required_str("flavor_name", "m1.tiny")
        self.image_name = self.required_str("image_name", "cirros")
        self.network_name = self.required_str("network_name", "admin-net")
        self.auto_delete = self.options.get_bool(self.name, "auto_delete", False)

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        # resolve names on every run, IDs may change during the exporter's lifetime
        flavor_id = id_from_name(list_flavors(ctx, session, region), self.flavor_name, "flavor")
        image_id = id_from_name(
            list_images(ctx, session, region, query=f"?{urlencode({'name': self.image_name})}"),
            self.image_name, "image",
        )
        network_id = id_from_name(
            list_networks(ctx, session, region, self.network_name), self.network_name, "network",
        )

        query = urlencode({"name": f"^{self.server_name}$", "image": image_id, "flavor": flavor_id})
        existing = session.get_json(ctx, SERVICE, f"/servers?{query}", region=region).get("servers", [])
        if len(existing) > 1:
            raise CheckFailed("found multiple servers")
        if existing:
            if not self.auto_delete:
                raise CheckFailed("server already exists")
            print("deleting existing instance", existing[0]["id"], file=output)
            self._delete(session, region, existing[0]["id"])

        resp = session.request(
            ctx, "POST", SERVICE, "/servers", region=region,
            json={
                "server": {
                    "name": self.server_name,
                    "imageRef": image_id,
                    "flavorRef": flavor_id,
                    "networks": [{"uuid": network_id}],
                },
            },
        )
        server = resp.json()["server"]
        server_id = server["id"]
        print(json.dumps(server, indent=2), file=output)

        try:
            self._wait_active(ctx, session, region, server_id, output)
        finally:
            self._delete(session, region, server_id)
            print("Deleted server", server_id, file=output)

    def _wait_active(self, ctx: Context, session: Session, region: str, server_id: str, output: TextIO) -> None:
        while True:
            server = session.get_json(ctx, SERVICE, f"/servers/{server_id}", region=region)["server"]
            status = server.get("status")
            if status == "ACTIVE":
                print("Server", server_id, "is ACTIVE", file=output)
                return
            if status == "ERROR":
                fault = (server.get("fault") or {}).get("message", "unknown fault")
                raise CheckFailed(f"server {server_id} went to ERROR: {fault}")
            if ctx.wait(POLL_INTERVAL):
                ctx.raise_if_done()

    def _delete(self, session: Session, region: str, server_id: str) -> None:
        # fresh context: cleanup must outlive a cancelled or expired run
        with Context(timeout=CLEANUP_TIMEOUT) as cleanup:
            session.request(cleanup, "DELETE", SERVICE, f"/servers/{server_id}", region=region)
        logger.debug("Deleted server %s", server_id)
