"""Networking (neutron) checks."""

from __future__ import annotations

from typing import TextIO
from urllib.parse import quote

from ..checker.auth import Session
from ..checker.context import Context
from ..checker.options import CloudOptions
from .base import BaseCheck, id_from_name

SERVICE = "network"

# Budget for deletes, which run on their own context past the check's deadline.
CLEANUP_TIMEOUT = 30.0


def list_networks(ctx: Context, session: Session, region: str, name: str = "") -> list[dict]:
    query = f"?name={quote(name)}" if name else ""
    return session.get_json(ctx, SERVICE, f"/v2.0/networks{query}", region=region).get("networks", [])


class NeutronListNetworks(BaseCheck):
    """Lists neutron networks."""

    name = "neutron-list-networks"

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        for net in list_networks(ctx, session, region):
            print(net.get("id"), net.get("name"), net.get("status"), file=output)


class NeutronFloatingIP(BaseCheck):
    """Creates a floating IP on the pool network, then deletes it again."""

    name = "neutron_floating_ip"

    def __init__(self, cloud_config, options: CloudOptions) -> None:
        super().__init__(cloud_config, options)
        self.pool = self.required_str("pool_name", "public")

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        network_id = id_from_name(list_networks(ctx, session, region, self.pool), self.pool, "network")

        resp = session.request(
            ctx, "POST", SERVICE, "/v2.0/floatingips", region=region,
            json={"floatingip": {"floating_network_id": network_id}},
        )
        fip = resp.json()["floatingip"]
        print("Created floating IP", fip["id"], fip.get("floating_ip_address"), file=output)

        with Context(timeout=CLEANUP_TIMEOUT) as cleanup:
            session.request(cleanup, "DELETE", SERVICE, f"/v2.0/floatingips/{fip['id']}", region=region)
        print("Deleted floating IP", fip["id"], file=output)
