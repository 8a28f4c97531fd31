"""Dashboard (horizon) login check."""

from __future__ import annotations

from typing import TextIO
from urllib.parse import urlsplit, urlunsplit

import httpx

from ..checker.auth import CloudConfig, Session, new_http_client
from ..checker.context import Context
from ..checker.errors import CheckFailed, ConfigurationError
from ..checker.options import CloudOptions
from .base import BaseCheck


def horizon_url_from_identity(auth_url: str) -> str:
    """Guess the login URL: same host as keystone, default port, /auth/login/."""
    parts = urlsplit(auth_url)
    if not parts.hostname:
        raise ConfigurationError(f"Cannot derive horizon URL from {auth_url!r}")
    return urlunsplit((parts.scheme, parts.hostname, "/auth/login/", "", ""))


class HorizonLogin(BaseCheck):
    """Logs into horizon with the cloud's credentials and expects a session cookie."""

    name = "horizon-login"

    def __init__(self, cloud_config: CloudConfig, options: CloudOptions) -> None:
        super().__init__(cloud_config, options)
        self.horizon_url = self.options.get_str(self.name, "horizon_url", "") or horizon_url_from_identity(
            cloud_config.auth_url,
        )
        self.region = self.options.get_str(self.name, "region", cloud_config.auth_url)
        self.timeout = self.options.get_float(self.name, "timeout", 10.0)
        self.transport: httpx.BaseTransport | None = None

    def check(self, ctx: Context, session: Session, region: str, output: TextIO) -> None:
        remaining = ctx.remaining()
        timeout = min(self.timeout, remaining) if remaining is not None else self.timeout

        # no redirects, so the sessionid cookie on the login response is visible
        with new_http_client(
            self.cloud_config, timeout=timeout, transport=self.transport, follow_redirects=False,
        ) as client:
            ctx.raise_if_done()
            resp = client.get(self.horizon_url)
            print(resp.status_code, resp.reason_phrase, file=output)
            if resp.status_code != 200:
                raise CheckFailed("horizon login failed")
            csrf_token = resp.cookies.get("csrftoken", "")

            ctx.raise_if_done()
            resp = client.post(
                self.horizon_url,
                data={
                    "username": self.cloud_config.username,
                    "password": self.cloud_config.password,
                    "csrfmiddlewaretoken": csrf_token,
                    "region": self.region,
                },
                headers={"Referer": self.horizon_url},
            )
            print(resp.status_code, resp.reason_phrase, file=output)
            if "sessionid" not in resp.cookies:
                raise CheckFailed("horizon login failed")
