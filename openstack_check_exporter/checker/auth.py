"""Cloud credentials and authenticated Keystone sessions.

Credentials come from clouds.yaml (when a cloud name is given) or from the
``OS_*`` environment variables. ``authenticate()`` performs a Keystone v3
password login with httpx and returns a Session that knows the service
catalog. The scheduler builds a fresh Session for every check run.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
import yaml

from .context import Context
from .errors import ApiError, AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0

CLOUDS_YAML_PATHS = (
    Path("clouds.yaml"),
    Path("~/.config/openstack/clouds.yaml").expanduser(),
    Path("/etc/openstack/clouds.yaml"),
)


# ── Credentials ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CloudConfig:
    """Authentication material for one cloud."""

    name: str
    auth_url: str
    username: str
    password: str
    project_name: str = ""
    project_id: str = ""
    user_domain_name: str = "Default"
    project_domain_name: str = "Default"
    region_name: str = ""
    interface: str = "public"
    verify: bool = True


def load_cloud_config(
    cloud: str = "",
    paths: tuple[Path, ...] | None = None,
    environ: Mapping[str, str] | None = None,
) -> CloudConfig:
    """Find credentials for ``cloud`` (or the OS_* environment if empty)."""
    env = os.environ if environ is None else environ

    if not cloud:
        return _config_from_env(env)

    if paths is None:
        paths = CLOUDS_YAML_PATHS
        if env.get("OS_CLIENT_CONFIG_FILE"):
            paths = (Path(env["OS_CLIENT_CONFIG_FILE"]), *paths)

    for path in paths:
        if not path.is_file():
            continue
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read {path}: {e}") from e

        entry = (raw.get("clouds") or {}).get(cloud)
        if entry is None:
            continue
        logger.debug("Using cloud %s from %s", cloud, path)
        return _config_from_entry(cloud, entry)

    raise ConfigurationError(f"Cloud {cloud!r} not found in clouds.yaml")


def _config_from_entry(cloud: str, entry: dict[str, Any]) -> CloudConfig:
    auth = entry.get("auth") or {}
    if not auth.get("auth_url"):
        raise ConfigurationError(f"Cloud {cloud!r} has no auth.auth_url")

    return CloudConfig(
        name=cloud,
        auth_url=auth["auth_url"],
        username=auth.get("username", ""),
        password=auth.get("password", ""),
        project_name=auth.get("project_name", ""),
        project_id=auth.get("project_id", ""),
        user_domain_name=auth.get("user_domain_name", "Default"),
        project_domain_name=auth.get("project_domain_name", "Default"),
        region_name=entry.get("region_name", ""),
        interface=entry.get("interface", "public"),
        verify=entry.get("verify", True),
    )


def _config_from_env(env: Mapping[str, str]) -> CloudConfig:
    auth_url = env.get("OS_AUTH_URL", "")
    if not auth_url:
        raise ConfigurationError("No cloud given and OS_AUTH_URL is not set")

    return CloudConfig(
        name="",
        auth_url=auth_url,
        username=env.get("OS_USERNAME", ""),
        password=env.get("OS_PASSWORD", ""),
        project_name=env.get("OS_PROJECT_NAME", ""),
        project_id=env.get("OS_PROJECT_ID", ""),
        user_domain_name=env.get("OS_USER_DOMAIN_NAME", "Default"),
        project_domain_name=env.get("OS_PROJECT_DOMAIN_NAME", "Default"),
        region_name=env.get("OS_REGION_NAME", ""),
        interface=env.get("OS_INTERFACE", "public"),
    )


# ── HTTP logging hooks ───────────────────────────────────────────────────────


def _log_request(request: httpx.Request) -> None:
    logger.debug("request %s %s", request.method, request.url)


def _log_response(response: httpx.Response) -> None:
    logger.debug(
        "response %s %s -> %d",
        response.request.method, response.request.url, response.status_code,
    )


# ── Session ──────────────────────────────────────────────────────────────────


class Session:
    """An authenticated Keystone token plus the service catalog it came with."""

    def __init__(
        self,
        client: httpx.Client,
        token: str,
        catalog: list[dict[str, Any]],
        config: CloudConfig,
    ) -> None:
        self.client = client
        self.token = token
        self.catalog = catalog
        self.config = config
        self.client.headers["X-Auth-Token"] = token

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def endpoint(self, service_type: str, region: str = "") -> str:
        """Look up the catalog URL for ``service_type`` in ``region``."""
        region = region or self.config.region_name
        for service in self.catalog:
            if service.get("type") != service_type:
                continue
            for ep in service.get("endpoints", []):
                if ep.get("interface") != self.config.interface:
                    continue
                if region and ep.get("region_id", ep.get("region")) != region:
                    continue
                return ep["url"].rstrip("/")
        raise ApiError(404, f"No {self.config.interface} endpoint for {service_type} in region {region or '*'}")

    def request(
        self,
        ctx: Context,
        method: str,
        service_type: str,
        path: str,
        region: str = "",
        timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Call a service API. Raises ApiError on >= 400, or the context error."""
        ctx.raise_if_done()
        url = f"{self.endpoint(service_type, region)}{path}"

        budget = timeout or DEFAULT_TIMEOUT
        remaining = ctx.remaining()
        if remaining is not None:
            budget = min(budget, remaining)

        try:
            resp = self.client.request(method, url, timeout=budget, **kwargs)
        except httpx.TimeoutException:
            ctx.raise_if_done()
            raise
        except httpx.TransportError as e:
            logger.error("http roundtrip failed: %s %s: %s", method, url, e)
            raise

        if resp.status_code >= 400:
            detail = resp.text
            try:
                body = resp.json()
                if isinstance(body, dict):
                    detail = str(next(iter(body.values()), detail))
            except ValueError:
                pass
            raise ApiError(resp.status_code, detail)
        return resp

    def get_json(self, ctx: Context, service_type: str, path: str, region: str = "", **kwargs: Any) -> Any:
        return self.request(ctx, "GET", service_type, path, region=region, **kwargs).json()


def new_http_client(
    config: CloudConfig,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
    **kwargs: Any,
) -> httpx.Client:
    """An httpx client that logs every request/response at DEBUG."""
    return httpx.Client(
        timeout=timeout,
        verify=config.verify,
        transport=transport,
        event_hooks={"request": [_log_request], "response": [_log_response]},
        **kwargs,
    )


def _identity_v3(auth_url: str) -> str:
    base = auth_url.rstrip("/")
    return base if base.endswith("/v3") else f"{base}/v3"


def authenticate(
    config: CloudConfig,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
) -> Session:
    """Keystone v3 password authentication, scoped to the configured project."""
    project: dict[str, Any]
    if config.project_id:
        project = {"id": config.project_id}
    else:
        project = {"name": config.project_name, "domain": {"name": config.project_domain_name}}

    body = {
        "auth": {
            "identity": {
                "methods": ["password"],
                "password": {
                    "user": {
                        "name": config.username,
                        "password": config.password,
                        "domain": {"name": config.user_domain_name},
                    },
                },
            },
            "scope": {"project": project},
        },
    }

    client = new_http_client(config, timeout=timeout, transport=transport)
    try:
        resp = client.post(f"{_identity_v3(config.auth_url)}/auth/tokens", json=body)
        if resp.status_code != 201:
            raise AuthenticationError(f"Keystone returned {resp.status_code}: {resp.text[:200]}")
        token = resp.headers.get("X-Subject-Token", "")
        if not token:
            raise AuthenticationError("Keystone response carried no X-Subject-Token")
        catalog = resp.json().get("token", {}).get("catalog", [])
    except AuthenticationError:
        client.close()
        raise
    except (httpx.HTTPError, ValueError) as e:
        client.close()
        raise AuthenticationError(f"Keystone authentication failed: {e}") from e

    return Session(client, token, catalog, config)
