"""Entry point for the OpenStack check exporter."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from openstack_check_exporter.api.server import create_app
from openstack_check_exporter.checker.context import Context
from openstack_check_exporter.checker.errors import ConfigurationError
from openstack_check_exporter.checker.manager import CheckManager, CheckResult, CheckerFactory
from openstack_check_exporter.checker.options import load_settings
from openstack_check_exporter.checks import DEFAULT_CHECKS
from openstack_check_exporter.config import settings
from openstack_check_exporter.history.render import format_result
from openstack_check_exporter.history.store import History

console = Console()
logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def create_managers(
    settings_file: str,
    clouds: Sequence[str],
    factories: Sequence[CheckerFactory] = DEFAULT_CHECKS,
) -> list[CheckManager]:
    """One CheckManager per cloud, all sharing the same settings file."""
    settings_doc = load_settings(settings_file)
    return [
        CheckManager(cloud, settings_doc.cloud_options(cloud), factories)
        for cloud in clouds
    ]


def run_server(managers: list[CheckManager], host: str, port: int) -> None:
    """Start the FastAPI server; checks run until the server shuts down."""
    if settings.history_max_count < 0:
        raise ConfigurationError(f"history_max_count must not be negative, got {settings.history_max_count}")
    console.print(Panel(f"Serving on {host}:{port}", title="openstack-check-exporter", style="bold green"))
    app = create_app(managers, History(settings.history_max_count))
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


async def run_once(managers: list[CheckManager], names: Sequence[str]) -> bool:
    """Run the selected checks exactly once. Returns True if all passed."""
    failed = 0

    def on_result(result: CheckResult) -> bool:
        nonlocal failed
        if result.error is not None:
            failed += 1
        style = "green" if result.healthy else "red"
        console.print(f"[bold {style}]{escape(result.name)}[/bold {style}]")
        console.print(format_result(result), markup=False, highlight=False)
        return True

    with Context() as ctx:
        for manager in managers:
            await manager.run(ctx, on_result, *names)
    return failed == 0


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="openstack-check-exporter",
        description="Prometheus exporter that runs health checks against OpenStack",
    )
    parser.add_argument(
        "-c", "--cloud", action="append",
        help="OpenStack cloud name from clouds.yaml (repeatable; default: OS_* environment)",
    )
    parser.add_argument(
        "-f", "--settings-file", default=settings.settings_file,
        help="Path to settings.yaml",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase verbosity")
    sub = parser.add_subparsers(dest="command")

    # Server mode
    serve_parser = sub.add_parser("serve", help="Start the exporter")
    serve_parser.add_argument("--host", default=settings.api_host, help="Address to listen on")
    serve_parser.add_argument("--port", type=int, default=settings.api_port, help="Port to listen on")

    # One-shot mode
    once_parser = sub.add_parser("once", help="Run the checks once and exit")
    once_parser.add_argument("checks", nargs="*", help="Checks to run (default: all)")

    sub.add_parser(
        "show-cloud-options",
        help="Read settings.yaml and show the resultant options for the given cloud",
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    clouds = args.cloud or [settings.cloud]

    try:
        if args.command == "serve":
            run_server(create_managers(args.settings_file, clouds), args.host, args.port)
        elif args.command == "once":
            ok = asyncio.run(run_once(create_managers(args.settings_file, clouds), args.checks))
            if not ok:
                sys.exit(1)
        elif args.command == "show-cloud-options":
            settings_doc = load_settings(args.settings_file)
            for cloud in clouds:
                if len(clouds) > 1:
                    console.print(f"[bold]# {cloud}[/bold]")
                console.print(settings_doc.cloud_options(cloud).dump(), markup=False, highlight=False)
        else:
            parser.print_help()
            sys.exit(1)
    except ConfigurationError as e:
        console.print(f"[bold red]ERROR:[/bold red] {escape(str(e))}")
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(130)


if __name__ == "__main__":
    main()
