"""Check scheduler: runs every check on its own interval until cancelled.

Each check gets one asyncio task. The check itself is synchronous cloud SDK
work, so every run is dispatched to a dedicated worker thread. Results are
streamed to a caller-supplied callback; returning True from the callback
stops that check's loop (used by one-shot mode).

``CheckManager.run`` never returns while a check is mid-run: a check that
provisioned a resource gets to clean it up before the process exits.
"""

from __future__ import annotations

import asyncio
import io
import logging
import math
import time
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, TextIO

from .auth import CloudConfig, Session, authenticate, load_cloud_config
from .context import Context
from .errors import CheckerError, ConfigurationError
from .options import CloudOptions

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0


# ── Models ───────────────────────────────────────────────────────────────────


class Checker(Protocol):
    """A single check that can be run against a cloud."""

    @property
    def name(self) -> str: ...

    def check(self, ctx: Context, session: Any, region: str, output: TextIO) -> None:
        """Exercise the cloud; raise on failure, write progress to ``output``."""


CheckerFactory = Callable[[CloudConfig, CloudOptions], Checker]

CheckResultCallback = Callable[["CheckResult"], bool]


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check run."""

    cloud: str
    name: str
    error: BaseException | None
    start: datetime
    duration: float
    output: str = ""

    @property
    def healthy(self) -> bool:
        return self.error is None

    @property
    def end(self) -> datetime:
        return self.start + timedelta(seconds=self.duration)


# ── Manager ──────────────────────────────────────────────────────────────────


class CheckManager:
    """Runs a set of checks against one cloud."""

    def __init__(
        self,
        cloud: str,
        options: CloudOptions,
        factories: Sequence[CheckerFactory],
        cloud_config: CloudConfig | None = None,
        authenticate_fn: Callable[[], Any] | None = None,
    ) -> None:
        self.cloud = cloud
        self.options = options
        self.cloud_config = cloud_config or load_cloud_config(cloud)
        self.region = self.cloud_config.region_name
        self._authenticate = authenticate_fn or self._new_session

        self.checks: list[Checker] = []
        for factory in factories:
            try:
                self.checks.append(factory(self.cloud_config, options))
            except CheckerError:
                raise
            except Exception as e:
                raise ConfigurationError(f"Failed to create check {factory!r}: {e}") from e

    def _new_session(self) -> Session:
        return authenticate(self.cloud_config)

    def select(self, *names: str) -> list[Checker]:
        """Checks to run: all of them, or the named subset.

        Unknown names are skipped; a name given twice still runs one loop.
        """
        if not names:
            return list(self.checks)
        by_name = {c.name: c for c in self.checks}
        selected = []
        for name in dict.fromkeys(names):
            if name in by_name:
                selected.append(by_name[name])
            else:
                logger.warning("Unknown check %s for cloud %s, skipping", name, self.cloud or "<env>")
        return selected

    async def run(self, ctx: Context, callback: CheckResultCallback, *names: str) -> None:
        """Run checks concurrently until ``ctx`` is cancelled or every callback said stop.

        Re-raises the first scheduler-internal error once every loop has exited.
        """
        checks = self.select(*names)
        if not checks:
            logger.info("No checks to run for cloud %s", self.cloud or "<env>")
            return

        loop = asyncio.get_running_loop()
        stopped = asyncio.Event()

        def wake() -> None:
            loop.call_soon_threadsafe(stopped.set)

        ctx.add_done_callback(wake)

        failures: list[BaseException] = []
        with ThreadPoolExecutor(
            max_workers=len(checks), thread_name_prefix=f"check-{self.cloud or 'env'}",
        ) as executor:
            tasks = [
                asyncio.create_task(
                    self._check_loop(ctx, stopped, executor, check, callback, failures),
                    name=f"check-{self.cloud}-{check.name}",
                )
                for check in checks
            ]
            logger.info("Check scheduler started: %d checks for cloud %s", len(tasks), self.cloud or "<env>")

            try:
                await asyncio.wait(tasks)
            except asyncio.CancelledError:
                ctx.cancel()
                await asyncio.wait(tasks)
                raise
            finally:
                ctx.remove_done_callback(wake)
                logger.info("Check scheduler stopped for cloud %s", self.cloud or "<env>")

        if failures:
            raise failures[0]

    async def _check_loop(
        self,
        ctx: Context,
        stopped: asyncio.Event,
        executor: Executor,
        check: Checker,
        callback: CheckResultCallback,
        failures: list[BaseException],
    ) -> None:
        """Persistent loop that runs a single check at its interval."""
        try:
            interval = self.options.get_float(check.name, "interval", DEFAULT_INTERVAL)
            timeout = self.options.get_float(check.name, "timeout", interval)
            if interval <= 0:
                raise ConfigurationError(f"{check.name}/interval must be positive")

            loop = asyncio.get_running_loop()
            next_tick = loop.time()
            while not ctx.done():
                logger.debug(
                    "running check %s (cloud=%s interval=%s timeout=%s)",
                    check.name, self.cloud, interval, timeout,
                )
                result = await loop.run_in_executor(executor, self._run_once, ctx, check, timeout)
                if result.error is not None:
                    logger.warning(
                        "Check %s/%s failed after %.2fs: %s",
                        self.cloud, check.name, result.duration, result.error,
                    )

                if callback(result):
                    return
                if ctx.done():
                    return

                next_tick = _next_tick(next_tick, interval, loop.time())
                try:
                    await asyncio.wait_for(stopped.wait(), timeout=max(next_tick - loop.time(), 0.0))
                    return
                except asyncio.TimeoutError:
                    pass
        except Exception as e:
            logger.error("Check loop %s/%s aborted: %s", self.cloud, check.name, e)
            failures.append(e)

    def _run_once(self, ctx: Context, check: Checker, timeout: float) -> CheckResult:
        """Authenticate, run one check under a deadline, and package the outcome."""
        output = io.StringIO()
        start = datetime.now(timezone.utc)
        t0 = time.monotonic()
        error: BaseException | None = None

        # authentication is part of every run
        try:
            session = self._authenticate()
        except Exception as e:
            session = None
            error = e

        if session is not None:
            try:
                with ctx.with_timeout(timeout) as check_ctx:
                    check.check(check_ctx, session, self.region, output)
            except Exception as e:
                error = e
            finally:
                close = getattr(session, "close", None)
                if close is not None:
                    close()

        return CheckResult(
            cloud=self.cloud,
            name=check.name,
            error=error,
            start=start,
            duration=time.monotonic() - t0,
            output=output.getvalue(),
        )


def _next_tick(previous: float, interval: float, now: float) -> float:
    """Next tick on the fixed interval grid; an overrun fires once immediately."""
    tick = previous + interval
    if tick < now:
        tick += math.floor((now - tick) / interval) * interval
    return tick
