"""FastAPI server: runs the check managers and serves their results."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import CollectorRegistry

from .. import __version__
from ..checker.context import Context
from ..checker.manager import CheckManager, CheckResult, CheckResultCallback
from ..history.store import History
from ..metrics.collector import CheckMetrics, register
from .routes import router

logger = logging.getLogger(__name__)


def recorder(history: History, metrics: CheckMetrics) -> CheckResultCallback:
    """Result callback for serve mode: record everything, never stop."""

    def on_result(result: CheckResult) -> bool:
        history.append(result)
        history.trim()
        metrics.update(result)
        return False

    return on_result


async def _run_manager(manager: CheckManager, ctx: Context, callback: CheckResultCallback) -> None:
    try:
        await manager.run(ctx, callback)
    except Exception:
        logger.exception("Check manager for cloud %s failed", manager.cloud or "<env>")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start every check manager; on shutdown wait until all of them have stopped."""
    ctx = Context()
    app.state.context = ctx
    callback = recorder(app.state.history, app.state.metrics)

    tasks = [
        asyncio.create_task(_run_manager(m, ctx, callback), name=f"manager-{m.cloud}")
        for m in app.state.managers
    ]
    logger.info("Started %d check managers", len(tasks))

    try:
        yield
    finally:
        ctx.cancel()
        if tasks:
            logger.info("Waiting for in-flight checks to finish")
            await asyncio.gather(*tasks)
        logger.info("All check managers stopped")


def create_app(
    managers: Sequence[CheckManager] = (),
    history: History | None = None,
    metrics: CheckMetrics | None = None,
) -> FastAPI:
    app = FastAPI(
        title="OpenStack Check Exporter",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.managers = list(managers)
    app.state.history = history if history is not None else History()
    app.state.metrics = metrics if metrics is not None else CheckMetrics()

    # Per-app registry; nothing is registered process-wide
    app.state.metrics_registry = CollectorRegistry()
    register(app.state.metrics, app.state.metrics_registry)

    app.include_router(router)
    return app
