"""API routes for check history and metrics.

Endpoints:
  GET  /                     history list (same as /api/history)
  GET  /api/history          history list, newest first, ?name= filters by check
  GET  /api/history/{id}     one entry including its output
  GET  /detail/{id}          one entry as plain text
  GET  /metrics              Prometheus exposition
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..history.render import entry_to_dict, format_result

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
@router.get("/api/history")
def list_history(request: Request, name: str | None = None) -> dict[str, Any]:
    """List retained results, newest first."""
    history = request.app.state.history
    entries = history.list(name)
    return {
        "count": len(entries),
        "max_count": history.max_count,
        "entries": [entry_to_dict(e) for e in entries],
    }


@router.get("/api/history/{entry_id}")
def get_history_entry(entry_id: int, request: Request) -> dict[str, Any]:
    entry = request.app.state.history.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"History entry not found: {entry_id}")
    return entry_to_dict(entry, include_output=True)


@router.get("/detail/{entry_id}", response_class=PlainTextResponse)
def show_detail(entry_id: int, request: Request) -> str:
    entry = request.app.state.history.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"History entry not found: {entry_id}")
    return format_result(entry.result)


@router.get("/metrics")
def metrics(request: Request) -> Response:
    return Response(
        content=generate_latest(request.app.state.metrics_registry),
        media_type=CONTENT_TYPE_LATEST,
    )
