"""Presentation helpers shared by the API and the CLI."""

from __future__ import annotations

from typing import Any

from ..checker.manager import CheckResult
from .store import HistoryEntry


def entry_to_dict(entry: HistoryEntry, include_output: bool = False) -> dict[str, Any]:
    r = entry.result
    data: dict[str, Any] = {
        "id": entry.id,
        "cloud": r.cloud,
        "name": r.name,
        "healthy": r.healthy,
        "error": str(r.error) if r.error is not None else None,
        "start": r.start.isoformat(),
        "duration_seconds": round(r.duration, 3),
    }
    if include_output:
        data["output"] = r.output
    return data


def format_result(result: CheckResult) -> str:
    """Plain-text block for one result (detail view and ``once`` output)."""
    error = f"{type(result.error).__name__}: {result.error}" if result.error is not None else "-"
    return "\n".join([
        f"Start    {result.start.strftime('%Y-%m-%dT%H:%M:%SZ')}",
        f"Cloud    {result.cloud or '-'}",
        f"Name     {result.name}",
        f"Error    {error}",
        f"Duration {result.duration:.3f}s",
        "Output",
        "-",
        result.output.rstrip("\n"),
        "---",
    ])
