"""In-memory log buffer plus SSE broadcast for generation service calls."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from flask import current_app, has_app_context

from .job_events import job_event_broker

LOG_MAX_ENTRIES = 500
_buffer: deque[Dict[str, Any]] = deque(maxlen=LOG_MAX_ENTRIES)


def _append_to_file(entry: Dict[str, Any]) -> None:
    """Append the entry to a per-job file under the instance folder."""
    if not has_app_context():
        return
    job_id = entry.get("job_id") or "general"
    base_dir = Path(current_app.instance_path) / "logs" / "generation"
    try:
        base_dir.mkdir(parents=True, exist_ok=True)
        with (base_dir / f"job-{job_id}.log").open("a", encoding="utf-8") as stream:
            stream.write(f"{entry}\n")
    except OSError:
        current_app.logger.debug("Could not persist generation log entry", exc_info=True)


def log_event(kind: str, payload: Dict[str, Any]) -> None:
    """Store a log entry in memory, append it to the job file and broadcast it."""
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "kind": kind,
        **payload,
    }
    _buffer.appendleft(entry)
    if has_app_context() and current_app.config.get("GENERATION_LOG_TO_FILE", True):
        _append_to_file(entry)
    job_event_broker.publish({"type": "generation_log", "payload": entry})


def get_logs(limit: int = 100, job_id: str | None = None) -> List[Dict[str, Any]]:
    """Return a copy of the most recent log entries (in-memory)."""
    limit = max(1, min(limit, LOG_MAX_ENTRIES))
    entries = [entry for entry in list(_buffer) if job_id is None or entry.get("job_id") == job_id]
    return entries[:limit]


def clear_logs() -> None:
    _buffer.clear()
