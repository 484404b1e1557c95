"""Background solve jobs with a degrading-budget retry.

A job is written as ``running`` before any external call, then the OCR text
is compacted to the primary budget and sent to the generation service. On
any failure the original text is compacted again to a strictly smaller
budget and retried once. The run ends in ``done`` or ``error`` and never
writes again afterwards.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

from flask import Flask, current_app

from ..extensions import db
from ..metrics import record_solve_job
from .answer_postprocessor import ensure_sections
from .compaction import compact
from .generation_client import GenerationClient, GenerationFailure, get_generation_client
from .job_store import JobRecord, JobStore, JobStoreError, get_job_store
from .solve_prompts import build_system_prompt, build_user_prompt

DEFAULT_MARKERS = ("[문제 1]", "[문제 2]")

_JOB_THREADS: Dict[str, threading.Thread] = {}
_JOB_REGISTRY_LOCK = threading.Lock()


class SolveRun:
    """Write-side of a single job run; refuses writes once terminal."""

    def __init__(self, job_id: str, store: JobStore) -> None:
        self.job_id = job_id
        self.store = store
        self.last: Optional[JobRecord] = None

    @property
    def finished(self) -> bool:
        return self.last is not None and self.last.is_terminal

    def mark_running(self) -> None:
        try:
            self._write(JobRecord.running())
        except JobStoreError as exc:
            current_app.logger.warning(
                "Could not record running state for job %s: %s",
                self.job_id,
                exc,
                extra={"job_id": self.job_id},
            )

    def finish(self, record: JobRecord) -> JobRecord:
        try:
            written = self._write(record)
        except JobStoreError as exc:
            current_app.logger.warning(
                "Retrying %s write for job %s: %s",
                record.status,
                self.job_id,
                exc,
                extra={"job_id": self.job_id},
            )
            written = self._write(record)
        if not written:
            return self.last
        record_solve_job(record.status)
        current_app.logger.info(
            "Solve job %s finished with status %s",
            self.job_id,
            record.status,
            extra={"job_id": self.job_id},
        )
        return record

    def _write(self, record: JobRecord) -> bool:
        if self.finished:
            current_app.logger.warning(
                "Ignoring %s write for finished job %s",
                record.status,
                self.job_id,
                extra={"job_id": self.job_id},
            )
            return False
        self.store.write(self.job_id, record)
        self.last = record
        return True


def solve_budgets(config) -> Tuple[int, int]:
    primary = max(1, int(config.get("SOLVE_PRIMARY_BUDGET", 8000)))
    fallback = int(config.get("SOLVE_FALLBACK_BUDGET", 4200))
    if fallback >= primary:
        fallback = primary // 2
    return primary, max(1, fallback)


def section_markers(config) -> Tuple[str, str]:
    markers = tuple(config.get("SOLVE_SECTION_MARKERS") or ())
    if len(markers) != 2:
        return DEFAULT_MARKERS
    return markers[0], markers[1]


def build_document(source: str, budget: int, job_id: str) -> str:
    """Compact ``source`` to ``budget``; keep the raw text when every line is noise."""

    document = compact(source, budget)
    if document:
        return document
    current_app.logger.warning(
        "Solve job %s: compaction kept none of %s lines, sending raw text",
        job_id,
        len(source.splitlines()),
        extra={"job_id": job_id},
    )
    return source[:budget].strip()


def _attempt(
    client: GenerationClient,
    source: str,
    job_id: str,
    markers: Tuple[str, str],
    label: str,
    budget: int,
) -> str:
    config = current_app.config
    user_prompt = build_user_prompt(
        build_document(source, budget, job_id), *markers, fallback=label == "fallback"
    )
    try:
        return client.complete(
            build_system_prompt(*markers),
            user_prompt,
            temperature=config.get("SOLVE_TEMPERATURE", 0.4),
            max_tokens=config.get("SOLVE_MAX_TOKENS", 2600),
            timeout=config.get("SOLVE_TIMEOUT_SEC", 300),
            max_attempts=1,
            purpose=f"solve-{label}",
            job_id=job_id,
        )
    except GenerationFailure as exc:
        current_app.logger.warning(
            "Solve job %s %s attempt (budget %s) failed: %s",
            job_id,
            label,
            budget,
            exc.describe(),
            extra={"job_id": job_id},
        )
        raise


def _generate(
    client: GenerationClient, source: str, job_id: str, markers: Tuple[str, str]
) -> str:
    primary, fallback = solve_budgets(current_app.config)
    try:
        return _attempt(client, source, job_id, markers, "primary", primary)
    except GenerationFailure:
        pass
    return _attempt(client, source, job_id, markers, "fallback", fallback)


def run_solve_job(
    job_id: str | None,
    source_text: str | None,
    prefix: str | None = None,
    *,
    store: JobStore | None = None,
    client: GenerationClient | None = None,
) -> Optional[JobRecord]:
    """Drive one job to a terminal state. Never raises."""

    job_id = (job_id or "").strip()
    if not job_id:
        current_app.logger.warning("Solve job without an id was dropped")
        return None
    run = SolveRun(job_id, store or get_job_store())
    try:
        run.mark_running()
        client = client or get_generation_client()
        source = (source_text or "").strip()
        if not client.api_key:
            return run.finish(JobRecord.failed("AI_API_KEY / OPENROUTER_API_KEY is not configured"))
        if not source:
            return run.finish(JobRecord.failed("ocrText is empty"))

        markers = section_markers(current_app.config)
        try:
            answer = _generate(client, source, job_id, markers)
        except GenerationFailure as exc:
            debug_chars = int(current_app.config.get("SOLVE_DEBUG_MAX_CHARS", 600))
            return run.finish(JobRecord.failed(exc.describe(), exc.raw[:debug_chars] or None))
        return run.finish(JobRecord.done(ensure_sections(answer, *markers, prefix=prefix)))
    except Exception as exc:
        current_app.logger.exception("Solve job %s crashed", job_id, extra={"job_id": job_id})
        if not run.finished:
            try:
                return run.finish(JobRecord.failed(str(exc) or exc.__class__.__name__))
            except Exception:
                current_app.logger.exception(
                    "Could not record failure for job %s", job_id, extra={"job_id": job_id}
                )
        return run.last


def _run_job_async(app: Flask, job_id: str, source_text: str, prefix: str | None) -> None:
    def _target():
        with app.app_context():
            try:
                run_solve_job(job_id, source_text, prefix)
            finally:
                db.session.remove()
                with _JOB_REGISTRY_LOCK:
                    if _JOB_THREADS.get(job_id) is threading.current_thread():
                        del _JOB_THREADS[job_id]

    thread = threading.Thread(target=_target, name=f"solve-job-{job_id}", daemon=True)
    with _JOB_REGISTRY_LOCK:
        _JOB_THREADS[job_id] = thread
    thread.start()


def spawn_solve_job(job_id: str, source_text: str, prefix: str | None = None) -> None:
    """Run inline in tests (or with SOLVE_JOBS_SYNC), on a daemon thread otherwise."""
    app = current_app._get_current_object()
    if app.config.get("TESTING") or app.config.get("SOLVE_JOBS_SYNC"):
        run_solve_job(job_id, source_text, prefix)
        return
    _run_job_async(app, job_id, source_text, prefix)


def active_job_ids() -> List[str]:
    with _JOB_REGISTRY_LOCK:
        return [job_id for job_id, thread in _JOB_THREADS.items() if thread.is_alive()]
