"""Persistence for solve job records keyed by job id.

Every state transition writes the whole record (overwrite semantics). The
production backend is a Firebase Realtime Database reached over its REST
API; a SQL table and a process-local dict are available for self-hosted
runs and tests.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import SolveJob
from .job_events import job_event_broker

STATUS_RUNNING = "running"
STATUS_DONE = "done"
STATUS_ERROR = "error"
TERMINAL_STATUSES = frozenset({STATUS_DONE, STATUS_ERROR})


class JobStoreError(Exception):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class JobRecord:
    status: str
    answer: Optional[str] = None
    message: Optional[str] = None
    debug: Optional[str] = None
    updated_at: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def running(cls) -> "JobRecord":
        return cls(status=STATUS_RUNNING, updated_at=now_ms())

    @classmethod
    def done(cls, answer: str) -> "JobRecord":
        return cls(status=STATUS_DONE, answer=answer, updated_at=now_ms())

    @classmethod
    def failed(cls, message: str, debug: str | None = None) -> "JobRecord":
        return cls(status=STATUS_ERROR, message=message, debug=debug, updated_at=now_ms())

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"status": self.status, "updatedAt": self.updated_at}
        if self.status == STATUS_DONE:
            payload["answer"] = self.answer or ""
        if self.status == STATUS_ERROR:
            payload["message"] = self.message or ""
            if self.debug:
                payload["debug"] = self.debug
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobRecord":
        return cls(
            status=str(data.get("status") or ""),
            answer=data.get("answer"),
            message=data.get("message"),
            debug=data.get("debug"),
            updated_at=int(data.get("updatedAt") or 0),
        )


class JobStore:
    """Write/read whole job records; subclasses implement the transport."""

    backend = "abstract"

    def write(self, job_id: str, record: JobRecord) -> None:
        if not job_id:
            raise JobStoreError("job id is required")
        self._put(job_id, record.to_dict())
        job_event_broker.publish(
            {"type": "solve_job", "payload": {"jobId": job_id, **record.to_dict()}}
        )

    def read(self, job_id: str) -> Optional[JobRecord]:
        if not job_id:
            return None
        data = self._get(job_id)
        return JobRecord.from_dict(data) if data else None

    def _put(self, job_id: str, data: Dict[str, Any]) -> None:
        raise NotImplementedError

    def _get(self, job_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class MemoryJobStore(JobStore):
    backend = "memory"

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _put(self, job_id: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._records[job_id] = dict(data)

    def _get(self, job_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            data = self._records.get(job_id)
            return dict(data) if data is not None else None


class FirebaseJobStore(JobStore):
    backend = "firebase"

    def __init__(self, db_url: str, jobs_path: str, timeout: float = 10, auth_token: str = "") -> None:
        self.db_url = db_url.rstrip("/")
        self.jobs_path = jobs_path.strip("/")
        self.timeout = timeout
        self.auth_token = auth_token

    def _url(self, job_id: str) -> str:
        return f"{self.db_url}/{self.jobs_path}/{quote(job_id, safe='')}.json"

    def _params(self) -> Dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}

    def _put(self, job_id: str, data: Dict[str, Any]) -> None:
        try:
            response = requests.put(
                self._url(job_id), json=data, params=self._params(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise JobStoreError(f"Job store write failed: {exc}") from exc
        if not response.ok:
            raise JobStoreError(
                f"Job store write failed: {response.text[:200]}", response.status_code
            )

    def _get(self, job_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = requests.get(self._url(job_id), params=self._params(), timeout=self.timeout)
        except requests.RequestException as exc:
            raise JobStoreError(f"Job store read failed: {exc}") from exc
        if not response.ok:
            raise JobStoreError(
                f"Job store read failed: {response.text[:200]}", response.status_code
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise JobStoreError("Job store returned malformed JSON", response.status_code) from exc
        return data if isinstance(data, dict) else None


class DatabaseJobStore(JobStore):
    backend = "database"

    def _put(self, job_id: str, data: Dict[str, Any]) -> None:
        try:
            row = db.session.get(SolveJob, job_id)
            if row is None:
                row = SolveJob(id=job_id, status=data["status"], record=data)
                db.session.add(row)
            else:
                row.status = data["status"]
                row.record = data
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise JobStoreError(f"Job store write failed: {exc}") from exc

    def _get(self, job_id: str) -> Optional[Dict[str, Any]]:
        row = db.session.get(SolveJob, job_id)
        return row.serialize() if row else None


def build_job_store(config) -> JobStore:
    backend = (config.get("JOB_STORE_BACKEND") or "firebase").lower()
    if backend == "memory":
        return MemoryJobStore()
    if backend == "database":
        return DatabaseJobStore()
    if backend == "firebase":
        return FirebaseJobStore(
            config.get("FIREBASE_DB_URL", ""),
            config.get("FIREBASE_JOBS_PATH", "p2p/jobs"),
            timeout=config.get("JOB_STORE_TIMEOUT_SEC", 10),
            auth_token=config.get("FIREBASE_AUTH_TOKEN", ""),
        )
    raise ValueError(f"Unknown JOB_STORE_BACKEND: {backend}")


def get_job_store() -> JobStore:
    app = current_app
    store = app.extensions.get("job_store")
    if store is None:
        store = build_job_store(app.config)
        app.extensions["job_store"] = store
    return store
