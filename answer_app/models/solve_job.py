"""Table backing the database job store."""

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db


def utcnow():
    return datetime.now(timezone.utc)


class SolveJob(db.Model):
    __tablename__ = "solve_jobs"

    id = db.Column(db.String(128), primary_key=True)
    status = db.Column(db.String(16), nullable=False, index=True)
    record = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def serialize(self) -> dict:
        return dict(self.record or {})
