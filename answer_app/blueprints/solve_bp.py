"""Solve endpoints: background jobs, job polling and quick answers."""

from __future__ import annotations

import json
from http import HTTPStatus
from uuid import uuid4

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from marshmallow import ValidationError

from ..extensions import limiter
from ..schemas import QuickSolveRequestSchema, SolveJobRequestSchema
from ..services import generation_log, quick_solve_service, solve_pipeline
from ..services.job_events import job_event_broker
from ..services.job_store import JobStoreError, get_job_store

solve_bp = Blueprint("solve_bp", __name__)
job_schema = SolveJobRequestSchema()
quick_schema = QuickSolveRequestSchema()


@solve_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"ok": False, "errors": err.messages}), HTTPStatus.BAD_REQUEST


@solve_bp.get("/ping")
def ping():
    return jsonify({"module": "solve", "status": "ok"})


@solve_bp.post("/jobs")
@limiter.limit(lambda: current_app.config.get("SOLVE_JOB_RATE_LIMIT", "20 per minute"))
def create_job():
    payload = job_schema.load(request.get_json(silent=True) or {})
    job_id = payload["job_id"] or uuid4().hex
    solve_pipeline.spawn_solve_job(job_id, payload["source_text"], payload.get("prefix"))
    return jsonify({"ok": True, "jobId": job_id}), HTTPStatus.ACCEPTED


@solve_bp.get("/jobs/<job_id>")
def get_job(job_id: str):
    try:
        record = get_job_store().read(job_id)
    except JobStoreError as exc:
        return jsonify({"ok": False, "error": str(exc)}), HTTPStatus.BAD_GATEWAY
    if record is None:
        return jsonify({"ok": False, "error": "Job not found"}), HTTPStatus.NOT_FOUND
    return jsonify({"ok": True, "jobId": job_id, **record.to_dict()})


@solve_bp.get("/events")
def job_events():
    def event_stream():
        yield f"data: {json.dumps({'type': 'snapshot', 'payload': solve_pipeline.active_job_ids()})}\n\n"
        for message in job_event_broker.listen():
            yield f"data: {message}\n\n"

    return Response(stream_with_context(event_stream()), mimetype="text/event-stream")


@solve_bp.get("/logs")
def generation_logs():
    limit = request.args.get("limit", default=100, type=int)
    job_id = request.args.get("job_id") or None
    return jsonify({"logs": generation_log.get_logs(limit, job_id=job_id)})


@solve_bp.post("/quick")
def quick_solve():
    payload = quick_schema.load(request.get_json(silent=True) or {})
    result = quick_solve_service.quick_solve(payload["mode"], payload["ocr_text"], payload["audio_text"])
    return jsonify(result)
