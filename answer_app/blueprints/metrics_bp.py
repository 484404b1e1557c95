"""Prometheus scraping and liveness endpoints."""

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify

from ..metrics import latest_metrics
from ..services import solve_pipeline

metrics_bp = Blueprint("metrics_bp", __name__)


@metrics_bp.get("/metrics")
def metrics():
    payload, content_type = latest_metrics()
    return Response(payload, mimetype=content_type)


@metrics_bp.get("/healthz")
def healthz():
    return jsonify(
        {
            "status": "ok",
            "job_store": current_app.config.get("JOB_STORE_BACKEND"),
            "active_jobs": len(solve_pipeline.active_job_ids()),
        }
    )
