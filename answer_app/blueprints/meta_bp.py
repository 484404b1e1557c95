"""Public client configuration."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

meta_bp = Blueprint("meta_bp", __name__)


@meta_bp.get("/ping")
def ping():
    return jsonify({"module": "meta", "status": "ok"})


@meta_bp.get("/config")
def client_config():
    # The stop token is printed on the last page capture; it is not a secret.
    return jsonify({"stopToken": current_app.config.get("STOP_TOKEN", "")})
