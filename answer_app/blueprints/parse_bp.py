"""Question segmentation endpoints."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from ..metrics import record_parse
from ..schemas import ParseRequestSchema
from ..services import ocr_client, question_segmenter

parse_bp = Blueprint("parse_bp", __name__)
parse_schema = ParseRequestSchema()


@parse_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"ok": False, "errors": err.messages}), HTTPStatus.BAD_REQUEST


@parse_bp.get("/ping")
def ping():
    return jsonify({"module": "parse", "status": "ok"})


@parse_bp.post("/questions")
def parse_questions():
    payload = parse_schema.load(request.get_json(silent=True) or {})
    text = payload["source_text"]
    if not text:
        try:
            text = ocr_client.extract_text(payload["image_data_url"], payload.get("language")).text
        except ocr_client.OcrError as exc:
            record_parse("ocr_error")
            return jsonify(exc.serialize()), HTTPStatus.OK

    result = question_segmenter.segment(text, current_app.config.get("STOP_TOKEN"))
    record_parse("ok" if result.ok else "empty")
    if not result.ok:
        current_app.logger.info("No questions parsed from %s characters", result.length)
    return jsonify(result.serialize())
