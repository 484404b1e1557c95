"""OCR endpoints (page text and underlined expressions)."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from marshmallow import ValidationError

from ..schemas import OcrRequestSchema, UnderlineRequestSchema
from ..services import ocr_client, underline_service

ocr_bp = Blueprint("ocr_bp", __name__)
ocr_schema = OcrRequestSchema()
underline_schema = UnderlineRequestSchema()


@ocr_bp.errorhandler(ValidationError)
def handle_validation_error(err: ValidationError):
    return jsonify({"ok": False, "errors": err.messages}), HTTPStatus.BAD_REQUEST


@ocr_bp.get("/ping")
def ping():
    return jsonify({"module": "ocr", "status": "ok"})


@ocr_bp.post("")
def extract_text():
    body = request.get_json(silent=True)
    if body is None:
        return jsonify({"ok": False, "error": "INVALID_JSON"}), HTTPStatus.BAD_REQUEST
    payload = ocr_schema.load(body)
    if not payload["payload"]:
        return (
            jsonify(
                {
                    "ok": False,
                    "error": "NO_IMAGE",
                    "message": "imageBase64 (or imageDataUrl) is empty.",
                    "receivedKeys": sorted(body.keys()) if isinstance(body, dict) else [],
                }
            ),
            HTTPStatus.BAD_REQUEST,
        )
    try:
        result = ocr_client.extract_text(payload["payload"], payload.get("language"))
    except ocr_client.OcrError as exc:
        status = HTTPStatus.INTERNAL_SERVER_ERROR if exc.code == "NO_OCR_API_KEY" else HTTPStatus.OK
        return jsonify(exc.serialize()), status
    return jsonify(result.serialize())


@ocr_bp.post("/underline")
def underline():
    payload = underline_schema.load(request.get_json(silent=True) or {})
    try:
        underlined = underline_service.extract_underlined(
            payload["image_data_url"], payload["question_numbers"], payload["hint_text"]
        )
    except underline_service.UnderlineError as exc:
        return jsonify({"ok": False, "error": exc.message}), exc.status
    return jsonify({"ok": True, "underlined": underlined})
