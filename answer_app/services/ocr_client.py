"""OCR.Space client: image payload in, raw page text out."""

from __future__ import annotations

from dataclasses import dataclass

import requests
from flask import current_app

RAW_PREVIEW_CHARS = 300


class OcrError(Exception):
    def __init__(self, code: str, message: str = "", status: int | None = None, raw: str = ""):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.status = status
        self.raw = raw

    def serialize(self) -> dict:
        payload = {"ok": False, "error": self.code, "message": self.message}
        if self.status is not None:
            payload["status"] = self.status
        if self.raw:
            payload["raw"] = self.raw
        return payload


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: float = 0.0

    def serialize(self) -> dict:
        return {"ok": True, "text": self.text, "conf": self.confidence}


def strip_data_url(image: str) -> str:
    """Accept either a data URL or bare base64 and return the base64 part."""
    marker = "base64,"
    idx = image.find(marker)
    return image[idx + len(marker):] if idx >= 0 else image


def _error_message(data: dict) -> str:
    message = data.get("ErrorMessage")
    if isinstance(message, list):
        message = " / ".join(str(item) for item in message)
    return message or data.get("ErrorDetails") or "OCR processing error"


def extract_text(image: str, language: str | None = None) -> OcrResult:
    app = current_app
    api_key = app.config.get("OCR_API_KEY")
    if not api_key:
        raise OcrError("NO_OCR_API_KEY", "OCRSPACE_API_KEY is not configured")

    form = {
        "apikey": api_key,
        "language": language or app.config.get("OCR_DEFAULT_LANGUAGE", "kor+eng"),
        "isOverlayRequired": "false",
        "scale": "true",
        "OCREngine": str(app.config.get("OCR_ENGINE", "3")),
        "base64Image": "data:image/jpeg;base64," + strip_data_url(image),
    }
    try:
        response = requests.post(
            app.config.get("OCR_API_URL", "https://apipro1.ocr.space/parse/image"),
            data=form,
            timeout=app.config.get("OCR_TIMEOUT_SEC", 60),
        )
    except requests.RequestException as exc:
        raise OcrError("OCR_REQUEST_FAILED", str(exc)) from exc

    raw = response.text or ""
    if not response.ok:
        raise OcrError("OCR_HTTP_ERROR", "OCR service returned an error status", response.status_code, raw[:RAW_PREVIEW_CHARS])
    try:
        data = response.json()
    except ValueError as exc:
        raise OcrError("OCR_JSON_PARSE_ERROR", "OCR response is not JSON", raw=raw[:RAW_PREVIEW_CHARS]) from exc
    if not isinstance(data, dict):
        raise OcrError("OCR_JSON_PARSE_ERROR", "OCR response is not an object", raw=raw[:RAW_PREVIEW_CHARS])
    if data.get("IsErroredOnProcessing"):
        raise OcrError("OCR_PROCESSING_ERROR", _error_message(data))

    results = data.get("ParsedResults") or []
    parsed = results[0] if results and isinstance(results[0], dict) else {}
    text = parsed.get("ParsedText") or ""
    if not text.strip():
        raise OcrError("EMPTY_OCR_TEXT", "OCR result text is empty")
    confidence = parsed.get("MeanConfidenceLevel")
    if not isinstance(confidence, (int, float)):
        confidence = 0.0
    current_app.logger.info("OCR extracted %s characters", len(text))
    return OcrResult(text=text, confidence=float(confidence))
