"""Schemas for solve endpoints."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate, validates_schema

from ..services.quick_solve_service import DEFAULT_MODE


class SolveJobRequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    job_id = fields.String(data_key="jobId", load_default=None, allow_none=True, validate=validate.Length(max=128))
    ocr_text = fields.String(data_key="ocrText", load_default="")
    text = fields.String(load_default="")
    prefix = fields.String(load_default=None, allow_none=True)

    @validates_schema
    def require_text(self, data, **kwargs):
        if not (data.get("ocr_text") or data.get("text") or "").strip():
            raise ValidationError("ocrText is empty.", "ocrText")

    @post_load
    def merge_text(self, data, **kwargs):
        data["source_text"] = (data.pop("ocr_text") or data.pop("text", "") or "").strip()
        data.pop("text", None)
        data["job_id"] = (data.get("job_id") or "").strip() or None
        return data


class QuickSolveRequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    mode = fields.String(load_default=DEFAULT_MODE)
    ocr_text = fields.String(data_key="ocrText", load_default="")
    audio_text = fields.String(data_key="audioText", load_default="")
