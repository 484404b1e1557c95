"""Schemas for exam text / image intake endpoints."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validates_schema


class _IntakeSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class ParseRequestSchema(_IntakeSchema):
    ocr_text = fields.String(data_key="ocrText", load_default="")
    text = fields.String(load_default="")
    image_data_url = fields.String(data_key="imageDataUrl", load_default="")
    language = fields.String(load_default=None, allow_none=True)

    @validates_schema
    def require_source(self, data, **kwargs):
        if not (data.get("ocr_text") or data.get("text") or "").strip() and not data.get("image_data_url"):
            raise ValidationError("Provide ocrText, text or imageDataUrl.", "ocrText")

    @post_load
    def merge_text(self, data, **kwargs):
        data["source_text"] = (data.pop("ocr_text") or data.pop("text", "") or "").strip()
        data.pop("text", None)
        return data


class OcrRequestSchema(_IntakeSchema):
    image_base64 = fields.String(data_key="imageBase64", load_default="")
    image_data_url = fields.String(data_key="imageDataUrl", load_default="")
    image = fields.String(load_default="")
    data_url = fields.String(data_key="dataUrl", load_default="")
    language = fields.String(load_default=None, allow_none=True)

    @post_load
    def pick_image(self, data, **kwargs):
        data["payload"] = (
            data.pop("image_base64")
            or data.pop("image_data_url")
            or data.pop("image")
            or data.pop("data_url")
        )
        for key in ("image_data_url", "image", "data_url"):
            data.pop(key, None)
        return data


class UnderlineRequestSchema(_IntakeSchema):
    image_data_url = fields.String(data_key="imageDataUrl", required=True)
    question_numbers = fields.List(fields.Raw(), data_key="questionNumbers", load_default=list)
    hint_text = fields.String(data_key="hintText", load_default="")
