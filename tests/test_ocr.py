"""Tests for OCR and underline extraction endpoints."""

from __future__ import annotations

import pytest

from answer_app.services.ocr_client import strip_data_url
from answer_app.services.underline_service import coerce_question_numbers, extract_json_object
from conftest import FakeResponse, chat_payload

IMAGE = "data:image/png;base64,AAAA"


@pytest.fixture()
def ocr_post(monkeypatch):
    responses = []
    forms = []

    def fake_post(url, data=None, timeout=None):
        forms.append(data)
        return responses.pop(0)

    monkeypatch.setattr("answer_app.services.ocr_client.requests.post", fake_post)
    return responses, forms


def test_ocr_success(client, ocr_post):
    responses, forms = ocr_post
    responses.append(
        FakeResponse(200, {"ParsedResults": [{"ParsedText": "Hello page", "MeanConfidenceLevel": 91}]})
    )
    resp = client.post("/api/ocr", json={"imageBase64": "AAAA", "language": "eng"})
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "text": "Hello page", "conf": 91.0}
    assert forms[0]["apikey"] == "test-ocr-key"
    assert forms[0]["language"] == "eng"
    assert forms[0]["OCREngine"] == "3"


def test_ocr_rejects_bad_bodies(client):
    resp = client.post("/api/ocr", data="not json", content_type="application/json")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "INVALID_JSON"

    resp = client.post("/api/ocr", json={"unrelated": 1})
    assert resp.status_code == 400
    payload = resp.get_json()
    assert payload["error"] == "NO_IMAGE"
    assert payload["receivedKeys"] == ["unrelated"]


def test_ocr_http_error(client, ocr_post):
    responses, _ = ocr_post
    responses.append(FakeResponse(403, text="Forbidden", content_type="text/plain"))
    payload = client.post("/api/ocr", json={"imageDataUrl": IMAGE}).get_json()
    assert payload["error"] == "OCR_HTTP_ERROR"
    assert payload["status"] == 403
    assert payload["raw"] == "Forbidden"


def test_ocr_empty_text(client, ocr_post):
    responses, _ = ocr_post
    responses.append(FakeResponse(200, {"ParsedResults": [{"ParsedText": "  "}]}))
    payload = client.post("/api/ocr", json={"image": IMAGE}).get_json()
    assert payload["error"] == "EMPTY_OCR_TEXT"


def test_ocr_without_key(app, client):
    app.config["OCR_API_KEY"] = ""
    resp = client.post("/api/ocr", json={"dataUrl": IMAGE})
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "NO_OCR_API_KEY"


def test_strip_data_url():
    assert strip_data_url(IMAGE) == "AAAA"
    assert strip_data_url("AAAA") == "AAAA"


def test_underline_extraction(client, monkeypatch):
    sent = []

    def fake_post(url, headers=None, data=None, timeout=None):
        sent.append(data)
        reply = 'Sure: {"underlined": {"6": " take off ", "7": null}}'
        return FakeResponse(200, chat_payload(reply))

    monkeypatch.setattr("answer_app.services.generation_client.requests.post", fake_post)
    resp = client.post(
        "/api/ocr/underline",
        json={"imageDataUrl": IMAGE, "questionNumbers": [6, "7", 99], "hintText": "hint"},
    )
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True, "underlined": {"6": "take off", "7": ""}}
    assert IMAGE in sent[0]


def test_underline_invalid_model_output(client, monkeypatch):
    monkeypatch.setattr(
        "answer_app.services.generation_client.requests.post",
        lambda url, headers=None, data=None, timeout=None: FakeResponse(200, chat_payload("no json here")),
    )
    resp = client.post("/api/ocr/underline", json={"imageDataUrl": IMAGE, "questionNumbers": [6]})
    assert resp.status_code == 200
    assert resp.get_json()["ok"] is False


@pytest.mark.parametrize(
    "body, message",
    [
        ({"imageDataUrl": "https://example.com/a.png", "questionNumbers": [1]}, "Invalid imageDataUrl"),
        ({"imageDataUrl": IMAGE, "questionNumbers": ["x", 0]}, "questionNumbers is required"),
    ],
)
def test_underline_validation(client, body, message):
    resp = client.post("/api/ocr/underline", json=body)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == message


def test_underline_requires_image(client):
    resp = client.post("/api/ocr/underline", json={"questionNumbers": [1]})
    assert resp.status_code == 400
    assert "imageDataUrl" in resp.get_json()["errors"]


def test_underline_helpers():
    assert coerce_question_numbers(["3", 0, 61, None, 12]) == [3, 12]
    assert extract_json_object('{"a": 1}') == {"a": 1}
    assert extract_json_object("prefix {\"a\": 2} suffix") == {"a": 2}
    assert extract_json_object("[1, 2]") is None
