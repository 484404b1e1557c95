"""Smoke tests for the Flask application factory."""

from __future__ import annotations

import pytest

from answer_app import create_app


@pytest.fixture(scope="module")
def app():
    app = create_app("test")
    yield app


def test_app_creation(app):
    assert app is not None
    assert app.config["TESTING"] is True
    assert app.config["JOB_STORE_BACKEND"] == "memory"


@pytest.mark.parametrize(
    "endpoint",
    [
        "/api/parse/ping",
        "/api/ocr/ping",
        "/api/solve/ping",
        "/api/meta/ping",
    ],
)
def test_ping_endpoints(app, endpoint):
    client = app.test_client()
    response = client.get(endpoint)
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"


def test_client_config_exposes_stop_token(app):
    client = app.test_client()
    response = client.get("/api/meta/config")
    assert response.status_code == 200
    assert response.get_json()["stopToken"] == app.config["STOP_TOKEN"]
