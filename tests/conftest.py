"""Pytest configuration for ensuring project modules resolve correctly."""

from __future__ import annotations

import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from answer_app import create_app
from answer_app.extensions import db
from answer_app.services import generation_log
from answer_app.services.job_store import get_job_store


class FakeResponse:
    """Minimal stand-in for `requests.Response`."""

    def __init__(self, status_code=200, payload=None, text=None, content_type="application/json"):
        self.status_code = status_code
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.headers = {"Content-Type": content_type}

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return json.loads(self.text)


def chat_payload(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture()
def app():
    app = create_app("test")
    with app.app_context():
        yield app
    generation_log.clear_logs()


@pytest.fixture()
def app_with_db():
    app = create_app("test")
    app.config["JOB_STORE_BACKEND"] = "database"
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store(app):
    return get_job_store()
