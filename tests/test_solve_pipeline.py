"""Tests for the degrading-retry solve pipeline."""

from __future__ import annotations

import threading

import pytest

from answer_app.services import solve_pipeline
from answer_app.services.answer_postprocessor import has_sections
from answer_app.services.generation_client import GenerationFailure
from answer_app.services.job_store import JobRecord, JobStoreError, MemoryJobStore
from answer_app.services.solve_pipeline import SolveRun, run_solve_job, solve_budgets
from conftest import FakeResponse, chat_payload

FIRST = "[문제 1]"
SECOND = "[문제 2]"
GOOD_ANSWER = f"{FIRST}\n첫 번째 답안\n{SECOND}\n두 번째 답안"


def _exam_text(lines: int = 500) -> str:
    return "\n".join(f"제시문 {i:04d} 문장은 시험지의 본문을 이루는 내용이다" for i in range(lines))


class ScriptedClient:
    def __init__(self, *outcomes, api_key: str = "test-key", on_call=None):
        self.api_key = api_key
        self.outcomes = list(outcomes)
        self.calls = []
        self.on_call = on_call

    def complete(self, system_prompt, user_prompt, **kwargs):
        self.calls.append({"system": system_prompt, "user": user_prompt, **kwargs})
        if self.on_call:
            self.on_call()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingStore(MemoryJobStore):
    def __init__(self):
        super().__init__()
        self.history = []

    def write(self, job_id, record):
        self.history.append(record.status)
        super().write(job_id, record)


@pytest.fixture()
def recording_store(app):
    return RecordingStore()


@pytest.fixture()
def budget_spy(monkeypatch):
    budgets = []
    real_compact = solve_pipeline.compact

    def spy(text, max_chars):
        budgets.append(max_chars)
        return real_compact(text, max_chars)

    monkeypatch.setattr("answer_app.services.solve_pipeline.compact", spy)
    return budgets


def test_first_attempt_success(recording_store, budget_spy):
    client = ScriptedClient(GOOD_ANSWER)
    record = run_solve_job("job-1", _exam_text(), store=recording_store, client=client)

    assert record.status == "done"
    assert recording_store.read("job-1").answer == GOOD_ANSWER
    assert recording_store.history == ["running", "done"]
    assert len(client.calls) == 1
    assert client.calls[0]["purpose"] == "solve-primary"
    assert client.calls[0]["max_attempts"] == 1
    assert client.calls[0]["timeout"] == 300
    assert budget_spy[-1] == 8000


def test_running_is_written_before_the_first_call(recording_store):
    seen = []
    client = ScriptedClient(
        GOOD_ANSWER,
        on_call=lambda: seen.append(recording_store.read("job-2").status),
    )
    run_solve_job("job-2", _exam_text(), store=recording_store, client=client)
    assert seen == ["running"]


def test_failure_retries_once_with_smaller_budget(recording_store, budget_spy):
    client = ScriptedClient(GenerationFailure("Generation request timed out"), "답안 본문만 있음")
    record = run_solve_job("job-3", _exam_text(), store=recording_store, client=client)

    assert record.status == "done"
    assert len(client.calls) == 2
    assert [call["purpose"] for call in client.calls] == ["solve-primary", "solve-fallback"]
    assert budget_spy[-2:] == [8000, 4200]
    assert len(client.calls[1]["user"]) < len(client.calls[0]["user"])
    assert has_sections(record.answer, FIRST, SECOND)
    assert recording_store.history == ["running", "done"]


def test_both_attempts_failing_records_error(recording_store):
    client = ScriptedClient(
        GenerationFailure("boom", 500, "x" * 2000),
        GenerationFailure("Generation service error", 502, "y" * 2000),
    )
    record = run_solve_job("job-4", _exam_text(), store=recording_store, client=client)

    assert record.status == "error"
    stored = recording_store.read("job-4")
    assert stored.message == "Generation service error (status=502)"
    assert stored.debug == "y" * 600
    assert stored.answer is None
    assert len(client.calls) == 2
    assert recording_store.history == ["running", "error"]


@pytest.mark.parametrize("text", ["", "   \n\t "])
def test_empty_text_fails_fast(recording_store, text):
    client = ScriptedClient()
    record = run_solve_job("job-5", text, store=recording_store, client=client)
    assert record.status == "error"
    assert record.message == "ocrText is empty"
    assert client.calls == []


def test_short_line_text_is_sent_raw(recording_store):
    client = ScriptedClient(GOOD_ANSWER)
    record = run_solve_job("job-6", "가 나\n다라\n마 바 사", store=recording_store, client=client)
    assert record.status == "done"
    assert len(client.calls) == 1
    assert "가 나\n다라\n마 바 사" in client.calls[0]["user"]


def test_missing_api_key_records_error(recording_store):
    client = ScriptedClient(api_key="")
    record = run_solve_job("job-7", _exam_text(), store=recording_store, client=client)
    assert record.status == "error"
    assert "not configured" in record.message
    assert client.calls == []


def test_prefix_is_applied(recording_store):
    client = ScriptedClient(GOOD_ANSWER)
    record = run_solve_job("job-8", _exam_text(), "Q7", store=recording_store, client=client)
    assert record.answer.startswith(f"Q7\n{FIRST}")


def test_unexpected_errors_end_in_error_state(recording_store):
    client = ScriptedClient(RuntimeError("kaput"))
    record = run_solve_job("job-9", _exam_text(), store=recording_store, client=client)
    assert record.status == "error"
    assert record.message == "kaput"
    assert recording_store.history == ["running", "error"]


def test_running_write_failure_does_not_stop_the_job(app):
    class FlakyStore(MemoryJobStore):
        def write(self, job_id, record):
            if record.status == "running":
                raise JobStoreError("store offline")
            super().write(job_id, record)

    store = FlakyStore()
    record = run_solve_job("job-10", _exam_text(), store=store, client=ScriptedClient(GOOD_ANSWER))
    assert record.status == "done"
    assert store.read("job-10").status == "done"


def test_blank_job_id_is_dropped(recording_store):
    client = ScriptedClient(GOOD_ANSWER)
    assert run_solve_job("  ", _exam_text(), store=recording_store, client=client) is None
    assert recording_store.history == []
    assert client.calls == []


def test_no_writes_after_terminal_state(recording_store):
    run = SolveRun("job-11", recording_store)
    run.finish(JobRecord.done("final"))
    run.finish(JobRecord.failed("late"))
    assert recording_store.history == ["done"]
    assert recording_store.read("job-11").answer == "final"


def test_fallback_budget_is_strictly_smaller(app):
    assert solve_budgets(app.config) == (8000, 4200)
    assert solve_budgets({"SOLVE_PRIMARY_BUDGET": 1000, "SOLVE_FALLBACK_BUDGET": 1000}) == (1000, 500)


def test_spawn_runs_inline_when_testing(app, monkeypatch):
    seen = []
    monkeypatch.setattr(
        "answer_app.services.solve_pipeline.run_solve_job",
        lambda job_id, text, prefix=None: seen.append((job_id, text, prefix)),
    )
    solve_pipeline.spawn_solve_job("job-12", "text", "P")
    assert seen == [("job-12", "text", "P")]


def test_terminal_write_is_retried_once(app):
    class BlipStore(MemoryJobStore):
        def __init__(self):
            super().__init__()
            self.failed_once = False

        def write(self, job_id, record):
            if record.status == "done" and not self.failed_once:
                self.failed_once = True
                raise JobStoreError("blip")
            super().write(job_id, record)

    store = BlipStore()
    record = run_solve_job("job-13", _exam_text(), store=store, client=ScriptedClient(GOOD_ANSWER))
    assert record.status == "done"
    assert record.answer == GOOD_ANSWER
    assert store.read("job-13").status == "done"


def test_persistent_terminal_write_failure_falls_back_to_error(app):
    class DoneRejectingStore(MemoryJobStore):
        def write(self, job_id, record):
            if record.status == "done":
                raise JobStoreError("store rejects answers")
            super().write(job_id, record)

    store = DoneRejectingStore()
    record = run_solve_job("job-14", _exam_text(), store=store, client=ScriptedClient(GOOD_ANSWER))
    assert record.status == "error"
    assert record.message == "store rejects answers"


def test_fallback_failure_is_raised_to_the_record(recording_store):
    client = ScriptedClient(
        GenerationFailure("first", 500),
        GenerationFailure("second", 503),
    )
    record = run_solve_job("job-15", _exam_text(), store=recording_store, client=client)
    assert record.message == "second (status=503)"
    assert [call["purpose"] for call in client.calls] == ["solve-primary", "solve-fallback"]


def test_background_thread_runs_job(app, monkeypatch):
    app.config["TESTING"] = False
    app.config["SOLVE_JOBS_SYNC"] = False
    called = threading.Event()
    release = threading.Event()

    def slow_post(url, headers=None, data=None, timeout=None):
        called.set()
        release.wait(5)
        return FakeResponse(200, chat_payload(GOOD_ANSWER))

    monkeypatch.setattr("answer_app.services.generation_client.requests.post", slow_post)
    client = app.test_client()

    resp = client.post("/api/solve/jobs", json={"jobId": "job-async", "ocrText": _exam_text(20)})
    assert resp.status_code == 202
    assert "job-async" in solve_pipeline.active_job_ids()
    thread = solve_pipeline._JOB_THREADS["job-async"]
    assert thread.daemon
    assert called.wait(5)
    assert client.get("/api/solve/jobs/job-async").get_json()["status"] == "running"

    release.set()
    thread.join(timeout=5)
    assert not thread.is_alive()
    job = client.get("/api/solve/jobs/job-async").get_json()
    assert job["status"] == "done"
    assert job["answer"] == GOOD_ANSWER
    assert solve_pipeline.active_job_ids() == []
    assert "job-async" not in solve_pipeline._JOB_THREADS


def test_finished_thread_keeps_a_newer_registration(app, monkeypatch):
    started = threading.Event()
    release = threading.Event()

    def blocking_run(job_id, text, prefix=None):
        started.set()
        release.wait(5)

    monkeypatch.setattr("answer_app.services.solve_pipeline.run_solve_job", blocking_run)
    solve_pipeline._run_job_async(app, "job-reused", "text", None)
    first = solve_pipeline._JOB_THREADS["job-reused"]
    started.wait(5)
    newer = threading.Thread(target=lambda: None)
    solve_pipeline._JOB_THREADS["job-reused"] = newer
    try:
        release.set()
        first.join(timeout=5)
        assert solve_pipeline._JOB_THREADS.get("job-reused") is newer
    finally:
        solve_pipeline._JOB_THREADS.pop("job-reused", None)
