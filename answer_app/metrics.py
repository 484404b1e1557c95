"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "answer_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "answer_request_latency_seconds",
    "Latency of HTTP requests in seconds",
    ["endpoint"],
)
GENERATION_ATTEMPTS = Counter(
    "answer_generation_attempts_total",
    "Calls made to the generation service",
    ["purpose", "outcome"],
)
SOLVE_JOBS = Counter(
    "answer_solve_jobs_total",
    "Solve jobs that reached a terminal state",
    ["status"],
)
PARSE_REQUESTS = Counter(
    "answer_parse_requests_total",
    "Question segmentation results",
    ["outcome"],
)


def record_request(method: str, endpoint: str, status: int, latency: float) -> None:
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)


def record_generation_attempt(purpose: str, outcome: str) -> None:
    GENERATION_ATTEMPTS.labels(purpose=purpose, outcome=outcome).inc()


def record_solve_job(status: str) -> None:
    SOLVE_JOBS.labels(status=status).inc()


def record_parse(outcome: str) -> None:
    PARSE_REQUESTS.labels(outcome=outcome).inc()


def latest_metrics() -> tuple[bytes, str]:
    data = generate_latest()
    return data, CONTENT_TYPE_LATEST
