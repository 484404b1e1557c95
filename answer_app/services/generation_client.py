"""Client for the OpenAI-compatible chat completions endpoint (OpenRouter)."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from typing import Any

import requests
from flask import current_app

from ..metrics import record_generation_attempt
from .generation_log import log_event

_HTML_START_RE = re.compile(r"^<(?:!DOCTYPE\s+HTML|HTML|HEAD|BODY)", re.IGNORECASE)


class GenerationFailure(Exception):
    """The generation service did not produce usable text."""

    def __init__(self, reason: str, status: int | None = None, raw: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.status = status
        self.raw = raw

    def describe(self) -> str:
        return f"{self.reason} (status={self.status or '?'})"


def looks_like_html(content_type: str | None, body: str | None) -> bool:
    """Detect proxy error pages (e.g. "Inactivity Timeout") served instead of JSON."""

    ct = (content_type or "").lower()
    trimmed = (body or "").strip()
    upper = trimmed.upper()
    if "text/html" in ct:
        return True
    if _HTML_START_RE.match(trimmed):
        return True
    return "<HTML" in upper or "INACTIVITY TIMEOUT" in upper


def extract_message_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    choice = choices[0] if isinstance(choices[0], dict) else {}
    message = choice.get("message") if isinstance(choice.get("message"), dict) else {}
    # Some reasoning models leave content empty and answer in `reasoning`.
    for value in (message.get("content"), message.get("reasoning"), choice.get("text")):
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


@dataclass
class GenerationClient:
    api_key: str
    api_base: str
    default_model: str
    site_url: str = ""
    app_title: str = ""

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.app_title:
            headers["X-Title"] = self.app_title
        return headers

    def chat(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str | None = None,
        temperature: float = 0.2,
        max_tokens: int | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        purpose: str = "chat",
        job_id: str | None = None,
    ) -> str:
        if not self.api_key:
            raise GenerationFailure("AI_API_KEY / OPENROUTER_API_KEY is not configured")

        payload: dict[str, Any] = {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        app = current_app
        connect_timeout = app.config.get("AI_CONNECT_TIMEOUT_SEC", 15)
        read_timeout = timeout or app.config.get("AI_READ_TIMEOUT_SEC", 60)
        if max_attempts is None:
            max_attempts = app.config.get("AI_API_MAX_RETRIES", 3)
        max_attempts = max(1, int(max_attempts))
        backoff = float(app.config.get("AI_API_RETRY_BACKOFF", 2.0))
        preview = int(app.config.get("AI_RAW_PREVIEW_CHARS", 600))

        attempt = 0
        while True:
            attempt += 1
            started = time.perf_counter()
            try:
                response = requests.post(
                    f"{self.api_base.rstrip('/')}/chat/completions",
                    headers=self._headers(),
                    data=json.dumps(payload),
                    timeout=(connect_timeout, read_timeout),
                )
            except requests.Timeout as exc:
                failure = GenerationFailure("Generation request timed out", raw=str(exc)[:preview])
            except requests.RequestException as exc:
                failure = GenerationFailure(f"Generation request failed: {exc}", raw=str(exc)[:preview])
            else:
                try:
                    text = self._read_text(response, preview)
                except GenerationFailure as exc:
                    self._record(purpose, job_id, attempt, max_attempts, started, payload, exc)
                    raise
                self._record(purpose, job_id, attempt, max_attempts, started, payload, None)
                return text

            self._record(purpose, job_id, attempt, max_attempts, started, payload, failure)
            if attempt >= max_attempts:
                raise failure
            delay = backoff * attempt
            app.logger.warning(
                "Generation call failed (attempt %s/%s): %s. Retrying in %.1fs",
                attempt,
                max_attempts,
                failure.reason,
                delay,
            )
            time.sleep(delay)

    @staticmethod
    def _read_text(response: requests.Response, preview: int) -> str:
        raw = response.text or ""
        status = response.status_code
        if looks_like_html(response.headers.get("Content-Type"), raw):
            raise GenerationFailure("Generation service returned an HTML error page", status, raw[:preview])
        try:
            data = json.loads(raw)
        except ValueError:
            raise GenerationFailure("Non-JSON response from generation service", status, raw[:preview])
        if not response.ok:
            message = ""
            if isinstance(data, dict) and isinstance(data.get("error"), dict):
                message = data["error"].get("message") or ""
            raise GenerationFailure(message or "Generation service error", status, raw[:preview])
        text = extract_message_text(data)
        if not text:
            raise GenerationFailure("No answer from model", status, raw[:preview])
        return text

    @staticmethod
    def _record(
        purpose: str,
        job_id: str | None,
        attempt: int,
        max_attempts: int,
        started: float,
        payload: dict[str, Any],
        failure: GenerationFailure | None,
    ) -> None:
        outcome = "success" if failure is None else "failure"
        record_generation_attempt(purpose, outcome)
        entry: dict[str, Any] = {
            "job_id": job_id,
            "purpose": purpose,
            "attempt": attempt,
            "max_attempts": max_attempts,
            "duration_ms": int((time.perf_counter() - started) * 1000),
            "model": payload.get("model"),
        }
        if failure is not None:
            entry["error"] = failure.reason
            entry["status_code"] = failure.status
        log_event(f"generation_{outcome}", entry)

    def complete(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return self.chat(messages, **kwargs)


def get_generation_client() -> GenerationClient:
    app = current_app
    client = app.extensions.get("generation_client")
    if client is None:
        client = GenerationClient(
            api_key=app.config.get("AI_API_KEY", ""),
            api_base=app.config.get("AI_API_BASE", "https://openrouter.ai/api/v1"),
            default_model=app.config.get("AI_MODEL_NAME", "openrouter/auto"),
            site_url=app.config.get("AI_SITE_URL", ""),
            app_title=app.config.get("AI_APP_TITLE", ""),
        )
        app.extensions["generation_client"] = client
    return client
