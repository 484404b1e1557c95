"""answer_app package – application factory and blueprint registration."""

from __future__ import annotations

import json
import os
from time import perf_counter

import click
from flask import Flask, g, request

from config import resolve_config
from .blueprints import BLUEPRINTS
from .extensions import cors, db, limiter
from .logging_config import configure_logging, assign_request_id
from .metrics import record_request


def create_app(config_name: str | None = None) -> Flask:
    """Application factory used by both CLI and runtime servers."""

    app = Flask(__name__)
    _configure_app(app, config_name)
    configure_logging(app)
    _register_extensions(app)
    _register_blueprints(app)
    _register_shellcontext(app)
    _register_cli(app)
    _register_bootstrap(app)
    _register_request_hooks(app)

    return app


def _configure_app(app: Flask, config_name: str | None) -> None:
    env_name = config_name or os.getenv("FLASK_CONFIG")
    config_obj = resolve_config(env_name)
    app.config.from_object(config_obj)


def _register_extensions(app: Flask) -> None:
    db.init_app(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )
    limiter.default_limits = app.config.get("RATE_LIMIT_DEFAULTS", [])
    limiter.init_app(app)


def _register_blueprints(app: Flask) -> None:
    for blueprint, prefix in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=prefix)


def _register_shellcontext(app: Flask) -> None:
    # Lazy import inside function to avoid circular dependencies.
    from . import models  # noqa: F401

    @app.shell_context_processor
    def shell_context():
        return {"db": db}


def _register_bootstrap(app: Flask) -> None:
    if app.config.get("JOB_STORE_BACKEND") != "database":
        return

    @app.before_request
    def ensure_schema():
        if app.config.get("_SCHEMA_READY"):
            return
        _ensure_schema(app)
        app.config["_SCHEMA_READY"] = True


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def start_request():
        assign_request_id()
        g.request_started_at = perf_counter()

    @app.after_request
    def finalize(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        response.headers.setdefault("Cache-Control", "no-store")
        started = getattr(g, "request_started_at", None)
        latency = perf_counter() - started if started else 0.0
        endpoint = request.endpoint or request.path
        record_request(request.method, endpoint, response.status_code, latency)
        return response


def _ensure_schema(app: Flask) -> None:
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()


def _register_cli(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db() -> None:
        """Create the solve_jobs table for the database job store."""

        _ensure_schema(app)
        click.echo("Database schema is ready.")

    @app.cli.command("parse-questions")
    @click.argument("source", type=click.File("r", encoding="utf-8"))
    def parse_questions_command(source) -> None:
        """Segment an OCR text file into questions and print them as JSON."""

        from .services import question_segmenter

        result = question_segmenter.segment(source.read(), app.config.get("STOP_TOKEN"))
        click.echo(json.dumps(result.serialize(), ensure_ascii=False, indent=2))
        if not result.ok:
            raise click.exceptions.Exit(1)

    @app.cli.command("solve")
    @click.argument("source", type=click.File("r", encoding="utf-8"))
    @click.option("--job-id", default=None, help="Job id used as the store key.")
    @click.option("--prefix", default=None, help="Text the stored answer must start with.")
    def solve_command(source, job_id: str | None, prefix: str | None) -> None:
        """Run a solve job in the foreground and print the final record."""

        from uuid import uuid4

        from .services import solve_pipeline

        job_id = job_id or uuid4().hex
        if app.config.get("JOB_STORE_BACKEND") == "database":
            _ensure_schema(app)
        with app.app_context():
            record = solve_pipeline.run_solve_job(job_id, source.read(), prefix)
        if record is None:
            raise click.ClickException("Job did not produce a record.")
        click.echo(json.dumps({"jobId": job_id, **record.to_dict()}, ensure_ascii=False, indent=2))
        if record.status != "done":
            raise click.exceptions.Exit(1)
