"""REST API blueprints (parse, ocr, solve, meta, metrics)."""

from __future__ import annotations

from .meta_bp import meta_bp
from .metrics_bp import metrics_bp
from .ocr_bp import ocr_bp
from .parse_bp import parse_bp
from .solve_bp import solve_bp

BLUEPRINTS = (
    (parse_bp, "/api/parse"),
    (ocr_bp, "/api/ocr"),
    (solve_bp, "/api/solve"),
    (meta_bp, "/api/meta"),
    (metrics_bp, ""),
)

__all__ = [
    "BLUEPRINTS",
    "meta_bp",
    "metrics_bp",
    "ocr_bp",
    "parse_bp",
    "solve_bp",
]
