"""Request validation schemas (Marshmallow)."""

from .import_schema import OcrRequestSchema, ParseRequestSchema, UnderlineRequestSchema
from .solve_schema import QuickSolveRequestSchema, SolveJobRequestSchema

__all__ = [
    "OcrRequestSchema",
    "ParseRequestSchema",
    "UnderlineRequestSchema",
    "QuickSolveRequestSchema",
    "SolveJobRequestSchema",
]
