"""Database models package."""

from .solve_job import SolveJob

__all__ = ["SolveJob"]
