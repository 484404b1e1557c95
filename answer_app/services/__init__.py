"""Business logic modules (segmentation, compaction, solve pipeline, clients)."""

from . import (
    text_normalizer,
    question_segmenter,
    compaction,
    answer_postprocessor,
    job_store,
    generation_client,
    ocr_client,
    solve_pipeline,
    quick_solve_service,
    underline_service,
    generation_log,
)

__all__ = [
    "text_normalizer",
    "question_segmenter",
    "compaction",
    "answer_postprocessor",
    "job_store",
    "generation_client",
    "ocr_client",
    "solve_pipeline",
    "quick_solve_service",
    "underline_service",
    "generation_log",
]
