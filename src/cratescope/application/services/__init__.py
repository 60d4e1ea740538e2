"""Application services: per-file extraction and the analysis pipeline."""

from cratescope.application.services.extractor import extract_file, extract_source
from cratescope.application.services.pipeline import AnalysisResult, run_analysis

__all__ = [
    "AnalysisResult",
    "extract_file",
    "extract_source",
    "run_analysis",
]
