"""cratescope - static structure and call-graph extraction for Rust source trees."""

__version__ = "0.1.0"

from cratescope.application.services.pipeline import AnalysisResult, run_analysis
from cratescope.domain.configuration import AnalysisConfig

__all__ = ["AnalysisConfig", "AnalysisResult", "run_analysis", "__version__"]
