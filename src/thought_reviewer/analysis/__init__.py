"""Analysis package for thought review scheduler."""

from .client import AnalysisError, AnalyzerConfig, GeminiAnalyzer, build_prompt

__all__ = [
    "AnalysisError",
    "AnalyzerConfig",
    "GeminiAnalyzer",
    "build_prompt",
]
