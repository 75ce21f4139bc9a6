"""LangGraph workflow components for single-item feedback analysis."""

from .state import AnalysisState
from .workflow import build_analysis_workflow, run_analysis

__all__ = ["AnalysisState", "build_analysis_workflow", "run_analysis"]
