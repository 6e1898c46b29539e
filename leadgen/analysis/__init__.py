"""
Analysis: sales narrative and outreach draft per lead.
"""

from .analysis_engine import AnalysisEngine, build_fallback_analysis

__all__ = ["AnalysisEngine", "build_fallback_analysis"]
