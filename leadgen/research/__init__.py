"""
Deep research: public context about one lead for the analysis prompt.
"""

from .deep_research import DeepResearchAgent

__all__ = ["DeepResearchAgent"]
