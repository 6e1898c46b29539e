"""
Lead generation pipeline.

Turns a free-text description of an ideal customer into a list of qualified,
deduplicated leads with contact data and a personalized outreach draft.
"""

from .orchestrator import SearchOrchestrator

__version__ = "0.1.0"

__all__ = ["SearchOrchestrator", "__version__"]
