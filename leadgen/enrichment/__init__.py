"""
Enrichment: contact lookup for leads without an email, and the deep-mode
decision-maker finder.
"""

from .contact_enricher import ContactEnrichmentBatcher
from .decision_makers import DecisionMakerFinder

__all__ = ["ContactEnrichmentBatcher", "DecisionMakerFinder"]
