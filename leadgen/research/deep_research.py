"""
Deep Research Agent

Gathers public context about one lead (company background, interviews and
profile of the decision maker, the site's own "about us" page) with a single
secondary search job, and condenses the top organic results into a text blob
for the analysis prompt.

Research is advisory: any failure yields an empty context.
"""

import logging
from typing import Any, Dict, List, Optional

from leadgen.common.config import Config, PipelinePolicy
from leadgen.common.error_handling import ErrorCollector, stage_operation
from leadgen.common.progress import ProgressReporter
from leadgen.common.types import Lead, PlatformSource
from leadgen.services.actors import GOOGLE_SEARCH_SCRAPER
from leadgen.services.job_runner import RemoteJobRunner


# ===== QUERY TEMPLATES =====

QUERY_TEMPLATES = {
    "company_background": '"{company}" {location}',
    "interview_mentions": '"{person}" "{company}" (entrevista OR interview OR podcast)',
    "profile_lookup": 'site:linkedin.com/in "{person}" "{company}"',
    "about_us": 'site:{website} ("about us" OR "quiénes somos" OR "sobre nosotros")',
}

PROFILE_PLATFORMS = {PlatformSource.LINKEDIN, PlatformSource.INSTAGRAM}


def person_name(lead: Lead) -> str:
    """Decision maker's name: the contact record, or the profile owner on profile platforms."""
    if lead.decision_maker and lead.decision_maker.name:
        return lead.decision_maker.name
    if lead.source in PROFILE_PLATFORMS:
        return lead.company_name
    return ""


def build_research_queries(lead: Lead) -> Dict[str, str]:
    """
    Build the research queries whose inputs are available.

    Returns:
        {query_kind: query}; empty when the lead has nothing to search for
    """
    company = (lead.company_name or "").strip()
    person = person_name(lead).strip()
    website = (lead.website or "").strip()
    location = (lead.location or "").strip()

    queries: Dict[str, str] = {}
    if company:
        queries["company_background"] = QUERY_TEMPLATES["company_background"].format(
            company=company, location=location
        ).strip()
    if person and company and person != company:
        queries["interview_mentions"] = QUERY_TEMPLATES["interview_mentions"].format(
            person=person, company=company
        )
        queries["profile_lookup"] = QUERY_TEMPLATES["profile_lookup"].format(
            person=person, company=company
        )
    if website:
        queries["about_us"] = QUERY_TEMPLATES["about_us"].format(website=website.split("/", 1)[0])
    return queries


class DeepResearchAgent:
    """Secondary search for one lead -> context text for analysis."""

    def __init__(
        self,
        runner: RemoteJobRunner,
        progress: Optional[ProgressReporter] = None,
        policy: Optional[PipelinePolicy] = None,
        errors: Optional[ErrorCollector] = None,
        language: Optional[str] = None,
    ):
        self.runner = runner
        self.progress = progress or ProgressReporter()
        self.policy = policy or PipelinePolicy()
        self.errors = errors or ErrorCollector()
        self.language = language or Config.SEARCH_LANGUAGE
        self.logger = logging.getLogger(__name__)

    @stage_operation("deep research", stage="research", fallback_value="")
    def research(self, lead: Lead) -> str:
        """
        Research one lead.

        Returns:
            Concatenated titles/descriptions of the top organic results, or ""
        """
        queries = build_research_queries(lead)
        if not queries:
            self.logger.info(f"No research inputs for {lead.company_name!r}, skipping")
            return ""

        payload = {
            "queries": "\n".join(queries.values()),
            "resultsPerPage": self.policy.research_results_per_page,
            "maxPagesPerQuery": 1,
            "languageCode": self.language,
            "mobileResults": False,
            "saveHtml": False,
        }
        try:
            pages = self.runner.run(
                GOOGLE_SEARCH_SCRAPER, payload, label=f"Research: {lead.company_name}"
            )
        except Exception as e:
            self.logger.warning(f"Research job failed for {lead.company_name}: {e}")
            self.progress.emit(f"[RESEARCH] ⚠️ Research unavailable for {lead.company_name}: {e}")
            self.errors.add_error("research", f"research:{lead.company_name}", str(e), severity="low", exception=e)
            return ""

        context = self.condense(pages)
        if not context:
            self.progress.emit(f"[RESEARCH] No public context found for {lead.company_name}")
        return context

    def condense(self, pages: List[Dict[str, Any]]) -> str:
        """Top organic results of every query page, capped at research_max_results."""
        lines: List[str] = []
        for page in pages:
            organic = page.get("organicResults") or []
            for result in organic[:self.policy.research_results_per_page]:
                if len(lines) >= self.policy.research_max_results:
                    break
                title = (result.get("title") or "").strip()
                description = (result.get("description") or "").strip()
                if title or description:
                    lines.append(f"- {title}: {description}" if description else f"- {title}")
        return "\n".join(lines)
