"""
Discovery Sources

Each platform a search can target is a DiscoverySource: it knows which remote
job discovers candidates, how to size and phrase that job's input for a given
attempt, and how to turn the job's records into CandidateRecords.

Two families:
- Contact-required (Google Maps): a lead is only accepted with an email.
- Profile-discovery (LinkedIn, Instagram): a lead is accepted once its
  analysis completes; an email is not required.
"""

import logging
import math
import re
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from leadgen.common.config import Config, PipelinePolicy
from leadgen.common.dedupe import clean_website
from leadgen.common.types import (
    CandidateRecord,
    DecisionMaker,
    Lead,
    LeadAnalysis,
    LeadStatus,
    PlatformSource,
    SearchIntent,
)
from leadgen.enrichment.matching import as_list, pick_contact_email
from leadgen.services.actors import GOOGLE_MAPS_SCRAPER, GOOGLE_SEARCH_SCRAPER

logger = logging.getLogger(__name__)


class DiscoverySource(ABC):
    """Abstract base class for discovery platforms."""

    platform: PlatformSource
    job_type: str
    requires_email: bool = True

    @abstractmethod
    def build_payload(
        self,
        intent: SearchIntent,
        fetch_size: int,
        attempt: int,
        policy: PipelinePolicy,
        seen: int = 0,
    ) -> Dict[str, Any]:
        """
        Build the discovery job input.

        Args:
            intent: Interpreted search intent
            fetch_size: Number of candidates wanted (already over-fetched)
            attempt: 1-based attempt number within the smart loop
            policy: Pipeline policy
            seen: Candidates already evaluated earlier in this run
        """

    @abstractmethod
    def to_candidates(self, records: List[Dict[str, Any]]) -> List[CandidateRecord]:
        """Convert raw job records into candidates, skipping unusable ones."""

    def candidate_key(self, candidate: CandidateRecord) -> Optional[str]:
        """URL or handle used for deduplication."""
        return candidate.website or candidate.social_url

    def to_lead(self, candidate: CandidateRecord) -> Lead:
        """Promote a candidate to a Lead in SCRAPED (or ENRICHED) state."""
        lead = Lead(
            id=str(candidate.source_id) if candidate.source_id else f"lead-{uuid.uuid4().hex[:12]}",
            source=self.platform,
            company_name=candidate.name.strip(),
            website=clean_website(candidate.website),
            social_url=candidate.social_url,
            location=candidate.address,
            headline=candidate.headline,
            phone=candidate.phones[0] if candidate.phones else None,
            analysis=LeadAnalysis(summary=candidate.summary or ""),
            status=LeadStatus.SCRAPED,
        )
        email = pick_contact_email(candidate.emails)
        if email:
            lead.decision_maker = DecisionMaker(
                email=email,
                phone=lead.phone or "",
                facebook=candidate.facebook or "",
                instagram=candidate.instagram or "",
            )
            lead.status = LeadStatus.ENRICHED
        return lead


class GoogleMapsSource(DiscoverySource):
    """Local businesses from Google Maps, with emails scraped from their websites."""

    platform = PlatformSource.GMAPS
    job_type = GOOGLE_MAPS_SCRAPER
    requires_email = True

    def __init__(self, language: Optional[str] = None):
        self.language = language or Config.SEARCH_LANGUAGE

    def search_string(self, intent: SearchIntent) -> str:
        query = intent.query.strip()
        location = intent.location.strip()
        if location and location.lower() not in query.lower():
            return f"{query} {location}"
        return query

    def build_payload(self, intent, fetch_size, attempt, policy, seen=0):
        # Maps results are ranked; later attempts ask past the places already evaluated
        return {
            "searchStringsArray": [self.search_string(intent)],
            "maxCrawledPlacesPerSearch": seen + fetch_size,
            "language": self.language,
            "includeWebsiteEmail": True,
            "scrapeContacts": True,
            "maxImages": 0,
            "maxReviews": 0,
        }

    def to_candidates(self, records):
        candidates = []
        for item in records:
            name = (item.get("title") or item.get("name") or "").strip()
            if not name:
                continue
            category = item.get("categoryName") or "Business"
            reviews = item.get("reviewsCount") or 0
            score = item.get("totalScore") or "N/A"
            candidates.append(
                CandidateRecord(
                    name=name,
                    source_id=item.get("placeId"),
                    website=item.get("website"),
                    address=item.get("address") or item.get("fullAddress"),
                    emails=as_list(item.get("email")) + as_list(item.get("emails")),
                    phones=as_list(item.get("phone")) + as_list(item.get("phones")),
                    facebook=_first(item.get("facebook") or item.get("facebooks")),
                    instagram=_first(item.get("instagram") or item.get("instagrams")),
                    summary=f"{category} with {reviews} reviews ({score}⭐)",
                )
            )
        return candidates


class GoogleSearchProfileSource(DiscoverySource):
    """Base for profile platforms discovered through site-scoped Google searches."""

    requires_email = False
    job_type = GOOGLE_SEARCH_SCRAPER
    results_per_page = 10
    max_pages = 10

    def __init__(self, language: Optional[str] = None):
        self.language = language or Config.SEARCH_LANGUAGE

    @abstractmethod
    def build_queries(self, intent: SearchIntent) -> List[str]:
        """Site-scoped search queries for this platform."""

    @abstractmethod
    def parse_result(self, result: Dict[str, Any]) -> Optional[CandidateRecord]:
        """One organic result -> candidate (or None to skip)."""

    def build_payload(self, intent, fetch_size, attempt, policy, seen=0):
        # Later attempts page deeper into the results
        pages = math.ceil(max(fetch_size, 1) / self.results_per_page) + (attempt - 1)
        return {
            "queries": "\n".join(self.build_queries(intent)),
            "resultsPerPage": self.results_per_page,
            "maxPagesPerQuery": min(pages, self.max_pages),
            "languageCode": self.language,
            "mobileResults": False,
            "saveHtml": False,
        }

    def to_candidates(self, records):
        candidates = []
        seen = set()
        for page in records:
            for result in page.get("organicResults") or []:
                candidate = self.parse_result(result)
                if candidate is None or candidate.social_url in seen:
                    continue
                seen.add(candidate.social_url)
                candidates.append(candidate)
        return candidates


LINKEDIN_TITLE_SUFFIX = re.compile(r"\s*[|\-–]\s*LinkedIn\s*$", re.I)


class LinkedInProfileSource(GoogleSearchProfileSource):
    """Decision makers' LinkedIn profiles."""

    platform = PlatformSource.LINKEDIN

    def build_queries(self, intent):
        roles = list(intent.target_roles[:3]) or [""]
        return [
            " ".join(
                part for part in (
                    "site:linkedin.com/in",
                    f'"{role}"' if role else "",
                    intent.industry,
                    intent.location,
                ) if part
            )
            for role in roles
        ]

    def parse_result(self, result):
        url = (result.get("url") or "").strip()
        title = (result.get("title") or "").strip()
        if "linkedin.com/in/" not in url.lower() or not title:
            return None

        # "Jane Doe - CEO - Acme | LinkedIn"
        title = LINKEDIN_TITLE_SUFFIX.sub("", title)
        parts = [p.strip() for p in re.split(r"\s+[-–|]\s+", title) if p.strip()]
        if not parts:
            return None
        name = parts[0]
        if len(name) < 2 or len(name) > 100:
            return None
        headline = " - ".join(parts[1:]) or None

        return CandidateRecord(
            name=name,
            social_url=url.split("?", 1)[0].rstrip("/"),
            headline=headline,
            summary=(result.get("description") or "").strip() or None,
        )


INSTAGRAM_RESERVED_PATHS = {"p", "reel", "reels", "explore", "stories", "tv", "accounts", "about"}
INSTAGRAM_TITLE = re.compile(r"^(?P<name>.*?)\s*\(@(?P<handle>[\w.]+)\)")


class InstagramProfileSource(GoogleSearchProfileSource):
    """Business accounts on Instagram."""

    platform = PlatformSource.INSTAGRAM

    def build_queries(self, intent):
        return [f"site:instagram.com {intent.industry} {intent.location}".strip()]

    def parse_result(self, result):
        url = (result.get("url") or "").strip()
        parsed = urlparse(url)
        if "instagram.com" not in (parsed.netloc or "").lower():
            return None
        segments = [s for s in parsed.path.split("/") if s]
        if not segments or segments[0].lower() in INSTAGRAM_RESERVED_PATHS:
            return None
        handle = segments[0]

        title = (result.get("title") or "").strip()
        match = INSTAGRAM_TITLE.match(title)
        name = (match.group("name").strip() if match else "") or handle

        return CandidateRecord(
            name=name,
            social_url=f"instagram.com/{handle}",
            headline=f"@{handle}",
            summary=(result.get("description") or "").strip() or None,
            instagram=f"https://instagram.com/{handle}",
        )


def _first(value) -> Optional[str]:
    values = as_list(value)
    return values[0] if values else None


_SOURCES = {
    PlatformSource.GMAPS: GoogleMapsSource,
    PlatformSource.LINKEDIN: LinkedInProfileSource,
    PlatformSource.INSTAGRAM: InstagramProfileSource,
}


def get_source(platform: PlatformSource, language: Optional[str] = None) -> DiscoverySource:
    """Discovery source for a platform."""
    try:
        source_cls = _SOURCES[PlatformSource(platform)]
    except (KeyError, ValueError):
        raise ValueError(f"Unsupported platform: {platform}")
    return source_cls(language=language)
