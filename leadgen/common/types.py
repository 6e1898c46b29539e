"""
Canonical Types for the Lead Generation Pipeline

This module defines the data structures that flow between pipeline stages:
the interpreted search intent, raw discovery candidates, and the Lead record
handed to the caller's result sink.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class PlatformSource(str, Enum):
    """Discovery platform a lead was found on."""
    GMAPS = "gmaps"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"


class SearchMode(str, Enum):
    """fast: discovery + enrichment + analysis. deep: also runs the decision-maker finder."""
    FAST = "fast"
    DEEP = "deep"


class LeadStatus(str, Enum):
    """Lead lifecycle. CONTACTED and REPLIED are owned by outreach tooling, never set here."""
    SCRAPED = "scraped"
    ENRICHED = "enriched"
    READY = "ready"
    CONTACTED = "contacted"
    REPLIED = "replied"


class RunStatus(str, Enum):
    """Search run state machine."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchIntent:
    """Structured interpretation of a free-text target profile. Immutable once built."""
    query: str
    industry: str
    target_roles: Tuple[str, ...]
    location: str


@dataclass
class CandidateRecord:
    """Raw discovery output, before it is accepted as a Lead."""
    name: str
    source_id: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    social_url: Optional[str] = None
    headline: Optional[str] = None
    summary: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None


@dataclass
class DecisionMaker:
    """Contact record. Only attached to a Lead once an email is known."""
    email: str
    name: str = ""
    role: str = ""
    phone: str = ""
    linkedin: str = ""
    facebook: str = ""
    instagram: str = ""


@dataclass
class LeadAnalysis:
    """Sales narrative for one lead."""
    summary: str = ""
    pain_points: List[str] = field(default_factory=list)
    icebreaker: str = ""
    full_message: str = ""
    psychological_profile: Optional[str] = None
    business_moment: Optional[str] = None
    sales_angle: Optional[str] = None
    main_obstacle: Optional[str] = None
    is_fallback: bool = False

    def is_complete(self) -> bool:
        """All mandatory narrative fields are present."""
        return bool(self.summary and self.icebreaker and self.full_message)


@dataclass
class Lead:
    """The durable unit of pipeline output."""
    id: str
    source: PlatformSource
    company_name: str
    website: Optional[str] = None
    social_url: Optional[str] = None
    location: Optional[str] = None
    headline: Optional[str] = None
    phone: Optional[str] = None
    decision_maker: Optional[DecisionMaker] = None
    analysis: LeadAnalysis = field(default_factory=LeadAnalysis)
    status: LeadStatus = LeadStatus.SCRAPED

    @property
    def email(self) -> str:
        return self.decision_maker.email if self.decision_maker else ""

    @property
    def has_email(self) -> bool:
        return bool(self.email)

    def set_email(self, email: str) -> None:
        """Attach (or update) the contact email and mark the lead enriched."""
        if self.decision_maker is None:
            self.decision_maker = DecisionMaker(email=email, phone=self.phone or "")
        else:
            self.decision_maker.email = email
        if self.status == LeadStatus.SCRAPED:
            self.status = LeadStatus.ENRICHED

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used by persistence collaborators."""
        data: Dict[str, Any] = {
            "id": self.id,
            "source": self.source.value,
            "companyName": self.company_name,
            "website": self.website,
            "socialUrl": self.social_url,
            "location": self.location,
            "aiAnalysis": {
                "summary": self.analysis.summary,
                "painPoints": list(self.analysis.pain_points),
                "generatedIcebreaker": self.analysis.icebreaker,
                "fullMessage": self.analysis.full_message,
            },
            "status": self.status.value,
        }
        extended = {
            "psychologicalProfile": self.analysis.psychological_profile,
            "businessMoment": self.analysis.business_moment,
            "salesAngle": self.analysis.sales_angle,
            "mainObstacle": self.analysis.main_obstacle,
        }
        data["aiAnalysis"].update({k: v for k, v in extended.items() if v})
        if self.decision_maker:
            dm = self.decision_maker
            data["decisionMaker"] = {
                "name": dm.name,
                "role": dm.role,
                "email": dm.email,
                "phone": dm.phone,
                "linkedin": dm.linkedin,
                "facebook": dm.facebook,
                "instagram": dm.instagram,
            }
        return data


@dataclass
class SearchConfig:
    """Caller-supplied search request."""
    query: str
    source: PlatformSource = PlatformSource.GMAPS
    mode: SearchMode = SearchMode.FAST
    max_results: int = 10


@dataclass
class SearchSession:
    """Summary of one search run, suitable for a history collaborator."""
    id: str
    query: str
    source: PlatformSource
    status: RunStatus = RunStatus.IDLE
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    leads: List[Lead] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def results_count(self) -> int:
        return len(self.leads)
