"""
Configuration loader for the lead generation pipeline.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
from dataclasses import dataclass, fields
from typing import List
from dotenv import load_dotenv

from leadgen.common.errors import SetupError

# Load environment variables from .env file
load_dotenv()


# Used by QueryInterpreter whenever the text-generation service is absent or fails
DEFAULT_TARGET_ROLES: List[str] = [
    "CEO",
    "Founder",
    "Owner",
    "Managing Director",
    "General Manager",
]


class Config:
    """
    Centralized configuration for all pipeline components.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== Remote job service (Apify) =====
    APIFY_API_TOKEN: str = os.getenv("APIFY_API_TOKEN") or os.getenv("APIFY_API_KEY", "")
    APIFY_BASE_URL: str = os.getenv("APIFY_BASE_URL", "https://api.apify.com/v2")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # ===== Text generation =====
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    DEFAULT_MODEL: str = os.getenv("DEFAULT_MODEL", "gpt-4o-mini")

    # Temperature settings
    ANALYSIS_TEMPERATURE: float = 0.7  # For outreach generation
    INTERPRETATION_TEMPERATURE: float = 0.2  # For query structuring

    # ===== Search defaults =====
    SEARCH_LANGUAGE: str = os.getenv("SEARCH_LANGUAGE", "es")
    DEFAULT_LOCATION: str = os.getenv("DEFAULT_LOCATION", "España")

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises SetupError if the job service credential is missing.
        """
        if not cls.APIFY_API_TOKEN:
            raise SetupError(
                "Missing Apify API token. Set APIFY_API_TOKEN in your .env file."
            )

    @classmethod
    def has_text_generation(cls) -> bool:
        """Whether a text-generation credential is configured."""
        return bool(cls.OPENAI_API_KEY)

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  Apify: {'✓ Configured' if cls.APIFY_API_TOKEN else '✗ Missing'}
  Text generation: {'✓ ' + cls.DEFAULT_MODEL if cls.OPENAI_API_KEY else '✗ Disabled (fallback templates)'}
  Search language: {cls.SEARCH_LANGUAGE}
  Default location: {cls.DEFAULT_LOCATION}
"""


@dataclass(frozen=True)
class PipelinePolicy:
    """
    Tunable pipeline policy.

    Each field changes exactly one behavior:
        overfetch_multiplier: new candidates requested per attempt = shortfall * multiplier
        max_attempts: discovery attempts per platform before giving up
        enrichment_batch_size: websites per contact-lookup job
        analysis_max_attempts: text-generation attempts per lead analysis
        analysis_backoff_seconds: linear backoff unit (wait k * unit before retry k)
        poll_interval_seconds: wait between job status checks
        max_polls: status checks before a job times out
        poll_log_every: emit a "still waiting" line every N polls
        research_max_results: organic results concatenated into research context
        research_results_per_page: organic results requested per research query
        decision_maker_limit: leads sent to the decision-maker finder (deep mode)
        contact_max_requests_per_website: crawl depth of a contact lookup
    """

    overfetch_multiplier: int = 4
    max_attempts: int = 10
    enrichment_batch_size: int = 10
    analysis_max_attempts: int = 3
    analysis_backoff_seconds: float = 1.0
    poll_interval_seconds: float = 5.0
    max_polls: int = 60
    poll_log_every: int = 4
    research_max_results: int = 8
    research_results_per_page: int = 3
    decision_maker_limit: int = 5
    contact_max_requests_per_website: int = 3

    @classmethod
    def from_env(cls) -> "PipelinePolicy":
        """Build a policy, overriding defaults with LEADGEN_<FIELD> variables."""
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(f"LEADGEN_{f.name.upper()}")
            if raw is None or raw == "":
                continue
            caster = float if isinstance(f.default, float) else int
            try:
                overrides[f.name] = caster(raw)
            except ValueError:
                raise SetupError(f"Invalid value for LEADGEN_{f.name.upper()}: {raw!r}")
        return cls(**overrides)
