"""
Analysis Engine

Produces the sales narrative for one lead (summary, pain points, icebreaker,
outreach message and the extended profile) with the text-generation service.

Each call is retried with linearly increasing backoff. The engine never
raises: without a generator, or once retries are exhausted, it returns a
fallback narrative built from the lead's own fields.
"""

import logging
from typing import Optional

from pydantic import ValidationError
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_any,
    wait_incrementing,
)

from leadgen.analysis.prompts import SYSTEM_PROMPT_ANALYSIS, USER_PROMPT_ANALYSIS_TEMPLATE
from leadgen.common.cancellation import CancellationToken
from leadgen.common.config import Config, PipelinePolicy
from leadgen.common.error_handling import ErrorCollector
from leadgen.common.errors import AnalysisError
from leadgen.common.json_utils import parse_llm_json
from leadgen.common.progress import ProgressReporter
from leadgen.common.schemas import AnalysisPayload
from leadgen.common.types import Lead, LeadAnalysis
from leadgen.research.deep_research import person_name
from leadgen.services.text_generation import TextGenerator

# Research context is truncated before prompting
MAX_CONTEXT_CHARS = 4000


def build_fallback_analysis(lead: Lead) -> LeadAnalysis:
    """
    Deterministic narrative built only from the lead's fields.

    Used when no text generator is configured and when every attempt failed.
    Always structurally complete.
    """
    name = lead.company_name or "your business"
    person = person_name(lead)
    greeting = f"Hi {person.split()[0]}," if person.strip() else "Hi,"
    where = f" in {lead.location}" if lead.location else ""

    summary = lead.analysis.summary or lead.headline or f"{name}{where}."
    icebreaker = f"I came across {name}{where} and liked what you are building."
    full_message = (
        f"{greeting}\n\n"
        f"{icebreaker} I work with businesses like yours to bring in more qualified clients "
        f"without adding work to your week. Would you be open to a short call to see if it "
        f"could be a fit for {name}?"
    )
    return LeadAnalysis(
        summary=summary,
        pain_points=list(lead.analysis.pain_points),
        icebreaker=icebreaker,
        full_message=full_message,
        is_fallback=True,
    )


class AnalysisEngine:
    """Lead + research context -> LeadAnalysis."""

    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressReporter] = None,
        policy: Optional[PipelinePolicy] = None,
        errors: Optional[ErrorCollector] = None,
        language: Optional[str] = None,
    ):
        self.generator = generator
        self.token = token or CancellationToken()
        self.progress = progress or ProgressReporter()
        self.policy = policy or PipelinePolicy()
        self.errors = errors or ErrorCollector()
        self.language = language or Config.SEARCH_LANGUAGE
        self.logger = logging.getLogger(__name__)

    def analyze(self, lead: Lead, context: str = "") -> LeadAnalysis:
        """Analyze one lead. Never raises."""
        if self.generator is None:
            return build_fallback_analysis(lead)

        retrying = Retrying(
            stop=stop_any(
                stop_after_attempt(self.policy.analysis_max_attempts),
                lambda retry_state: not self.token.is_active,
            ),
            wait=wait_incrementing(
                start=self.policy.analysis_backoff_seconds,
                increment=self.policy.analysis_backoff_seconds,
            ),
            retry=retry_if_exception_type(AnalysisError),
            sleep=self.token.sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            return retrying(self._analyze_once, lead, context)
        except AnalysisError as e:
            self.logger.warning(f"Analysis failed for {lead.company_name}: {e}")
            self.progress.emit(f"[ANALYSIS] ⚠️ Using fallback message for {lead.company_name}: {e}")
            self.errors.add_error("analysis", f"analyze:{lead.company_name}", str(e), exception=e)
            return build_fallback_analysis(lead)

    def build_prompt(self, lead: Lead, context: str) -> str:
        dm = lead.decision_maker
        person = person_name(lead)
        if dm and dm.role:
            person = f"{person} ({dm.role})" if person else dm.role
        return USER_PROMPT_ANALYSIS_TEMPLATE.format(
            company=lead.company_name,
            source=lead.source.value,
            website=lead.website or "unknown",
            location=lead.location or "unknown",
            headline=lead.headline or "unknown",
            person=person or "unknown",
            summary=lead.analysis.summary or "none",
            context=(context or "No public context available.")[:MAX_CONTEXT_CHARS],
        )

    def _analyze_once(self, lead: Lead, context: str) -> LeadAnalysis:
        try:
            reply = self.generator.complete(
                self.build_prompt(lead, context),
                system=SYSTEM_PROMPT_ANALYSIS.format(language=self.language),
            )
        except Exception as e:
            raise AnalysisError(f"text generation call failed: {e}") from e

        if not reply or not reply.strip():
            raise AnalysisError("empty reply")

        try:
            payload = AnalysisPayload.model_validate(parse_llm_json(reply))
        except (ValueError, ValidationError) as e:
            raise AnalysisError(f"invalid analysis payload: {e}") from e

        return LeadAnalysis(
            summary=payload.summary.strip(),
            pain_points=payload.pain_points,
            icebreaker=payload.icebreaker.strip(),
            full_message=payload.full_message.strip(),
            psychological_profile=payload.psychological_profile,
            business_moment=payload.business_moment,
            sales_angle=payload.sales_angle,
            main_obstacle=payload.main_obstacle,
        )

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.info(
            f"Analysis attempt {retry_state.attempt_number} failed ({error}), retrying"
        )
