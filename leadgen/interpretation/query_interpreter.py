"""
Query Interpreter

Turns the free-text target profile typed by the operator into a SearchIntent
(query, industry, target roles, location). Uses the text-generation service
when one is configured and always degrades to a deterministic intent: a
failed interpretation never aborts a search.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from leadgen.common.config import Config, DEFAULT_TARGET_ROLES
from leadgen.common.errors import InterpretationError
from leadgen.common.json_utils import parse_llm_json
from leadgen.common.progress import ProgressReporter
from leadgen.common.schemas import SearchIntentPayload
from leadgen.common.types import SearchIntent
from leadgen.services.text_generation import TextGenerator


SYSTEM_PROMPT_INTERPRET = """You are a B2B prospecting analyst.
You convert a short description of an ideal customer into structured search parameters.
Respond with ONE JSON object and nothing else."""

USER_PROMPT_INTERPRET_TEMPLATE = """Ideal customer description:
\"\"\"{query}\"\"\"

Return strict JSON with exactly these four fields:
{{
  "query": "short search phrase a person would type into Google Maps or Google",
  "industry": "concise industry or business type label",
  "target_roles": ["decision-maker job titles, most relevant first (max 5)"],
  "location": "city, region or country (use \\"{default_location}\\" if none is mentioned)"
}}"""


class QueryInterpreter:
    """Free text -> SearchIntent, with a deterministic fallback."""

    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        progress: Optional[ProgressReporter] = None,
        default_location: Optional[str] = None,
        fallback_roles: Optional[List[str]] = None,
    ):
        self.generator = generator
        self.progress = progress or ProgressReporter()
        self.default_location = default_location or Config.DEFAULT_LOCATION
        self.fallback_roles = list(fallback_roles or DEFAULT_TARGET_ROLES)
        self.logger = logging.getLogger(__name__)

    def fallback_intent(self, query: str) -> SearchIntent:
        """Deterministic intent: the raw text is both query and industry label."""
        text = (query or "").strip()
        return SearchIntent(
            query=text,
            industry=text,
            target_roles=tuple(self.fallback_roles),
            location=self.default_location,
        )

    def interpret(self, query: str) -> SearchIntent:
        """
        Interpret a free-text profile description.

        Never raises: any failure is reported and replaced by fallback_intent().
        """
        if self.generator is None:
            self.progress.emit("[INTERPRET] No text generator configured, using default roles and location")
            return self.fallback_intent(query)

        try:
            intent = self._interpret_with_llm(query)
        except InterpretationError as e:
            self.logger.warning(f"Query interpretation failed: {e}")
            self.progress.emit("[INTERPRET] ⚠️ Could not interpret the query, using default roles and location")
            return self.fallback_intent(query)

        self.progress.emit(
            f"[INTERPRET] Industry: {intent.industry} | Roles: {', '.join(intent.target_roles)} | "
            f"Location: {intent.location}"
        )
        return intent

    def _interpret_with_llm(self, query: str) -> SearchIntent:
        prompt = USER_PROMPT_INTERPRET_TEMPLATE.format(
            query=query.strip(),
            default_location=self.default_location,
        )
        try:
            reply = self.generator.complete(prompt, system=SYSTEM_PROMPT_INTERPRET)
        except Exception as e:
            raise InterpretationError(f"text generation call failed: {e}") from e

        try:
            payload = SearchIntentPayload.model_validate(parse_llm_json(reply))
        except (ValueError, ValidationError) as e:
            raise InterpretationError(f"invalid interpretation payload: {e}") from e

        return SearchIntent(
            query=payload.query.strip(),
            industry=payload.industry.strip(),
            target_roles=tuple(payload.target_roles[:5]),
            location=payload.location.strip(),
        )
