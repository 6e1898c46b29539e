"""
Decision-maker finder (deep mode).

For the top accepted leads that already have an email and a website, runs a
single decision-maker extraction job and attaches the most senior named
person found on each site. Best-effort: failures never abort the run.
"""

import logging
from typing import List, Optional

from leadgen.common.cancellation import CancellationToken
from leadgen.common.config import PipelinePolicy
from leadgen.common.error_handling import ErrorCollector
from leadgen.common.progress import ProgressReporter
from leadgen.common.types import Lead, LeadStatus
from leadgen.enrichment.matching import NormalizedDomainMatcher, is_contact_email, text_field
from leadgen.services.actors import DECISION_MAKER_FINDER
from leadgen.services.job_runner import RemoteJobRunner

DEFAULT_DECISION_MAKER_ROLE = "Owner"


class DecisionMakerFinder:
    def __init__(
        self,
        runner: RemoteJobRunner,
        token: CancellationToken,
        progress: Optional[ProgressReporter] = None,
        policy: Optional[PipelinePolicy] = None,
        errors: Optional[ErrorCollector] = None,
    ):
        self.runner = runner
        self.token = token
        self.progress = progress or ProgressReporter()
        self.policy = policy or PipelinePolicy()
        self.errors = errors or ErrorCollector()
        self.logger = logging.getLogger(__name__)

    def find(self, leads: List[Lead]) -> int:
        """Returns the number of leads that gained a named decision maker."""
        targets = [lead for lead in leads if lead.has_email and lead.website]
        targets = targets[:self.policy.decision_maker_limit]
        if not targets or not self.token.is_active:
            return 0

        self.progress.emit(f"[DECISION] 👤 Looking for decision makers at {len(targets)} companies...")
        payload = {
            "urls": [f"https://{lead.website}" for lead in targets],
            "maxPagesPerDomain": 5,
        }
        try:
            results = self.runner.run(DECISION_MAKER_FINDER, payload, label="Decision-maker finder")
        except Exception as e:
            self.logger.warning(f"Decision-maker finder failed: {e}")
            self.progress.emit(f"[DECISION] ⚠️ Error finding decision makers: {e}")
            self.errors.add_error("decision_makers", "decision_maker_finder", str(e), exception=e)
            return 0

        matcher = NormalizedDomainMatcher(targets)
        found = 0
        for item in results:
            if not isinstance(item, dict):
                continue
            raw = item.get("decisionMakers")
            people = [p for p in raw if isinstance(p, dict) and text_field(p, "name")] if isinstance(raw, list) else []
            if not people:
                continue
            lead = matcher.match(text_field(item, "domain", "url"))
            if lead is None or lead.decision_maker is None:
                continue

            top = people[0]
            dm = lead.decision_maker
            dm.name = text_field(top, "name")
            dm.role = text_field(top, "title", "position") or DEFAULT_DECISION_MAKER_ROLE
            email = text_field(top, "email")
            if is_contact_email(email):
                dm.email = email
            linkedin = text_field(top, "linkedin")
            if linkedin:
                dm.linkedin = linkedin
            lead.status = LeadStatus.READY
            found += 1

        self.progress.emit(f"[DECISION] ✅ Decision makers identified for {found}/{len(targets)} companies")
        return found
