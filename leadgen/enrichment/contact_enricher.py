"""
Contact Enrichment

Leads discovered without an email but with a website are sent, in fixed-size
batches, to a contact-lookup job that crawls each site for emails, phones and
social profiles. Results are joined back onto the leads by domain.

Enrichment is best-effort per batch: a failed batch is reported and the next
batch still runs.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from leadgen.common.cancellation import CancellationToken
from leadgen.common.config import PipelinePolicy
from leadgen.common.error_handling import ErrorCollector
from leadgen.common.progress import ProgressReporter
from leadgen.common.types import Lead
from leadgen.enrichment.matching import (
    DomainMatcher,
    NormalizedDomainMatcher,
    as_list,
    pick_contact_email,
    text_field,
)
from leadgen.services.actors import CONTACT_SCRAPER
from leadgen.services.job_runner import RemoteJobRunner

MatcherFactory = Callable[[Iterable[Lead]], DomainMatcher]


def chunk(items: List[Any], size: int) -> List[List[Any]]:
    """Split a list into consecutive chunks of at most `size` items."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [items[i:i + size] for i in range(0, len(items), size)]


class ContactEnrichmentBatcher:
    """Batch contact lookups for leads that are missing an email."""

    def __init__(
        self,
        runner: RemoteJobRunner,
        token: CancellationToken,
        progress: Optional[ProgressReporter] = None,
        policy: Optional[PipelinePolicy] = None,
        errors: Optional[ErrorCollector] = None,
        matcher_factory: MatcherFactory = NormalizedDomainMatcher,
    ):
        self.runner = runner
        self.token = token
        self.progress = progress or ProgressReporter()
        self.policy = policy or PipelinePolicy()
        self.errors = errors or ErrorCollector()
        self.matcher_factory = matcher_factory
        self.logger = logging.getLogger(__name__)

    def enrich(self, leads: List[Lead]) -> int:
        """
        Enrich leads in place.

        Only leads without an email and with a website are looked up.

        Returns:
            Number of leads that gained an email
        """
        pending = [lead for lead in leads if not lead.has_email and lead.website]
        if not pending:
            return 0

        batches = chunk(pending, self.policy.enrichment_batch_size)
        self.progress.emit(
            f"[ENRICH] 🔍 Looking up contacts for {len(pending)} leads without email "
            f"({len(batches)} batch{'es' if len(batches) != 1 else ''})"
        )

        enriched = 0
        for index, batch in enumerate(batches, 1):
            if not self.token.is_active:
                self.progress.emit("[ENRICH] Search stopped, skipping remaining batches")
                break

            payload = {
                "startUrls": [{"url": f"https://{lead.website}"} for lead in batch],
                "maxRequestsPerWebsite": self.policy.contact_max_requests_per_website,
                "sameDomainOnly": True,
            }
            try:
                results = self.runner.run(
                    CONTACT_SCRAPER, payload, label=f"Contact lookup {index}/{len(batches)}"
                )
            except Exception as e:
                self.logger.warning(f"Contact batch {index} failed: {e}")
                self.progress.emit(f"[ENRICH] ⚠️ Batch {index}/{len(batches)} failed: {e}")
                self.errors.add_error("enrichment", f"contact_batch_{index}", str(e), exception=e)
                continue

            gained = self.merge(results, batch)
            enriched += gained
            self.progress.emit(f"[ENRICH] Batch {index}/{len(batches)}: {gained}/{len(batch)} emails found")

        return enriched

    def merge(self, results: List[Dict[str, Any]], batch: List[Lead]) -> int:
        """Join contact records onto the batch's leads. Returns emails gained."""
        matcher = self.matcher_factory(batch)
        gained = 0
        for contact in results:
            if not isinstance(contact, dict):
                self.logger.debug(f"Skipping malformed contact record {contact!r}")
                continue
            domain = text_field(contact, "domain", "url")
            lead = matcher.match(domain)
            if lead is None:
                self.logger.debug(f"No lead matches contact domain {domain!r}")
                continue

            had_email = lead.has_email
            email = pick_contact_email(as_list(contact.get("emails")) + as_list(contact.get("email")))
            if email and not had_email:
                lead.set_email(email)
                gained += 1

            phones = as_list(contact.get("phones")) + as_list(contact.get("phone"))
            if phones and not lead.phone:
                lead.phone = phones[0]

            dm = lead.decision_maker
            if dm is None:
                continue
            if phones and not dm.phone:
                dm.phone = phones[0]
            linkedin = as_list(contact.get("linkedIns")) + as_list(contact.get("linkedIn"))
            if linkedin:
                dm.linkedin = linkedin[0]
            facebook = as_list(contact.get("facebooks")) + as_list(contact.get("facebook"))
            if facebook:
                dm.facebook = facebook[0]
            instagram = as_list(contact.get("instagrams")) + as_list(contact.get("instagram"))
            if instagram:
                dm.instagram = instagram[0]
        return gained
