"""
Joining remote job results back onto leads.

Contact and decision-maker jobs report the domain they crawled, which is not
guaranteed to echo the exact URL we submitted ("https://acme.com/contact"
for input "acme.com"). Matching is therefore two-step: exact normalized key
first, substring fallback second.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Protocol

from leadgen.common.dedupe import normalize_value
from leadgen.common.types import Lead


class DomainMatcher(Protocol):
    """Find the lead a job result belongs to."""

    def match(self, domain: str) -> Optional[Lead]:
        ...


def domain_key(value: Optional[str]) -> str:
    """Normalized host-ish key: normalize_value() without any path or query."""
    key = normalize_value(value)
    for sep in ("/", "?", "#"):
        key = key.split(sep, 1)[0]
    return key


class NormalizedDomainMatcher:
    """
    Exact-then-substring domain matcher over a fixed set of leads.

    Leads without a website are ignored. When several leads share a key the
    first one wins.
    """

    def __init__(self, leads: Iterable[Lead]):
        self._by_key: Dict[str, Lead] = {}
        for lead in leads:
            key = domain_key(lead.website)
            if key and key not in self._by_key:
                self._by_key[key] = lead

    def match(self, domain: str) -> Optional[Lead]:
        reported = normalize_value(domain)
        if not reported:
            return None

        exact = self._by_key.get(domain_key(reported))
        if exact is not None:
            return exact

        for key, lead in self._by_key.items():
            if key in reported:
                return lead
        return None


# ===== EMAIL FILTERING =====

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+'-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")

# Addresses that never reach a person
NON_PERSONAL_MARKERS = [
    "noreply", "no-reply", "donotreply", "do-not-reply", "mailer-daemon",
    "sentry", "wixpress", "cloudflare", "godaddy", "squarespace",
    "example.com", "domain.com", "email.com", "yourdomain", "test@",
]

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg")


def is_contact_email(email: Optional[str]) -> bool:
    """True for a valid-looking address that is not an obvious non-personal one."""
    if not email:
        return False
    value = email.strip().lower()
    if not EMAIL_PATTERN.match(value):
        return False
    if value.endswith(IMAGE_SUFFIXES) or "@2x" in value:
        return False
    return not any(marker in value for marker in NON_PERSONAL_MARKERS)


def pick_contact_email(emails: Iterable[Optional[str]]) -> Optional[str]:
    """First acceptable email, stripped, or None."""
    for email in emails:
        if is_contact_email(email):
            return email.strip()
    return None


def as_list(value) -> List[str]:
    """Job results mix scalars and lists for the same field."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [str(value)]


def text_field(record: Dict[str, Any], *keys: str) -> str:
    """First non-empty string among `keys`, stripped. Non-string values are ignored."""
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""
