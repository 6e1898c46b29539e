"""
Unified Deduplication Module

Single source of truth for deciding whether a discovered candidate has
already been seen, either in a previous run (the caller-supplied exclusion
set) or earlier in the current run (leads already accepted).

Usage:
    from leadgen.common.dedupe import DeduplicationFilter, ExclusionSet

    exclusions = ExclusionSet.from_values(["acme corp", "acme.com"])
    dedupe = DeduplicationFilter()
    dedupe.is_duplicate("ACME Corp", "https://www.acme.com/", exclusions)
    # Result: True
"""

from typing import Iterable, Iterator, Optional

from leadgen.common.types import Lead


def normalize_value(text: Optional[str]) -> str:
    """
    Normalize a company name, URL or handle for comparison.

    Applied identically to both sides of every comparison:
    lower-case, strip http:// or https://, strip a leading "www.",
    strip one trailing "/", trim whitespace.

    Examples:
        >>> normalize_value("https://www.Acme.com/")
        'acme.com'
        >>> normalize_value("  ACME Corp ")
        'acme corp'
        >>> normalize_value(None)
        ''
    """
    if not text:
        return ""
    value = text.strip().lower()
    for scheme in ("https://", "http://"):
        if value.startswith(scheme):
            value = value[len(scheme):]
            break
    if value.startswith("www."):
        value = value[4:]
    if value.endswith("/"):
        value = value[:-1]
    return value.strip()


def clean_website(url: Optional[str]) -> Optional[str]:
    """
    Clean a website for storage on a Lead: no scheme, no leading www.,
    no trailing slash. Case is preserved.

    Examples:
        >>> clean_website("https://www.Acme.com/")
        'Acme.com'
        >>> clean_website("")
    """
    if not url or not url.strip():
        return None
    value = url.strip()
    lowered = value.lower()
    for scheme in ("https://", "http://"):
        if lowered.startswith(scheme):
            value = value[len(scheme):]
            break
    if value.lower().startswith("www."):
        value = value[4:]
    value = value.rstrip("/")
    return value or None


class ExclusionSet:
    """
    Read-only set of normalized names and URLs from previous runs.

    Owned and persisted by a history collaborator; the pipeline never mutates it.
    """

    def __init__(self, values: Iterable[str] = ()):
        self._values = frozenset(v for v in (normalize_value(x) for x in values) if v)

    @classmethod
    def from_values(cls, values: Iterable[str]) -> "ExclusionSet":
        return cls(values)

    @classmethod
    def from_leads(cls, leads: Iterable[Lead]) -> "ExclusionSet":
        """Build an exclusion set from previously delivered leads (names + websites + profiles)."""
        values = []
        for lead in leads:
            values.append(lead.company_name)
            if lead.website:
                values.append(lead.website)
            if lead.social_url:
                values.append(lead.social_url)
        return cls(values)

    def __contains__(self, item: object) -> bool:
        return item in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ExclusionSet({len(self._values)} entries)"


class DeduplicationFilter:
    """Duplicate detection against the exclusion set and the current run."""

    def is_duplicate(
        self,
        name: Optional[str],
        url_or_handle: Optional[str],
        exclusions: Iterable[str],
    ) -> bool:
        """
        Check a candidate against a historical exclusion set.

        A candidate is a duplicate when its normalized name or normalized URL
        is a member of the set, or (fallback pass) when any set member that
        contains a "." normalizes to the candidate's normalized URL.
        """
        norm_name = normalize_value(name)
        norm_url = normalize_value(url_or_handle)
        if not norm_name and not norm_url:
            return False

        if norm_name and norm_name in exclusions:
            return True
        if norm_url and norm_url in exclusions:
            return True

        # Fallback pass for exclusion sets holding raw (un-normalized) URLs
        if norm_url:
            for member in exclusions:
                if "." in member and normalize_value(member) == norm_url:
                    return True
        return False

    def is_session_duplicate(
        self,
        name: Optional[str],
        url_or_handle: Optional[str],
        accepted: Iterable[Lead],
    ) -> bool:
        """Same normalized website/profile or same company name as a lead already accepted this run."""
        norm_name = normalize_value(name)
        norm_url = normalize_value(url_or_handle)
        for lead in accepted:
            if norm_name and normalize_value(lead.company_name) == norm_name:
                return True
            if norm_url and norm_url in (
                normalize_value(lead.website),
                normalize_value(lead.social_url),
            ):
                return True
        return False

    def duplicate_reason(
        self,
        name: Optional[str],
        url_or_handle: Optional[str],
        exclusions: Iterable[str],
        accepted: Iterable[Lead],
    ) -> Optional[str]:
        """Return "history", "session" or None."""
        if self.is_duplicate(name, url_or_handle, exclusions):
            return "history"
        if self.is_session_duplicate(name, url_or_handle, accepted):
            return "session"
        return None
