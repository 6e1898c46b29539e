"""
Unit tests for leadgen/enrichment/matching.py
"""

import pytest

from leadgen.common.types import Lead, PlatformSource
from leadgen.enrichment.matching import (
    NormalizedDomainMatcher,
    as_list,
    domain_key,
    is_contact_email,
    pick_contact_email,
)


def make_lead(name, website):
    return Lead(id=name, source=PlatformSource.GMAPS, company_name=name, website=website)


class TestDomainKey:

    @pytest.mark.parametrize("raw,expected", [
        ("https://www.acme.com/contact", "acme.com"),
        ("acme.com?utm=1", "acme.com"),
        ("ACME.com#team", "acme.com"),
        (None, ""),
    ])
    def test_domain_key(self, raw, expected):
        assert domain_key(raw) == expected


class TestNormalizedDomainMatcher:

    def setup_method(self):
        self.acme = make_lead("Acme", "acme.com")
        self.beta = make_lead("Beta", "www.Beta.es")
        self.matcher = NormalizedDomainMatcher([self.acme, self.beta, make_lead("NoSite", None)])

    def test_exact_match(self):
        assert self.matcher.match("acme.com") is self.acme

    def test_exact_match_ignores_scheme_and_case(self):
        assert self.matcher.match("https://www.BETA.es/") is self.beta

    def test_substring_fallback(self):
        assert self.matcher.match("https://acme.com/contact-us") is self.acme
        assert self.matcher.match("shop.acme.com") is self.acme

    def test_no_match(self):
        assert self.matcher.match("gamma.io") is None

    def test_empty_domain(self):
        assert self.matcher.match("") is None

    def test_first_lead_wins_on_shared_key(self):
        other = make_lead("Acme Copy", "https://acme.com")
        matcher = NormalizedDomainMatcher([self.acme, other])
        assert matcher.match("acme.com") is self.acme


class TestContactEmails:

    @pytest.mark.parametrize("email", [
        "info@acme.com",
        "Ana.Lopez@clinica-dental.es",
    ])
    def test_accepts_personal_and_business_addresses(self, email):
        assert is_contact_email(email)

    @pytest.mark.parametrize("email", [
        None,
        "",
        "not-an-email",
        "noreply@acme.com",
        "no-reply@acme.com",
        "abc123@sentry.wixpress.com",
        "user@example.com",
        "logo@2x.png",
    ])
    def test_rejects_non_contact_addresses(self, email):
        assert not is_contact_email(email)

    def test_pick_first_acceptable(self):
        assert pick_contact_email(["noreply@acme.com", " hola@acme.com ", "info@acme.com"]) == "hola@acme.com"

    def test_pick_none(self):
        assert pick_contact_email(["noreply@acme.com"]) is None
        assert pick_contact_email([]) is None


class TestAsList:

    def test_scalars_and_lists(self):
        assert as_list("a") == ["a"]
        assert as_list(["a", "", None, "b"]) == ["a", "b"]
        assert as_list(None) == []
        assert as_list(7) == ["7"]
