"""
Unit tests for leadgen/common/types.py
"""

from leadgen.common.types import (
    DecisionMaker,
    Lead,
    LeadAnalysis,
    LeadStatus,
    PlatformSource,
    SearchIntent,
)


def make_lead(**kwargs):
    defaults = dict(id="p1", source=PlatformSource.GMAPS, company_name="Clínica Sol", website="clinicasol.es")
    defaults.update(kwargs)
    return Lead(**defaults)


class TestLead:

    def test_set_email_creates_contact_record(self):
        lead = make_lead(phone="+34 600")
        assert not lead.has_email

        lead.set_email("hola@clinicasol.es")

        assert lead.email == "hola@clinicasol.es"
        assert lead.decision_maker.phone == "+34 600"
        assert lead.status == LeadStatus.ENRICHED

    def test_set_email_keeps_later_status(self):
        lead = make_lead(status=LeadStatus.READY, decision_maker=DecisionMaker(email="a@clinicasol.es"))
        lead.set_email("b@clinicasol.es")
        assert lead.status == LeadStatus.READY
        assert lead.email == "b@clinicasol.es"

    def test_to_dict(self):
        lead = make_lead(
            decision_maker=DecisionMaker(email="ana@clinicasol.es", name="Ana", role="CEO"),
            analysis=LeadAnalysis(
                summary="s", pain_points=["p"], icebreaker="i", full_message="m", sales_angle="price",
            ),
            status=LeadStatus.READY,
        )

        data = lead.to_dict()

        assert data["companyName"] == "Clínica Sol"
        assert data["source"] == "gmaps"
        assert data["status"] == "ready"
        assert data["aiAnalysis"]["generatedIcebreaker"] == "i"
        assert data["aiAnalysis"]["salesAngle"] == "price"
        assert "businessMoment" not in data["aiAnalysis"]
        assert data["decisionMaker"]["email"] == "ana@clinicasol.es"

    def test_to_dict_without_contact(self):
        assert "decisionMaker" not in make_lead().to_dict()


class TestLeadAnalysis:

    def test_is_complete(self):
        assert LeadAnalysis(summary="s", icebreaker="i", full_message="m").is_complete()
        assert not LeadAnalysis(summary="s", icebreaker="", full_message="m").is_complete()


def test_search_intent_is_hashable_value():
    a = SearchIntent("q", "i", ("CEO",), "Madrid")
    b = SearchIntent("q", "i", ("CEO",), "Madrid")
    assert a == b
    assert len({a, b}) == 1
