"""
Unit tests for leadgen/orchestrator.py

End-to-end runs of the search state machine against the scripted
FakeJobService / FakeTextGenerator: the smart discovery loop, deduplication,
enrichment, profile-platform gating, deep mode, cancellation and failure paths.
"""

import json
from unittest.mock import patch

import pytest

from fixtures.fake_services import (
    VALID_ANALYSIS_JSON,
    FakeTextGenerator,
    contact_responder,
    maps_place,
    organic,
    search_page,
)
from leadgen.common.config import PipelinePolicy
from leadgen.common.dedupe import ExclusionSet
from leadgen.common.errors import LeadGenError
from leadgen.common.types import LeadStatus, PlatformSource, RunStatus, SearchConfig, SearchMode
from leadgen.interpretation.query_interpreter import SYSTEM_PROMPT_INTERPRET
from leadgen.orchestrator import SearchOrchestrator
from leadgen.services.actors import (
    CONTACT_SCRAPER,
    DECISION_MAKER_FINDER,
    GOOGLE_MAPS_SCRAPER,
    GOOGLE_SEARCH_SCRAPER,
)
from leadgen.services.job_service import JobState


@pytest.fixture
def orchestrator(job_service, policy):
    return SearchOrchestrator(job_service=job_service, text_generator=None, policy=policy)


def run_search(orchestrator, query="dentists", source=PlatformSource.GMAPS, mode=SearchMode.FAST,
               max_results=5, exclusions=None):
    lines, delivered = [], []
    config = SearchConfig(query=query, source=source, mode=mode, max_results=max_results)
    session = orchestrator.start_search(config, lines.append, delivered.append, exclusions)
    return session, delivered, lines


# ===== TESTS: Smart loop =====

class TestSmartLoop:

    def test_refetches_shortfall_after_enrichment(self, orchestrator, job_service):
        """Target 5, 3 candidates without email, 2 recovered: attempt 2 asks for 12 past the 3 seen."""
        places = [
            maps_place("Clínica A", website="a.com"),
            maps_place("Clínica B", website="b.com"),
            maps_place("Clínica C", website="c.com"),
        ]
        job_service.script(GOOGLE_MAPS_SCRAPER, places, places)
        job_service.set_default(CONTACT_SCRAPER, contact_responder({"a.com": "info@a.com", "b.com": "hola@b.com"}))

        session, delivered, lines = run_search(orchestrator, max_results=5)

        discovery = job_service.payloads(GOOGLE_MAPS_SCRAPER)
        assert [p["maxCrawledPlacesPerSearch"] for p in discovery] == [20, 15]
        assert any("Attempt 2/10: requesting 12 candidates" in line for line in lines)
        assert len(job_service.payloads(CONTACT_SCRAPER)) == 1
        assert session.status == RunStatus.COMPLETED
        assert [lead.email for lead in delivered[0]] == ["info@a.com", "hola@b.com"]
        assert any("No new candidates" in line for line in lines)

    def test_accepts_only_shortfall(self, orchestrator, job_service):
        job_service.script(
            GOOGLE_MAPS_SCRAPER,
            [maps_place("A", website="a.com", email="info@a.com")],
            [
                maps_place("B", website="b.com", email="info@b.com"),
                maps_place("C", website="c.com", email="info@c.com"),
                maps_place("D", website="d.com", email="info@d.com"),
            ],
        )

        session, delivered, _ = run_search(orchestrator, max_results=3)

        assert [lead.company_name for lead in delivered[0]] == ["A", "B", "C"]
        assert [p["maxCrawledPlacesPerSearch"] for p in job_service.payloads(GOOGLE_MAPS_SCRAPER)] == [12, 9]
        assert session.results_count == 3

    def test_later_attempts_reach_past_ranked_results(self, orchestrator, job_service):
        """The Maps job returns a prefix of one ranked list; every 8th place lists an email."""
        ranked = [
            maps_place(f"Place {i}", website=f"place{i}.com", email=f"info@place{i}.com" if i % 8 == 0 else None)
            for i in range(200)
        ]
        job_service.set_default(GOOGLE_MAPS_SCRAPER, lambda payload: ranked[:payload["maxCrawledPlacesPerSearch"]])

        session, delivered, lines = run_search(orchestrator, max_results=10)

        requested = [p["maxCrawledPlacesPerSearch"] for p in job_service.payloads(GOOGLE_MAPS_SCRAPER)]
        assert requested == [40, 60, 68, 72, 76]
        assert session.status == RunStatus.COMPLETED
        assert len(delivered[0]) == 10
        assert not any("search space exhausted" in line for line in lines)

    def test_zero_candidates_ends_loop(self, orchestrator, job_service):
        session, delivered, lines = run_search(orchestrator)

        assert delivered == [[]]
        assert session.status == RunStatus.COMPLETED
        assert len(job_service.payloads(GOOGLE_MAPS_SCRAPER)) == 1
        assert any("search space exhausted" in line for line in lines)

    def test_attempt_budget(self, job_service):
        policy = PipelinePolicy(poll_interval_seconds=0, analysis_backoff_seconds=0, max_attempts=2)
        orchestrator = SearchOrchestrator(job_service=job_service, text_generator=None, policy=policy)
        job_service.script(
            GOOGLE_MAPS_SCRAPER,
            [maps_place("A", website="a.com")],
            [maps_place("B", website="b.com")],
            [maps_place("C", website="c.com", email="info@c.com")],
        )

        session, delivered, lines = run_search(orchestrator, max_results=2)

        assert delivered == [[]]
        assert len(job_service.payloads(GOOGLE_MAPS_SCRAPER)) == 2
        assert any("Attempt budget exhausted" in line for line in lines)

    def test_rejected_candidates_not_enriched_twice(self, orchestrator, job_service):
        job_service.script(
            GOOGLE_MAPS_SCRAPER,
            [maps_place("A", website="a.com"), maps_place("B", website="b.com", email="info@b.com")],
            [maps_place("A", website="a.com"), maps_place("C", website="c.com", email="info@c.com")],
        )

        _, delivered, _ = run_search(orchestrator, max_results=2)

        assert [lead.company_name for lead in delivered[0]] == ["B", "C"]
        assert len(job_service.payloads(CONTACT_SCRAPER)) == 1

    def test_exclusions_skip_previous_leads(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [
            maps_place("Acme", website="https://www.acme.com/", email="info@acme.com"),
            maps_place("Beta", website="beta.com", email="info@beta.com"),
        ])

        _, delivered, lines = run_search(
            orchestrator, max_results=2, exclusions=ExclusionSet.from_values(["acme.com"])
        )

        assert [lead.company_name for lead in delivered[0]] == ["Beta"]
        assert any("1 seen in previous searches" in line for line in lines)

    def test_same_business_twice_in_one_batch(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [
            maps_place("Acme", website="acme.com", email="info@acme.com", place_id="p1"),
            maps_place("Acme Valencia", website="https://acme.com/", email="info@acme.com", place_id="p2"),
        ])

        _, delivered, _ = run_search(orchestrator, max_results=2)

        assert [lead.id for lead in delivered[0]] == ["p1"]

    def test_discovery_job_failure_aborts_attempt_only(self, orchestrator, job_service):
        job_service.script(
            GOOGLE_MAPS_SCRAPER,
            JobState.FAILED,
            [maps_place("A", website="a.com", email="info@a.com")],
        )

        session, delivered, _ = run_search(orchestrator, max_results=1)

        assert session.status == RunStatus.COMPLETED
        assert [lead.company_name for lead in delivered[0]] == ["A"]
        assert session.errors[0]["stage"] == "discovery"


# ===== TESTS: Delivered leads =====

class TestDeliveredLeads:

    def test_contact_platform_leads_have_email_and_analysis(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [
            maps_place("A", website="a.com", email="info@a.com"),
            maps_place("B", website="b.com"),
        ])

        session, delivered, _ = run_search(orchestrator, max_results=2)

        leads = delivered[0]
        assert len(leads) == 1
        for lead in leads:
            assert lead.has_email
            assert lead.company_name
            assert lead.status == LeadStatus.READY
            assert lead.analysis.is_complete()
        assert session.leads == leads

    def test_no_text_generator_uses_fallback(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [maps_place("A", website="a.com", email="info@a.com")])

        _, delivered, lines = run_search(orchestrator, max_results=1)

        assert delivered[0][0].analysis.is_fallback
        assert any("No text generator configured" in line for line in lines)

    def test_default_generator_without_credentials(self, job_service, policy):
        orchestrator = SearchOrchestrator(job_service=job_service, policy=policy)
        job_service.script(GOOGLE_MAPS_SCRAPER, [maps_place("A", website="a.com", email="info@a.com")])

        _, delivered, _ = run_search(orchestrator, max_results=1)

        assert delivered[0][0].analysis.is_fallback

    def test_text_generator_drives_intent_and_analysis(self, job_service, policy):
        intent_reply = json.dumps({
            "query": "clínicas dentales", "industry": "Dental",
            "target_roles": ["Owner"], "location": "Valencia",
        })
        generator = FakeTextGenerator(
            responder=lambda prompt, system: intent_reply if system == SYSTEM_PROMPT_INTERPRET else VALID_ANALYSIS_JSON
        )
        orchestrator = SearchOrchestrator(job_service=job_service, text_generator=generator, policy=policy)
        job_service.script(GOOGLE_MAPS_SCRAPER, [maps_place("A", website="a.com", email="info@a.com")])

        _, delivered, _ = run_search(orchestrator, query="dentists in Valencia", max_results=1)

        payload = job_service.payloads(GOOGLE_MAPS_SCRAPER)[0]
        assert payload["searchStringsArray"] == ["clínicas dentales Valencia"]
        analysis = delivered[0][0].analysis
        assert not analysis.is_fallback
        assert analysis.business_moment == "growth"
        assert len(generator.calls) == 2

    def test_deep_mode_finds_decision_makers(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [maps_place("A", website="a.com", email="info@a.com")])
        job_service.script(DECISION_MAKER_FINDER, [{
            "domain": "a.com",
            "decisionMakers": [{"name": "Ana López", "title": "CEO"}],
        }])

        _, delivered, _ = run_search(orchestrator, mode=SearchMode.DEEP, max_results=1)

        lead = delivered[0][0]
        assert lead.decision_maker.name == "Ana López"
        assert lead.analysis.full_message.startswith("Hi Ana,")

    def test_malformed_decision_maker_record_keeps_leads(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [maps_place("A", website="a.com", email="info@a.com")])
        job_service.script(DECISION_MAKER_FINDER, [{"domain": "a.com", "decisionMakers": ["Ana Lopez"]}])

        session, delivered, _ = run_search(orchestrator, mode=SearchMode.DEEP, max_results=1)

        assert session.status == RunStatus.COMPLETED
        assert [lead.email for lead in delivered[0]] == ["info@a.com"]
        assert delivered[0][0].decision_maker.name == ""

    def test_fast_mode_skips_decision_makers(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [maps_place("A", website="a.com", email="info@a.com")])

        run_search(orchestrator, mode=SearchMode.FAST, max_results=1)

        assert job_service.payloads(DECISION_MAKER_FINDER) == []


# ===== TESTS: Profile platforms =====

class TestProfilePlatforms:

    def test_linkedin_accepts_on_analysis_without_email(self, orchestrator, job_service):
        job_service.script(GOOGLE_SEARCH_SCRAPER, [search_page(
            organic("Ana López - CEO - Clínica Sol | LinkedIn", "https://linkedin.com/in/ana"),
            organic("Luis Pérez - Founder | LinkedIn", "https://linkedin.com/in/luis"),
        )])

        session, delivered, _ = run_search(orchestrator, source=PlatformSource.LINKEDIN, max_results=1)

        leads = delivered[0]
        assert [lead.company_name for lead in leads] == ["Ana López"]
        assert not leads[0].has_email
        assert leads[0].status == LeadStatus.READY
        assert leads[0].analysis.is_complete()
        # one discovery job + research for the single accepted profile
        assert len(job_service.payloads(GOOGLE_SEARCH_SCRAPER)) == 2
        assert session.status == RunStatus.COMPLETED


# ===== TESTS: Cancellation and failures =====

class TestCancellation:

    def test_stop_keeps_accepted_leads(self, orchestrator, job_service):
        job_service.script(
            GOOGLE_MAPS_SCRAPER,
            [maps_place("A", website="a.com", email="info@a.com"), maps_place("B", website="b.com", email="info@b.com")],
            [maps_place("C", website="c.com")],
        )
        job_service.on_status = lambda job_type: orchestrator.stop() if job_type == CONTACT_SCRAPER else None

        session, delivered, lines = run_search(orchestrator, max_results=5)

        assert session.status == RunStatus.STOPPED
        assert orchestrator.status == RunStatus.STOPPED
        assert len(delivered) == 1
        assert [lead.company_name for lead in delivered[0]] == ["A", "B"]
        assert job_service.payloads(GOOGLE_SEARCH_SCRAPER) == []
        assert any("[STOP]" in line for line in lines)

    def test_stop_during_interpretation_makes_no_remote_calls(self, job_service, policy):
        orchestrator = SearchOrchestrator(job_service=job_service, policy=policy)

        def stop_and_fail(prompt, system):
            orchestrator.stop()
            return "no json here"

        orchestrator.text_generator = FakeTextGenerator(responder=stop_and_fail)

        session, delivered, _ = run_search(orchestrator)

        assert session.status == RunStatus.STOPPED
        assert delivered == [[]]
        assert job_service.submitted == []

    def test_stop_when_idle_is_noop(self, orchestrator):
        orchestrator.stop()
        assert orchestrator.status == RunStatus.IDLE


class TestFailures:

    @patch("leadgen.orchestrator.ApifyJobService")
    def test_missing_credential_fails_without_remote_calls(self, mock_service, policy):
        orchestrator = SearchOrchestrator(text_generator=None, policy=policy)

        session, delivered, lines = run_search(orchestrator)

        assert session.status == RunStatus.FAILED
        assert delivered == [[]]
        mock_service.assert_not_called()
        assert any("APIFY_API_TOKEN" in line for line in lines)
        assert session.errors[0]["severity"] == "critical"

    @patch("leadgen.orchestrator.ApifyJobService")
    def test_blank_token_override_fails(self, mock_service, policy):
        orchestrator = SearchOrchestrator(text_generator=None, policy=policy, api_token="  ")

        session, delivered, _ = run_search(orchestrator)

        assert session.status == RunStatus.FAILED
        assert delivered == [[]]
        mock_service.assert_not_called()

    def test_invalid_policy_env_fails_run_not_constructor(self, job_service, monkeypatch):
        monkeypatch.setenv("LEADGEN_MAX_POLLS", "many")
        orchestrator = SearchOrchestrator(job_service=job_service, text_generator=None)

        session, delivered, lines = run_search(orchestrator)

        assert session.status == RunStatus.FAILED
        assert delivered == [[]]
        assert job_service.submitted == []
        assert any("LEADGEN_MAX_POLLS" in line for line in lines)
        assert session.errors[0]["severity"] == "critical"

    def test_unexpected_discovery_error_fails_run(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, RuntimeError("dataset corrupted"))

        session, delivered, lines = run_search(orchestrator)

        assert session.status == RunStatus.FAILED
        assert delivered == [[]]
        assert any("Critical failure" in line for line in lines)

    def test_result_sink_error_does_not_propagate(self, orchestrator, job_service):
        def broken_sink(leads):
            raise RuntimeError("db down")

        session = orchestrator.start_search(SearchConfig(query="dentists"), None, broken_sink)

        assert session.status == RunStatus.COMPLETED

    def test_progress_sink_error_does_not_propagate(self, orchestrator, job_service):
        job_service.script(GOOGLE_MAPS_SCRAPER, [maps_place("A", website="a.com", email="info@a.com")])
        delivered = []

        def broken_progress(line):
            raise RuntimeError("ui gone")

        session = orchestrator.start_search(SearchConfig(query="dentists", max_results=1), broken_progress, delivered.append)

        assert session.status == RunStatus.COMPLETED
        assert len(delivered[0]) == 1

    def test_concurrent_start_rejected(self, orchestrator):
        orchestrator.status = RunStatus.RUNNING
        delivered = []

        with pytest.raises(LeadGenError):
            orchestrator.start_search(SearchConfig(query="dentists"), None, delivered.append)
        assert delivered == []
