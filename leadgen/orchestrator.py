"""
Search Orchestrator

Top-level controller of a lead search run:

    interpret query (once)
      -> smart loop per platform, until the target count or the attempt budget:
             discovery job -> deduplication -> contact enrichment -> acceptance
      -> decision-maker finder (deep mode)
      -> per lead: deep research -> analysis
      -> final list delivered to the result sink (exactly once)

Run states: IDLE -> RUNNING -> COMPLETED | STOPPED | FAILED.
A run can be stopped at any time with stop(); every stage observes the run's
CancellationToken and the leads accepted so far are still delivered.
"""

import threading
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set

from leadgen.analysis.analysis_engine import AnalysisEngine
from leadgen.common.cancellation import CancellationToken
from leadgen.common.config import Config, PipelinePolicy
from leadgen.common.dedupe import DeduplicationFilter, ExclusionSet, normalize_value
from leadgen.common.error_handling import ErrorCollector
from leadgen.common.errors import JobError, LeadGenError, SetupError
from leadgen.common.logger import get_logger
from leadgen.common.progress import ProgressCallback, ProgressReporter, StageContext
from leadgen.common.types import (
    Lead,
    LeadStatus,
    RunStatus,
    SearchConfig,
    SearchIntent,
    SearchMode,
    SearchSession,
)
from leadgen.discovery.sources import DiscoverySource, get_source
from leadgen.enrichment.contact_enricher import ContactEnrichmentBatcher
from leadgen.enrichment.decision_makers import DecisionMakerFinder
from leadgen.interpretation.query_interpreter import QueryInterpreter
from leadgen.research.deep_research import DeepResearchAgent
from leadgen.services.job_runner import RemoteJobRunner
from leadgen.services.job_service import ApifyJobService, JobService
from leadgen.services.text_generation import TextGenerator, create_text_generator

ResultCallback = Callable[[List[Lead]], None]

# Marks "build the default text generator from Config"; pass None to disable generation
AUTO = object()


@dataclass
class RunContext:
    """Per-run collaborators and state. Owned by the orchestrator."""
    run_id: str
    config: SearchConfig
    source: DiscoverySource
    token: CancellationToken
    progress: ProgressReporter
    errors: ErrorCollector
    runner: RemoteJobRunner
    policy: PipelinePolicy
    exclusions: Iterable[str]
    accepted: List[Lead] = field(default_factory=list)
    evaluated: Set[str] = field(default_factory=set)
    attempts: int = 0

    @property
    def target(self) -> int:
        return max(self.config.max_results, 0)

    @property
    def shortfall(self) -> int:
        return self.target - len(self.accepted)


class SearchOrchestrator:
    """
    Drives one search run at a time.

    Args:
        job_service: Job submission collaborator. Built from Config (Apify) when None;
                     a missing credential then fails the run before any remote call.
        text_generator: Text-generation collaborator. AUTO builds one from Config,
                        None disables generation (deterministic fallbacks).
        policy: Pipeline policy (defaults to PipelinePolicy.from_env(), read when a search starts)
        api_token: Job-service credential override
        language: Search / outreach language override
        default_location: Location used when the query does not name one
    """

    def __init__(
        self,
        job_service: Optional[JobService] = None,
        text_generator=AUTO,
        policy: Optional[PipelinePolicy] = None,
        api_token: Optional[str] = None,
        language: Optional[str] = None,
        default_location: Optional[str] = None,
    ):
        self.job_service = job_service
        self.text_generator = text_generator
        self.policy = policy
        self.api_token = api_token
        self.language = language or Config.SEARCH_LANGUAGE
        self.default_location = default_location or Config.DEFAULT_LOCATION
        self.dedupe = DeduplicationFilter()

        self.status = RunStatus.IDLE
        self._token: Optional[CancellationToken] = None
        self._lock = threading.Lock()
        self.logger = get_logger(__name__, stage="orchestrator")

    # ===== PUBLIC API =====

    @property
    def is_running(self) -> bool:
        return self.status == RunStatus.RUNNING

    def stop(self) -> None:
        """Cancel the current run. Safe to call from any thread, at any time."""
        token = self._token
        if token is not None and token.is_active:
            self.logger.info("Stop requested")
            token.cancel()

    def start_search(
        self,
        config: SearchConfig,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[ResultCallback] = None,
        exclusions: Optional[Iterable[str]] = None,
    ) -> SearchSession:
        """
        Run a search to completion (or cancellation / failure).

        The result sink `on_complete` is invoked exactly once with the accepted
        leads (possibly empty), whatever the outcome.

        Raises:
            LeadGenError: if a search is already running on this orchestrator
        """
        with self._lock:
            if self.status == RunStatus.RUNNING:
                raise LeadGenError("A search is already running on this orchestrator")
            self.status = RunStatus.RUNNING
            token = CancellationToken()
            self._token = token

        run_id = uuid.uuid4().hex
        logger = get_logger(__name__, run_id=run_id, stage="orchestrator")
        progress = ProgressReporter(on_progress, run_id=run_id)
        errors = ErrorCollector()
        session = SearchSession(id=run_id, query=config.query, source=config.source)
        leads: List[Lead] = []
        status = RunStatus.FAILED

        try:
            policy = self.policy or PipelinePolicy.from_env()
            service = self._resolve_job_service()
            ctx = RunContext(
                run_id=run_id,
                config=config,
                source=get_source(config.source, language=self.language),
                token=token,
                progress=progress,
                errors=errors,
                runner=RemoteJobRunner(service, token, progress, policy),
                policy=policy,
                exclusions=exclusions if exclusions is not None else ExclusionSet(),
            )
            leads = self._run(ctx)
            status = RunStatus.STOPPED if token.is_cancelled else RunStatus.COMPLETED
        except SetupError as e:
            logger.error(f"Setup failed: {e}")
            progress.emit(f"[ERROR] ❌ {e}")
            errors.add_error("setup", "validate_config", str(e), severity="critical", recoverable=False, exception=e)
            leads = []
        except Exception as e:
            logger.exception(f"Search failed: {e}")
            progress.emit(f"[ERROR] ❌ Critical failure: {e}")
            errors.add_error("discovery", "search", str(e), severity="critical", recoverable=False, exception=e)
            leads = []
        finally:
            token.cancel()
            self.status = status
            session.status = status
            session.leads = list(leads)
            session.errors = [e.to_dict() for e in errors.errors]
            self._deliver(on_complete, session.leads, logger)

        return session

    # ===== RUN PHASES =====

    def _resolve_job_service(self) -> JobService:
        if self.job_service is not None:
            return self.job_service
        if self.api_token is None:
            Config.validate()
            return ApifyJobService(Config.APIFY_API_TOKEN)
        if not self.api_token.strip():
            raise SetupError("Empty Apify API token")
        return ApifyJobService(self.api_token)

    def _resolve_generator(self, temperature: float) -> Optional[TextGenerator]:
        if self.text_generator is AUTO:
            return create_text_generator(temperature=temperature)
        return self.text_generator

    def _run(self, ctx: RunContext) -> List[Lead]:
        progress = ctx.progress
        progress.emit(
            f"[START] 🚀 Searching {ctx.config.source.value} for {ctx.target} leads: \"{ctx.config.query}\""
        )

        interpreter = QueryInterpreter(
            self._resolve_generator(Config.INTERPRETATION_TEMPERATURE),
            progress=progress,
            default_location=self.default_location,
        )
        intent = interpreter.interpret(ctx.config.query)

        analysis_generator = self._resolve_generator(Config.ANALYSIS_TEMPERATURE)
        enricher = ContactEnrichmentBatcher(ctx.runner, ctx.token, progress, ctx.policy, ctx.errors)
        researcher = DeepResearchAgent(ctx.runner, progress, ctx.policy, ctx.errors, language=self.language)
        engine = AnalysisEngine(
            analysis_generator, ctx.token, progress, ctx.policy, ctx.errors, language=self.language
        )
        if analysis_generator is None:
            progress.emit("[ANALYSIS] No text generator configured, outreach will use templates")

        self._smart_loop(ctx, intent, enricher, researcher, engine)

        if ctx.source.requires_email and ctx.accepted:
            if ctx.config.mode == SearchMode.DEEP and ctx.token.is_active:
                DecisionMakerFinder(ctx.runner, ctx.token, progress, ctx.policy, ctx.errors).find(ctx.accepted)
            self._analyze_accepted(ctx, researcher, engine)

        leads = self._finalize(ctx)
        self._report_summary(ctx, leads)
        return leads

    def _smart_loop(
        self,
        ctx: RunContext,
        intent: SearchIntent,
        enricher: ContactEnrichmentBatcher,
        researcher: DeepResearchAgent,
        engine: AnalysisEngine,
    ) -> None:
        """Discover -> deduplicate -> enrich -> accept, until the target or the attempt budget."""
        progress = ctx.progress
        policy = ctx.policy
        for attempt in range(1, policy.max_attempts + 1):
            if not ctx.token.is_active:
                progress.emit("[STOP] ⏹️ Search stopped, keeping leads collected so far")
                return
            if ctx.shortfall <= 0:
                return

            ctx.attempts = attempt
            fetch_size = ctx.shortfall * policy.overfetch_multiplier
            progress.emit(
                f"[STAGE 1] Attempt {attempt}/{policy.max_attempts}: requesting {fetch_size} candidates "
                f"({len(ctx.accepted)}/{ctx.target} accepted)"
            )

            try:
                records = ctx.runner.run(
                    ctx.source.job_type,
                    ctx.source.build_payload(intent, fetch_size, attempt, policy, seen=len(ctx.evaluated)),
                    label=f"Discovery ({ctx.source.platform.value})",
                )
            except JobError as e:
                self.logger.warning(f"Discovery attempt {attempt} failed: {e}")
                progress.emit(f"[STAGE 1] ⚠️ Discovery attempt {attempt} failed: {e}")
                ctx.errors.add_error("discovery", f"attempt_{attempt}", str(e), severity="high", exception=e)
                continue

            if not ctx.token.is_active:
                continue

            candidates = ctx.source.to_candidates(records)
            progress.emit(f"[STAGE 1] ✅ {len(candidates)} candidates discovered")
            if not candidates:
                progress.emit("[STAGE 1] No candidates returned, search space exhausted")
                return

            new_leads = self._deduplicate(ctx, candidates)
            if not new_leads:
                progress.emit("[STAGE 1] No new candidates after deduplication, search space exhausted")
                return

            if ctx.source.requires_email:
                self._accept_with_email(ctx, new_leads, enricher)
            else:
                self._accept_profiles(ctx, new_leads, enricher, researcher, engine)

        if ctx.shortfall > 0 and ctx.token.is_active:
            progress.emit(
                f"[STAGE 1] Attempt budget exhausted with {len(ctx.accepted)}/{ctx.target} leads"
            )

    def _deduplicate(self, ctx: RunContext, candidates) -> List[Lead]:
        """New leads from this attempt's candidates, in discovery order."""
        new_leads: List[Lead] = []
        history = session = repeated = 0
        for candidate in candidates:
            key_url = ctx.source.candidate_key(candidate)
            key = f"{normalize_value(candidate.name)}|{normalize_value(key_url)}"
            if key in ctx.evaluated:
                repeated += 1
                continue
            ctx.evaluated.add(key)

            reason = self.dedupe.duplicate_reason(
                candidate.name, key_url, ctx.exclusions, ctx.accepted + new_leads
            )
            if reason == "history":
                history += 1
            elif reason == "session":
                session += 1
            else:
                new_leads.append(ctx.source.to_lead(candidate))

        ctx.progress.emit(
            f"[DEDUPE] {len(new_leads)} new | {history} seen in previous searches | "
            f"{session} duplicated in this search | {repeated} already evaluated"
        )
        return new_leads

    def _accept_with_email(
        self,
        ctx: RunContext,
        new_leads: List[Lead],
        enricher: ContactEnrichmentBatcher,
    ) -> None:
        progress = ctx.progress
        with_email = sum(1 for lead in new_leads if lead.has_email)
        progress.emit(f"[STAGE 1] 📊 {with_email}/{len(new_leads)} with email")

        if with_email < len(new_leads):
            with StageContext(progress, "STAGE 2", "Contact enrichment") as stage:
                stage.add_metadata("emails_found", enricher.enrich(new_leads))

        if not ctx.token.is_active:
            return

        qualified = [lead for lead in new_leads if lead.has_email]
        taken = qualified[:ctx.shortfall]
        ctx.accepted.extend(taken)
        progress.emit(
            f"[STAGE 2] Accepted {len(taken)} | discarded {len(new_leads) - len(qualified)} without email | "
            f"total {len(ctx.accepted)}/{ctx.target}"
        )

    def _accept_profiles(
        self,
        ctx: RunContext,
        new_leads: List[Lead],
        enricher: ContactEnrichmentBatcher,
        researcher: DeepResearchAgent,
        engine: AnalysisEngine,
    ) -> None:
        """Profile platforms: acceptance is gated on a completed analysis, not on an email."""
        if any(lead.website and not lead.has_email for lead in new_leads):
            enricher.enrich(new_leads)

        needed = ctx.shortfall
        taken = 0
        for lead in new_leads:
            if taken >= needed or not ctx.token.is_active:
                break
            ctx.progress.emit(f"[ANALYSIS] 🧠 {lead.company_name}")
            if self._analyze_lead(ctx, lead, researcher, engine):
                ctx.accepted.append(lead)
                taken += 1

        ctx.progress.emit(f"[STAGE 2] Accepted {taken} profiles | total {len(ctx.accepted)}/{ctx.target}")

    def _analyze_accepted(
        self,
        ctx: RunContext,
        researcher: DeepResearchAgent,
        engine: AnalysisEngine,
    ) -> None:
        total = len(ctx.accepted)
        ctx.progress.emit(f"[STAGE 3] 🧠 Researching and analyzing {total} leads...")
        for index, lead in enumerate(ctx.accepted, 1):
            if not ctx.token.is_active:
                ctx.progress.emit("[STOP] ⏹️ Search stopped, remaining leads keep their discovery summary")
                return
            ctx.progress.emit(f"[ANALYSIS] {index}/{total} {lead.company_name}")
            self._analyze_lead(ctx, lead, researcher, engine)

    def _analyze_lead(
        self,
        ctx: RunContext,
        lead: Lead,
        researcher: DeepResearchAgent,
        engine: AnalysisEngine,
    ) -> bool:
        """Research + analysis for one lead. True when the analysis completed."""
        context = researcher.research(lead)
        if not ctx.token.is_active:
            return False
        analysis = engine.analyze(lead, context)
        if not ctx.token.is_active:
            return False
        lead.analysis = analysis
        lead.status = LeadStatus.READY
        return True

    def _finalize(self, ctx: RunContext) -> List[Lead]:
        """Drop leads missing required identifying data."""
        final = []
        for lead in ctx.accepted:
            if not lead.company_name.strip():
                continue
            if ctx.source.requires_email and not lead.has_email:
                continue
            final.append(lead)
        dropped = len(ctx.accepted) - len(final)
        if dropped:
            ctx.progress.emit(f"[FINAL] Discarded {dropped} leads missing required data")
        return final

    def _report_summary(self, ctx: RunContext, leads: List[Lead]) -> None:
        progress = ctx.progress
        with_email = sum(1 for lead in leads if lead.has_email)
        ready = sum(1 for lead in leads if lead.status == LeadStatus.READY)
        fallback = sum(1 for lead in leads if lead.analysis.is_fallback)
        state = "stopped" if ctx.token.is_cancelled else "finished"

        progress.emit(f"[DONE] 🎯 Search {state}: {len(leads)} leads after {ctx.attempts} attempt(s)")
        progress.emit(f"   • {with_email} with email")
        progress.emit(f"   • {ready} ready for outreach")
        if fallback:
            progress.emit(f"   • {fallback} with template outreach")
        if ctx.errors.errors:
            progress.emit(f"   • {len(ctx.errors.errors)} degraded stage event(s)")

    def _deliver(self, on_complete: Optional[ResultCallback], leads: List[Lead], logger) -> None:
        if on_complete is None:
            return
        try:
            on_complete(leads)
        except Exception as e:
            logger.error(f"Result sink raised: {e}")
