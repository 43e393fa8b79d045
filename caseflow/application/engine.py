"""Process-level wiring of repositories and components."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from caseflow.application.cases import CaseStore
from caseflow.application.documents import DocumentVersionStore
from caseflow.application.sla import SLASweepJob, SLATracker
from caseflow.application.timeline import TimelineRecorder
from caseflow.application.workflows import WorkflowResolver, build_template
from caseflow.core.clock import Clock, utcnow
from caseflow.core.settings import Settings, load_service_catalog, load_settings, load_workflow_seeds
from caseflow.infrastructure import (
    InMemoryCaseRepository,
    InMemoryDocumentVersionRepository,
    InMemoryServiceCatalog,
    InMemoryTimelineRepository,
    InMemoryWorkflowTemplateRepository,
    NotificationDispatcher,
    RecordingNotificationDispatcher,
    ServiceCatalog,
    WebhookNotificationDispatcher,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Engine:
    settings: Settings
    notifier: NotificationDispatcher
    catalog: ServiceCatalog
    timeline: TimelineRecorder
    workflows: WorkflowResolver
    sla: SLATracker
    cases: CaseStore
    documents: DocumentVersionStore
    sweeper: SLASweepJob

    async def aclose(self) -> None:
        if isinstance(self.notifier, WebhookNotificationDispatcher):
            await self.notifier.aclose()


def _default_notifier(settings: Settings) -> NotificationDispatcher:
    if settings.notification_webhook_url:
        logger.info("Sending notifications to %s", settings.notification_webhook_url)
        return WebhookNotificationDispatcher(
            settings.notification_webhook_url,
            timeout=settings.notification_timeout_seconds,
        )
    return RecordingNotificationDispatcher()


def build_engine(
    settings: Settings | None = None,
    *,
    clock: Clock = utcnow,
    notifier: NotificationDispatcher | None = None,
    catalog: ServiceCatalog | None = None,
) -> Engine:
    """Build every component with fresh in-memory repositories.

    Service definitions and seed templates come from the YAML files in
    ``settings.config_dir`` unless a catalog is passed in.
    """

    settings = settings or load_settings()
    notifier = notifier or _default_notifier(settings)
    if catalog is None:
        catalog = InMemoryServiceCatalog(load_service_catalog(settings.config_dir))

    now = clock()
    seeds = [build_template(seed, now=now, created_by="system") for seed in load_workflow_seeds(settings.config_dir)]

    timeline = TimelineRecorder(InMemoryTimelineRepository(), clock=clock)
    workflows = WorkflowResolver(InMemoryWorkflowTemplateRepository(seeds), clock=clock)
    sla = SLATracker(workflows, clock=clock, at_risk_hours=settings.sla_at_risk_hours)
    cases = CaseStore(
        InMemoryCaseRepository(),
        resolver=workflows,
        sla_tracker=sla,
        timeline=timeline,
        notifier=notifier,
        catalog=catalog,
        clock=clock,
    )
    documents = DocumentVersionStore(
        InMemoryDocumentVersionRepository(),
        cases=cases,
        catalog=catalog,
        timeline=timeline,
        clock=clock,
    )
    sweeper = SLASweepJob(cases, sla, timeline, notifier, clock=clock)
    return Engine(
        settings=settings,
        notifier=notifier,
        catalog=catalog,
        timeline=timeline,
        workflows=workflows,
        sla=sla,
        cases=cases,
        documents=documents,
        sweeper=sweeper,
    )


_engine: Engine | None = None


def get_engine() -> Engine:
    """Return the engine for the process, building it on first use."""

    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def configure_engine(engine: Engine) -> None:
    """Install a pre-built engine (tests use this to inject a clock or notifier)."""

    global _engine
    _engine = engine


def reset_engine_state() -> None:
    """Drop the process engine so the next call rebuilds empty stores (used in tests)."""

    global _engine
    _engine = None
