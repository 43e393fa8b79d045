"""SLA Tracker: deadline initialization and the periodic status sweep."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from caseflow.application.timeline import TimelineRecorder, describe
from caseflow.core import sla as rules
from caseflow.core.clock import Clock, utcnow
from caseflow.domain import SYSTEM_ACTOR, Case, EventType, SLAChange, SLAStatus, WorkflowTemplate
from caseflow.infrastructure import NotificationDispatcher, dispatch_quietly

if TYPE_CHECKING:
    from caseflow.application.cases import CaseStore
    from caseflow.application.workflows import WorkflowResolver

logger = logging.getLogger(__name__)

ALERT_STATUSES = (SLAStatus.AT_RISK, SLAStatus.BREACHED)


@dataclass(frozen=True, slots=True)
class SLAInitialization:
    deadline: datetime
    status: SLAStatus
    estimated_resolution_time: str


class SLATracker:
    """Pure deadline arithmetic bound to a clock and an at-risk window."""

    def __init__(
        self,
        resolver: "WorkflowResolver",
        *,
        clock: Clock = utcnow,
        at_risk_hours: float = 24.0,
    ) -> None:
        self._resolver = resolver
        self._clock = clock
        self._window = timedelta(hours=at_risk_hours)

    async def calculate_deadline(self, template_id: str | None, start: datetime) -> datetime | None:
        if not template_id:
            return None
        template = await self._resolver.resolve(template_id)
        return rules.deadline_from(start, template.total_estimated_duration)

    def classify(self, deadline: datetime | None, now: datetime | None = None) -> SLAStatus:
        return rules.classify(now or self._clock(), deadline, at_risk_window=self._window)

    def hours_remaining(self, deadline: datetime | None, now: datetime | None = None) -> int:
        return rules.hours_remaining(now or self._clock(), deadline)

    async def initialize(self, template: WorkflowTemplate, start: datetime) -> SLAInitialization:
        # the one write of slaStatus outside the sweep
        return SLAInitialization(
            deadline=await self.calculate_deadline(template.template_id, start),
            status=SLAStatus.ON_TIME,
            estimated_resolution_time=rules.estimated_resolution_label(template.total_estimated_duration),
        )


@dataclass(slots=True)
class SweepResult:
    evaluated: int = 0
    updated: int = 0
    alerts: int = 0
    notifications: int = 0
    skipped: int = 0
    failed: int = 0


class SLASweepJob:
    """Recomputes the cached SLA status of every open case with a deadline.

    The job never raises: each case is evaluated independently and failures
    are logged and counted. Writes are conditional on the stored status, the
    stored deadline and the case still being open, so a case completed or
    given a new workflow mid-sweep is skipped and an immediate second run
    writes nothing.
    """

    def __init__(
        self,
        cases: "CaseStore",
        tracker: SLATracker,
        timeline: TimelineRecorder,
        notifier: NotificationDispatcher,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._cases = cases
        self._tracker = tracker
        self._timeline = timeline
        self._notifier = notifier
        self._clock = clock

    async def sweep(self) -> SweepResult:
        result = SweepResult()
        try:
            candidates = await self._cases.list_open_cases_with_deadline()
        except Exception:
            logger.exception("SLA sweep could not list open cases")
            result.failed += 1
            return result

        for case in candidates:
            result.evaluated += 1
            try:
                await self._evaluate(case, result)
            except Exception:
                result.failed += 1
                logger.exception("SLA sweep failed for case %s", case.case_id)

        logger.info(
            "SLA sweep finished: %d evaluated, %d updated, %d alerts, %d failed",
            result.evaluated,
            result.updated,
            result.alerts,
            result.failed,
        )
        return result

    async def _evaluate(self, case: Case, result: SweepResult) -> None:
        now = self._clock()
        new_status = self._tracker.classify(case.sla_deadline, now)
        if new_status == case.sla_status:
            return

        applied = await self._cases.apply_sla_status(
            case.case_id,
            expected=case.sla_status,
            new_status=new_status,
            expected_deadline=case.sla_deadline,
        )
        if not applied:
            result.skipped += 1
            return
        result.updated += 1
        if new_status not in ALERT_STATUSES:
            return

        remaining = self._tracker.hours_remaining(case.sla_deadline, now)
        breached = new_status is SLAStatus.BREACHED
        event_type = EventType.SLA_BREACH if breached else EventType.SLA_WARNING
        await self._timeline.append(
            case.case_id,
            event_type,
            actor=SYSTEM_ACTOR,
            description=describe(event_type, hours_remaining=remaining),
            payload=SLAChange(
                old_status=case.sla_status.value,
                new_status=new_status.value,
                sla_deadline=case.sla_deadline,
                hours_remaining=remaining,
            ),
            visible_to_user=False,
        )
        result.alerts += 1

        if breached:
            title = "SLA Breached"
            message = f"Case {case.case_number} has breached its SLA deadline."
        else:
            title = "SLA Warning"
            message = f"Case {case.case_number} is at risk of missing its SLA deadline ({remaining} hours remaining)."
        if await dispatch_quietly(self._notifier, case.employee_id, title, message, case.case_id):
            result.notifications += 1

    async def get_alerts(self, status: SLAStatus | None = None) -> list[Case]:
        statuses = (status,) if status else ALERT_STATUSES
        return await self._cases.list_sla_alert_cases(statuses)
