"""Case Store: the case aggregate and every controlled transition on it."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from caseflow.application.access import (
    can_manage,
    ensure_admin,
    ensure_can_manage,
    ensure_can_view,
)
from caseflow.application.sla import SLATracker
from caseflow.application.timeline import TimelinePage, TimelineRecorder, describe
from caseflow.application.workflows import WorkflowResolver
from caseflow.core.case_numbers import generate_case_number
from caseflow.core.clock import Clock, utcnow
from caseflow.core.validation import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    require_text,
)
from caseflow.domain import (
    Actor,
    AssignmentChange,
    Case,
    CaseOpened,
    CaseStatus,
    ChecklistChange,
    ChecklistEntry,
    EventType,
    NoteAdded,
    Reopened,
    Role,
    SLAStatus,
    StatusChange,
    TemplateState,
    TimelineEvent,
    WorkflowChange,
    WorkflowTemplate,
    is_reopen,
    is_valid_transition,
)
from caseflow.infrastructure import (
    CaseRepository,
    NotificationDispatcher,
    ServiceCatalog,
    dispatch_quietly,
)

logger = logging.getLogger(__name__)

CASE_NUMBER_ATTEMPTS = 5


@dataclass(slots=True)
class ItemProgress:
    item_id: str
    title: str
    order: int
    is_optional: bool
    is_completed: bool = False
    completed_at: datetime | None = None
    completed_by: str | None = None


@dataclass(slots=True)
class StepProgress:
    step_id: str
    name: str
    order: int
    estimated_duration: float
    is_current: bool
    items: list[ItemProgress] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return all(item.is_completed for item in self.items if not item.is_optional)


@dataclass(slots=True)
class ChecklistProgress:
    case_id: str
    workflow_template_id: str | None
    current_step: int
    steps: list[StepProgress]

    @property
    def total_items(self) -> int:
        return sum(len(step.items) for step in self.steps)

    @property
    def completed_items(self) -> int:
        return sum(1 for step in self.steps for item in step.items if item.is_completed)

    @property
    def required_items(self) -> int:
        return sum(1 for step in self.steps for item in step.items if not item.is_optional)

    @property
    def completed_required_items(self) -> int:
        return sum(
            1 for step in self.steps for item in step.items if item.is_completed and not item.is_optional
        )

    @property
    def percent_complete(self) -> int:
        if not self.required_items:
            return 0
        return round(100 * self.completed_required_items / self.required_items)


def _status_verb(old: CaseStatus, new: CaseStatus) -> str:
    if new is CaseStatus.COMPLETED:
        return "completed"
    if new is CaseStatus.CANCELLED:
        return "cancelled"
    if new is CaseStatus.IN_PROGRESS and old is CaseStatus.NEW:
        return "started"
    return "updated"


class CaseStore:
    """Owns the case aggregate.

    Every mutation, including the SLA sweep's status writes, goes through a
    method on this class so activity stamps and timeline emission stay
    consistent.
    """

    def __init__(
        self,
        repository: CaseRepository,
        *,
        resolver: WorkflowResolver,
        sla_tracker: SLATracker,
        timeline: TimelineRecorder,
        notifier: NotificationDispatcher,
        catalog: ServiceCatalog,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._resolver = resolver
        self._sla = sla_tracker
        self._timeline = timeline
        self._notifier = notifier
        self._catalog = catalog
        self._clock = clock

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    async def get_case(self, case_id: str) -> Case:
        case = await self._repository.get(case_id)
        if case is None:
            raise NotFoundError("case not found", case_id=case_id)
        return case

    async def get_case_for(self, case_id: str, actor: Actor, action: str = "view this case") -> Case:
        case = await self.get_case(case_id)
        ensure_can_view(actor, case, action)
        return case

    async def get_timeline(
        self,
        case_id: str,
        actor: Actor,
        *,
        internal: bool = False,
        event_type: EventType | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> TimelinePage:
        """End users only ever see the user-visible subset; ``internal`` requires staff access."""

        case = await self.get_case_for(case_id, actor, "view this timeline")
        if internal and not can_manage(actor, case):
            raise ForbiddenError("Not authorized to view the internal timeline", case_id=case_id)
        return await self._timeline.get_timeline(
            case_id,
            user_view=actor.role is Role.END_USER,
            event_type=event_type,
            page=page,
            limit=limit,
        )

    async def get_checklist_progress(self, case_id: str, actor: Actor) -> ChecklistProgress:
        case = await self.get_case_for(case_id, actor)
        if not case.workflow_template_id:
            return ChecklistProgress(case.case_id, None, case.current_step, [])
        template = await self._resolver.resolve(case.workflow_template_id)
        steps: list[StepProgress] = []
        for index, step in enumerate(template.steps):
            progress = StepProgress(
                step_id=step.step_id,
                name=step.name,
                order=step.order,
                estimated_duration=step.estimated_duration,
                is_current=index == case.current_step,
            )
            for item in step.checklist_items:
                entry = case.checklist_progress.get((step.step_id, item.item_id))
                progress.items.append(
                    ItemProgress(
                        item_id=item.item_id,
                        title=item.title,
                        order=item.order,
                        is_optional=item.is_optional,
                        is_completed=bool(entry and entry.is_completed),
                        completed_at=entry.completed_at if entry else None,
                        completed_by=entry.completed_by if entry else None,
                    )
                )
            steps.append(progress)
        return ChecklistProgress(case.case_id, template.template_id, case.current_step, steps)

    # ------------------------------------------------------------------
    # creation and assignment
    # ------------------------------------------------------------------
    async def create_case(self, end_user_id: str, service_id: str, actor: Actor) -> Case:
        end_user_id = require_text(end_user_id, "end_user_id")
        if actor.role is Role.END_USER:
            if actor.user_id != end_user_id:
                raise ForbiddenError("End users may only open cases for themselves")
        elif actor.role not in (Role.ADMIN, Role.SYSTEM):
            raise ForbiddenError("Not authorized to create cases")

        service = await self._catalog.get_service(service_id)
        if service is None:
            raise NotFoundError("service not found", service_id=service_id)

        now = self._clock()
        case = Case(
            case_id=uuid.uuid4().hex,
            case_number=await self._unique_case_number(now),
            end_user_id=end_user_id,
            service_id=service.service_id,
            created_at=now,
            last_activity_at=now,
        )
        await self._repository.add(case)
        await self._timeline.append(
            case.case_id,
            EventType.CASE_CREATED,
            actor=actor,
            description=describe(EventType.CASE_CREATED, user_name=actor.display_name),
            payload=CaseOpened(case_number=case.case_number, service_id=case.service_id),
        )
        logger.info("Created case %s for service %s", case.case_number, service.service_id)
        return case

    async def _unique_case_number(self, now: datetime) -> str:
        for _ in range(CASE_NUMBER_ATTEMPTS):
            candidate = generate_case_number(now)
            if await self._repository.get_by_number(candidate) is None:
                return candidate
        raise ConflictError("could not allocate a unique case number")

    async def assign_employee(self, case_id: str, employee_id: str, actor: Actor) -> Case:
        ensure_admin(actor, "assign cases")
        employee_id = require_text(employee_id, "employee_id")
        case = await self.get_case(case_id)
        if case.status.is_terminal:
            raise ConflictError("cannot assign a closed case", case_id=case_id, status=case.status.value)

        now = self._clock()
        updated = await self._repository.update(
            case_id,
            {"employee_id": employee_id, "assigned_at": now, "last_activity_at": now},
            expected_revision=case.revision,
        )
        await self._timeline.append(
            case_id,
            EventType.CASE_ASSIGNED,
            actor=actor,
            description=describe(EventType.CASE_ASSIGNED, assignee_name=employee_id),
            payload=AssignmentChange(employee_id=employee_id, previous_employee_id=case.employee_id),
        )
        await dispatch_quietly(
            self._notifier,
            employee_id,
            "New Case Assigned",
            f"Case {case.case_number} has been assigned to you.",
            case_id,
        )
        return updated

    async def assign_workflow(self, case_id: str, template_id: str, actor: Actor) -> Case:
        case = await self.get_case(case_id)
        ensure_can_manage(actor, case, "assign a workflow to this case")
        if case.status.is_terminal:
            raise ConflictError("cannot assign a workflow to a closed case", case_id=case_id)

        template = await self._resolver.resolve(template_id)
        self._ensure_assignable(template, case)

        start = case.assigned_at or case.created_at
        sla = await self._sla.initialize(template, start)
        now = self._clock()
        changes: dict[str, Any] = {
            "workflow_template_id": template.template_id,
            "total_estimated_duration": template.total_estimated_duration,
            "estimated_resolution_time": sla.estimated_resolution_time,
            "sla_deadline": sla.deadline,
            "sla_status": sla.status,
            "last_activity_at": now,
        }
        if case.workflow_template_id != template.template_id:
            changes["current_step"] = 0
            changes["checklist_progress"] = {}
        updated = await self._repository.update(case_id, changes, expected_revision=case.revision)

        await self._timeline.append(
            case_id,
            EventType.WORKFLOW_ASSIGNED,
            actor=actor,
            description=describe(
                EventType.WORKFLOW_ASSIGNED,
                template_name=template.name,
                estimate=sla.estimated_resolution_time,
            ),
            payload=WorkflowChange(
                template_id=template.template_id,
                total_estimated_duration=template.total_estimated_duration,
                sla_deadline=sla.deadline,
            ),
        )
        return updated

    @staticmethod
    def _ensure_assignable(template: WorkflowTemplate, case: Case) -> None:
        if template.state is not TemplateState.ACTIVE:
            raise ValidationError(
                "only active workflow templates can be assigned",
                template_id=template.template_id,
                state=template.state.value,
            )
        if template.service_id != case.service_id:
            raise ValidationError(
                "workflow template belongs to a different service",
                template_id=template.template_id,
                service_id=template.service_id,
            )

    # ------------------------------------------------------------------
    # status machine
    # ------------------------------------------------------------------
    async def update_status(
        self,
        case_id: str,
        new_status: CaseStatus,
        actor: Actor,
        current_step: int | None = None,
    ) -> Case:
        case = await self.get_case(case_id)
        ensure_can_manage(actor, case, "update this case")
        old_status = case.status
        if not is_valid_transition(old_status, new_status):
            raise ConflictError(
                f"Cannot transition case from {old_status.value} to {new_status.value}",
                case_id=case_id,
                current_status=old_status.value,
                requested_status=new_status.value,
            )
        if current_step is not None:
            await self._validate_step(case, current_step)

        now = self._clock()
        changes: dict[str, Any] = {"status": new_status, "last_activity_at": now}
        if current_step is not None:
            changes["current_step"] = current_step
        if new_status is CaseStatus.COMPLETED and old_status is not CaseStatus.COMPLETED:
            changes["completed_at"] = now
        reopening = is_reopen(old_status, new_status)
        if reopening:
            changes["reopen_count"] = case.reopen_count + 1
            changes["completed_at"] = None
        updated = await self._repository.update(case_id, changes, expected_revision=case.revision)

        status_change = StatusChange(
            old_status=old_status.value,
            new_status=new_status.value,
            old_step=case.current_step,
            new_step=updated.current_step,
        )
        await self._timeline.append(
            case_id,
            EventType.STATUS_CHANGED,
            actor=actor,
            description=describe(
                EventType.STATUS_CHANGED,
                old_status=old_status.value,
                new_status=new_status.value,
            ),
            payload=status_change,
        )
        if new_status is CaseStatus.COMPLETED and old_status is not CaseStatus.COMPLETED:
            await self._timeline.append(
                case_id,
                EventType.CASE_COMPLETED,
                actor=actor,
                description=describe(EventType.CASE_COMPLETED, user_name=actor.display_name),
                payload=status_change,
            )
        if reopening:
            await self._timeline.append(
                case_id,
                EventType.CASE_REOPENED,
                actor=actor,
                description=describe(EventType.CASE_REOPENED, user_name=actor.display_name),
                payload=Reopened(reopen_count=updated.reopen_count),
            )

        await self._notify_end_user(updated, _status_verb(old_status, new_status))
        return updated

    async def _validate_step(self, case: Case, current_step: int) -> None:
        if not case.workflow_template_id:
            raise ValidationError("no workflow is assigned to this case", field="current_step")
        template = await self._resolver.resolve(case.workflow_template_id)
        if not 0 <= current_step < template.step_count:
            raise ValidationError(
                f"current_step must be between 0 and {template.step_count - 1}",
                field="current_step",
                step_count=template.step_count,
            )
        if current_step < case.current_step:
            raise ValidationError(
                "current_step can only move forward",
                field="current_step",
                current_step=case.current_step,
            )

    async def _notify_end_user(self, case: Case, verb: str) -> None:
        service = await self._catalog.get_service(case.service_id)
        service_name = service.name if service else case.service_id
        await dispatch_quietly(
            self._notifier,
            case.end_user_id,
            f"Case {verb.capitalize()}",
            f"Your case for {service_name} has been {verb}.",
            case.case_id,
        )

    async def reopen_case(self, case_id: str, actor: Actor) -> Case:
        case = await self.get_case(case_id)
        ensure_can_manage(actor, case, "reopen this case")
        if case.status is not CaseStatus.COMPLETED:
            raise ConflictError(
                "only completed cases can be reopened",
                case_id=case_id,
                current_status=case.status.value,
            )
        return await self.update_status(case_id, CaseStatus.IN_PROGRESS, actor)

    # ------------------------------------------------------------------
    # checklist and notes
    # ------------------------------------------------------------------
    async def update_checklist_progress(
        self,
        case_id: str,
        step_id: str,
        item_id: str,
        is_completed: bool,
        actor: Actor,
    ) -> Case:
        case = await self.get_case(case_id)
        ensure_can_manage(actor, case, "update this checklist")
        if not case.workflow_template_id:
            raise ValidationError("no workflow is assigned to this case")
        template = await self._resolver.resolve(case.workflow_template_id)
        step = template.find_step(step_id)
        if step is None:
            raise ValidationError("unknown workflow step", field="step_id", step_id=step_id)
        item = step.find_item(item_id)
        if item is None:
            raise ValidationError("unknown checklist item", field="item_id", item_id=item_id)

        now = self._clock()
        previous = case.checklist_progress.get((step_id, item_id))
        if is_completed and previous and previous.is_completed:
            entry = previous
        elif is_completed:
            entry = ChecklistEntry(step_id, item_id, True, completed_at=now, completed_by=actor.user_id)
        else:
            entry = ChecklistEntry(step_id, item_id, False)
        updated = await self._repository.upsert_checklist_entry(case_id, entry, activity_at=now)

        await self._timeline.append(
            case_id,
            EventType.CHECKLIST_UPDATED,
            actor=actor,
            description=describe(
                EventType.CHECKLIST_UPDATED,
                item_name=item.title,
                status="completed" if is_completed else "incomplete",
            ),
            payload=ChecklistChange(
                step_id=step_id,
                item_id=item_id,
                item_title=item.title,
                is_completed=is_completed,
            ),
            visible_to_user=False,
        )
        return updated

    async def add_internal_note(self, case_id: str, note: str, actor: Actor) -> TimelineEvent | None:
        case = await self.get_case(case_id)
        ensure_can_manage(actor, case, "add notes to this case")
        text = require_text(note, "note")
        await self.record_activity(case_id)
        return await self._timeline.append(
            case_id,
            EventType.INTERNAL_NOTE_ADDED,
            actor=actor,
            description=describe(EventType.INTERNAL_NOTE_ADDED, user_name=actor.display_name),
            payload=NoteAdded(note=text),
            visible_to_user=False,
        )

    async def record_activity(self, case_id: str, at: datetime | None = None) -> bool:
        return await self._repository.touch(case_id, at or self._clock())

    # ------------------------------------------------------------------
    # SLA entry points
    # ------------------------------------------------------------------
    async def list_open_cases_with_deadline(self) -> list[Case]:
        return await self._repository.list_open_with_deadline()

    async def apply_sla_status(
        self,
        case_id: str,
        *,
        expected: SLAStatus,
        new_status: SLAStatus,
        expected_deadline: datetime | None,
    ) -> bool:
        """Conditional write used by the sweep; ``False`` means the case moved on and was skipped."""

        return await self._repository.set_sla_status(
            case_id, expected=expected, new_status=new_status, expected_deadline=expected_deadline
        )

    async def list_sla_alert_cases(self, statuses: Iterable[SLAStatus]) -> list[Case]:
        return await self._repository.list_open_by_sla_status(statuses)
