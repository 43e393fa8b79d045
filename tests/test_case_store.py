from __future__ import annotations

import asyncio
import re
from datetime import timedelta

import pytest

from caseflow.core.validation import ConflictError, ForbiddenError, NotFoundError, ValidationError
from caseflow.domain import CaseStatus, EventType, SLAStatus
from conftest import ADMIN, EMPLOYEE, OTHER_EMPLOYEE, OWNER, STRANGER, T0, TRADEMARK_TEMPLATE, open_case


async def _move_to(engine, case_id: str, status: CaseStatus) -> None:
    if status is not CaseStatus.NEW:
        await engine.cases.update_status(case_id, status, EMPLOYEE)


async def _count(engine, case_id: str, event_type: EventType | None = None) -> int:
    page = await engine.timeline.get_timeline(case_id, event_type=event_type)
    return page.total


def test_create_case_starts_new_with_visible_event(engine):
    async def scenario():
        case = await engine.cases.create_case(OWNER.user_id, "trademark", ADMIN)
        page = await engine.timeline.get_timeline(case.case_id, user_view=True)
        return case, page

    case, page = asyncio.run(scenario())
    assert re.fullmatch(r"CASE-[0-9A-Z]+-[0-9A-Z]{3}", case.case_number)
    assert case.status is CaseStatus.NEW
    assert case.sla_status is SLAStatus.NOT_SET
    assert case.sla_deadline is None
    assert [event.event_type for event in page.items] == [EventType.CASE_CREATED]
    assert page.items[0].payload.case_number == case.case_number


def test_create_case_rejects_unknown_service_and_foreign_end_user(engine):
    with pytest.raises(NotFoundError):
        asyncio.run(engine.cases.create_case(OWNER.user_id, "unknown-service", ADMIN))
    with pytest.raises(ForbiddenError):
        asyncio.run(engine.cases.create_case(OWNER.user_id, "trademark", STRANGER))
    with pytest.raises(ForbiddenError):
        asyncio.run(engine.cases.create_case(OWNER.user_id, "trademark", EMPLOYEE))


def test_assign_employee_is_admin_only_and_notifies(engine, notifier):
    async def scenario():
        case = await engine.cases.create_case(OWNER.user_id, "trademark", ADMIN)
        with pytest.raises(ForbiddenError):
            await engine.cases.assign_employee(case.case_id, EMPLOYEE.user_id, EMPLOYEE)
        return await engine.cases.assign_employee(case.case_id, EMPLOYEE.user_id, ADMIN)

    case = asyncio.run(scenario())
    assert case.employee_id == EMPLOYEE.user_id
    assert case.assigned_at == T0
    assert [(item.recipient_id, item.title) for item in notifier.sent] == [(EMPLOYEE.user_id, "New Case Assigned")]


def test_assign_workflow_initializes_sla(engine, clock):
    async def scenario():
        case = await engine.cases.create_case(OWNER.user_id, "trademark", ADMIN)
        clock.advance(hours=2)
        await engine.cases.assign_employee(case.case_id, EMPLOYEE.user_id, ADMIN)
        clock.advance(hours=1)
        return await engine.cases.assign_workflow(case.case_id, TRADEMARK_TEMPLATE, EMPLOYEE)

    case = asyncio.run(scenario())
    assert case.workflow_template_id == TRADEMARK_TEMPLATE
    assert case.total_estimated_duration == 96
    # the SLA clock starts at assignment, not at workflow selection
    assert case.sla_deadline == T0 + timedelta(hours=2 + 96)
    assert case.sla_status is SLAStatus.ON_TIME
    assert case.estimated_resolution_time == "4 business days"
    assert case.current_step == 0


def test_assign_workflow_rejects_archived_template(engine):
    async def scenario():
        case = await open_case(engine, template_id=None)
        await engine.workflows.archive_template(TRADEMARK_TEMPLATE, ADMIN)
        await engine.cases.assign_workflow(case.case_id, TRADEMARK_TEMPLATE, EMPLOYEE)

    with pytest.raises(ValidationError):
        asyncio.run(scenario())


def test_assign_workflow_unknown_template(engine):
    async def scenario():
        case = await open_case(engine, template_id=None)
        await engine.cases.assign_workflow(case.case_id, "missing", EMPLOYEE)

    with pytest.raises(NotFoundError):
        asyncio.run(scenario())


@pytest.mark.parametrize(
    ("start", "target"),
    [
        (CaseStatus.NEW, CaseStatus.IN_PROGRESS),
        (CaseStatus.NEW, CaseStatus.COMPLETED),
        (CaseStatus.NEW, CaseStatus.CANCELLED),
        (CaseStatus.IN_PROGRESS, CaseStatus.IN_PROGRESS),
        (CaseStatus.IN_PROGRESS, CaseStatus.COMPLETED),
        (CaseStatus.IN_PROGRESS, CaseStatus.CANCELLED),
        (CaseStatus.COMPLETED, CaseStatus.IN_PROGRESS),
    ],
)
def test_valid_transition_appends_one_status_event(engine, start, target):
    async def scenario():
        case = await open_case(engine)
        await _move_to(engine, case.case_id, start)
        before = await _count(engine, case.case_id, EventType.STATUS_CHANGED)
        updated = await engine.cases.update_status(case.case_id, target, EMPLOYEE)
        after = await _count(engine, case.case_id, EventType.STATUS_CHANGED)
        return updated, after - before

    updated, added = asyncio.run(scenario())
    assert updated.status is target
    assert added == 1


@pytest.mark.parametrize(
    ("start", "target"),
    [
        (CaseStatus.CANCELLED, CaseStatus.IN_PROGRESS),
        (CaseStatus.CANCELLED, CaseStatus.COMPLETED),
        (CaseStatus.CANCELLED, CaseStatus.CANCELLED),
        (CaseStatus.COMPLETED, CaseStatus.CANCELLED),
        (CaseStatus.COMPLETED, CaseStatus.COMPLETED),
        (CaseStatus.IN_PROGRESS, CaseStatus.NEW),
    ],
)
def test_invalid_transition_leaves_case_and_timeline_untouched(engine, start, target):
    async def scenario():
        case = await open_case(engine)
        await _move_to(engine, case.case_id, start)
        snapshot = await engine.cases.get_case(case.case_id)
        events = await _count(engine, case.case_id)
        with pytest.raises(ConflictError):
            await engine.cases.update_status(case.case_id, target, EMPLOYEE)
        return snapshot, await engine.cases.get_case(case.case_id), events, await _count(engine, case.case_id)

    snapshot, current, events_before, events_after = asyncio.run(scenario())
    assert current.status is snapshot.status
    assert current.revision == snapshot.revision
    assert events_after == events_before


def test_completion_stamps_and_notifies_end_user(engine, clock, notifier):
    async def scenario():
        case = await open_case(engine)
        clock.advance(hours=5)
        updated = await engine.cases.update_status(case.case_id, CaseStatus.COMPLETED, EMPLOYEE)
        page = await engine.timeline.get_timeline(case.case_id, limit=2)
        return updated, page

    updated, page = asyncio.run(scenario())
    assert updated.completed_at == T0 + timedelta(hours=5)
    assert updated.last_activity_at == T0 + timedelta(hours=5)
    assert [event.event_type for event in page.items] == [EventType.CASE_COMPLETED, EventType.STATUS_CHANGED]
    last = notifier.sent[-1]
    assert last.recipient_id == OWNER.user_id
    assert last.title == "Case Completed"
    assert last.message == "Your case for Trademark Registration has been completed."


def test_start_notification_wording(engine, notifier):
    async def scenario():
        case = await open_case(engine)
        await engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, EMPLOYEE)
        await engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, EMPLOYEE, current_step=1)

    asyncio.run(scenario())
    titles = [item.title for item in notifier.sent if item.recipient_id == OWNER.user_id]
    assert titles == ["Case Started", "Case Updated"]


def test_reopen_increments_counter(engine):
    async def scenario():
        case = await open_case(engine)
        await engine.cases.update_status(case.case_id, CaseStatus.COMPLETED, EMPLOYEE)
        reopened = await engine.cases.reopen_case(case.case_id, EMPLOYEE)
        events = await engine.timeline.get_timeline(case.case_id, event_type=EventType.CASE_REOPENED)
        return reopened, events

    reopened, events = asyncio.run(scenario())
    assert reopened.status is CaseStatus.IN_PROGRESS
    assert reopened.reopen_count == 1
    assert reopened.completed_at is None
    assert events.total == 1
    assert events.items[0].payload.reopen_count == 1


@pytest.mark.parametrize("start", [CaseStatus.CANCELLED, CaseStatus.IN_PROGRESS, CaseStatus.NEW])
def test_reopen_requires_completed_case(engine, start):
    async def scenario():
        case = await open_case(engine)
        await _move_to(engine, case.case_id, start)
        await engine.cases.reopen_case(case.case_id, EMPLOYEE)

    with pytest.raises(ConflictError):
        asyncio.run(scenario())


def test_current_step_moves_forward_within_bounds(engine):
    async def scenario():
        case = await open_case(engine)
        moved = await engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, EMPLOYEE, current_step=2)
        with pytest.raises(ValidationError):
            await engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, EMPLOYEE, current_step=3)
        with pytest.raises(ValidationError):
            await engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, EMPLOYEE, current_step=1)
        return moved

    moved = asyncio.run(scenario())
    assert moved.current_step == 2


def test_status_update_requires_assignee_or_admin(engine):
    async def scenario():
        case = await open_case(engine)
        for actor in (OTHER_EMPLOYEE, OWNER):
            with pytest.raises(ForbiddenError):
                await engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, actor)
        return await engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, ADMIN)

    assert asyncio.run(scenario()).status is CaseStatus.IN_PROGRESS


def test_missing_case_is_not_found(engine):
    with pytest.raises(NotFoundError):
        asyncio.run(engine.cases.update_status("nope", CaseStatus.IN_PROGRESS, ADMIN))


def test_checklist_marking_twice_is_idempotent(engine, clock):
    async def scenario():
        case = await open_case(engine)
        first = await engine.cases.update_checklist_progress(
            case.case_id, "document-collection", "verify-identity", True, EMPLOYEE
        )
        clock.advance(minutes=10)
        second = await engine.cases.update_checklist_progress(
            case.case_id, "document-collection", "verify-identity", True, EMPLOYEE
        )
        internal = await engine.timeline.get_timeline(case.case_id, event_type=EventType.CHECKLIST_UPDATED)
        visible = await engine.timeline.get_timeline(
            case.case_id, user_view=True, event_type=EventType.CHECKLIST_UPDATED
        )
        return first, second, internal, visible

    first, second, internal, visible = asyncio.run(scenario())
    key = ("document-collection", "verify-identity")
    assert first.checklist_progress[key].completed_at == T0
    assert second.checklist_progress[key].is_completed is True
    assert second.checklist_progress[key].completed_at == T0
    assert second.checklist_progress[key].completed_by == EMPLOYEE.user_id
    assert second.last_activity_at == T0 + timedelta(minutes=10)
    assert internal.total == 2
    assert all(not event.is_visible_to_user for event in internal.items)
    assert visible.total == 0


def test_checklist_uncheck_clears_stamps(engine):
    async def scenario():
        case = await open_case(engine)
        await engine.cases.update_checklist_progress(case.case_id, "filing", "prepare-application", True, EMPLOYEE)
        return await engine.cases.update_checklist_progress(
            case.case_id, "filing", "prepare-application", False, EMPLOYEE
        )

    entry = asyncio.run(scenario()).checklist_progress[("filing", "prepare-application")]
    assert entry.is_completed is False
    assert entry.completed_at is None
    assert entry.completed_by is None


def test_checklist_rejects_unknown_items(engine):
    async def scenario():
        case = await open_case(engine)
        with pytest.raises(ValidationError):
            await engine.cases.update_checklist_progress(case.case_id, "filing", "missing", True, EMPLOYEE)
        with pytest.raises(ValidationError):
            await engine.cases.update_checklist_progress(case.case_id, "missing", "verify-identity", True, EMPLOYEE)

    asyncio.run(scenario())


def test_concurrent_checklist_updates_on_different_items(engine):
    async def scenario():
        case = await open_case(engine)
        await asyncio.gather(
            engine.cases.update_checklist_progress(case.case_id, "trademark-search", "conflict-search", True, EMPLOYEE),
            engine.cases.update_checklist_progress(case.case_id, "trademark-search", "class-selection", True, ADMIN),
            engine.cases.update_status(case.case_id, CaseStatus.IN_PROGRESS, EMPLOYEE),
        )
        return await engine.cases.get_case(case.case_id)

    case = asyncio.run(scenario())
    assert case.status is CaseStatus.IN_PROGRESS
    assert case.checklist_progress[("trademark-search", "conflict-search")].is_completed
    assert case.checklist_progress[("trademark-search", "class-selection")].completed_by == ADMIN.user_id


def test_checklist_progress_summary(engine):
    async def scenario():
        case = await open_case(engine)
        await engine.cases.update_checklist_progress(case.case_id, "document-collection", "verify-identity", True, EMPLOYEE)
        await engine.cases.update_checklist_progress(case.case_id, "document-collection", "logo-quality", True, EMPLOYEE)
        return await engine.cases.get_checklist_progress(case.case_id, OWNER)

    progress = asyncio.run(scenario())
    assert [step.step_id for step in progress.steps] == ["document-collection", "trademark-search", "filing"]
    assert progress.steps[0].is_current
    assert progress.total_items == 7
    assert progress.required_items == 6
    assert progress.completed_items == 2
    assert progress.completed_required_items == 1
    assert progress.percent_complete == 17


def test_internal_notes_are_hidden_from_end_users(engine):
    async def scenario():
        case = await open_case(engine)
        event = await engine.cases.add_internal_note(case.case_id, "Called the registry", EMPLOYEE)
        user_page = await engine.cases.get_timeline(case.case_id, OWNER)
        staff_page = await engine.cases.get_timeline(case.case_id, EMPLOYEE, internal=True)
        with pytest.raises(ForbiddenError):
            await engine.cases.get_timeline(case.case_id, OWNER, internal=True)
        with pytest.raises(ForbiddenError):
            await engine.cases.get_timeline(case.case_id, STRANGER)
        with pytest.raises(ForbiddenError):
            await engine.cases.add_internal_note(case.case_id, "hello", OWNER)
        return event, user_page, staff_page

    event, user_page, staff_page = asyncio.run(scenario())
    assert event.is_visible_to_user is False
    assert event.payload.note == "Called the registry"
    assert EventType.INTERNAL_NOTE_ADDED not in {item.event_type for item in user_page.items}
    assert staff_page.items[0].event_type is EventType.INTERNAL_NOTE_ADDED


def test_timeline_is_newest_first_with_pagination(engine):
    async def scenario():
        case = await open_case(engine)
        for _ in range(4):
            await engine.cases.add_internal_note(case.case_id, "note", EMPLOYEE)
        first = await engine.timeline.get_timeline(case.case_id, page=1, limit=3)
        second = await engine.timeline.get_timeline(case.case_id, page=2, limit=3)
        third = await engine.timeline.get_timeline(case.case_id, page=3, limit=3)
        with pytest.raises(ValidationError):
            await engine.timeline.get_timeline(case.case_id, page=0)
        return first, second, third

    first, second, third = asyncio.run(scenario())
    # created, assigned, workflow, four notes
    assert first.total == second.total == third.total == 7
    sequences = [event.sequence for event in first.items + second.items + third.items]
    assert sequences == sorted(sequences, reverse=True)
    assert [event.event_type for event in second.items] == [
        EventType.INTERNAL_NOTE_ADDED,
        EventType.WORKFLOW_ASSIGNED,
        EventType.CASE_ASSIGNED,
    ]
    assert [event.event_type for event in third.items] == [EventType.CASE_CREATED]
