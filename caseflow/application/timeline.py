"""Timeline Recorder: the per-case, append-only audit log."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from caseflow.core.clock import Clock, utcnow
from caseflow.core.validation import ValidationError
from caseflow.domain import Actor, EventPayload, EventType, PerformedBy, TimelineEvent, style_for
from caseflow.infrastructure import TimelineRepository

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200

DEFAULT_TITLES: dict[EventType, str] = {
    EventType.CASE_CREATED: "Case Created",
    EventType.CASE_ASSIGNED: "Case Assigned",
    EventType.WORKFLOW_ASSIGNED: "Workflow Assigned",
    EventType.STATUS_CHANGED: "Status Updated",
    EventType.DOCUMENT_UPLOADED: "Document Uploaded",
    EventType.DOCUMENT_VERIFIED: "Document Verified",
    EventType.DOCUMENT_REJECTED: "Document Rejected",
    EventType.DOCUMENT_DELETED: "Document Deleted",
    EventType.CHECKLIST_UPDATED: "Checklist Updated",
    EventType.SLA_WARNING: "SLA Warning",
    EventType.SLA_BREACH: "SLA Breached",
    EventType.CASE_COMPLETED: "Case Completed",
    EventType.CASE_REOPENED: "Case Reopened",
    EventType.INTERNAL_NOTE_ADDED: "Internal Note Added",
}


def describe(event_type: EventType, **data: Any) -> str:
    """Human readable description for an event of ``event_type``."""

    templates = {
        EventType.CASE_CREATED: "Case created by {user_name}",
        EventType.CASE_ASSIGNED: "Case assigned to {assignee_name}",
        EventType.WORKFLOW_ASSIGNED: "Workflow \"{template_name}\" assigned, estimated {estimate}",
        EventType.STATUS_CHANGED: "Status changed from \"{old_status}\" to \"{new_status}\"",
        EventType.DOCUMENT_UPLOADED: "{document_type} uploaded (Version {version})",
        EventType.DOCUMENT_VERIFIED: "{document_type} verified by {verifier_name}",
        EventType.DOCUMENT_REJECTED: "{document_type} rejected: {reason}",
        EventType.DOCUMENT_DELETED: "{document_type} version {version} deleted",
        EventType.CHECKLIST_UPDATED: "Checklist item \"{item_name}\" marked as {status}",
        EventType.SLA_WARNING: "SLA warning: {hours_remaining} hours remaining",
        EventType.SLA_BREACH: "SLA breached",
        EventType.CASE_COMPLETED: "Case completed by {user_name}",
        EventType.CASE_REOPENED: "Case reopened by {user_name}",
        EventType.INTERNAL_NOTE_ADDED: "Internal note added by {user_name}",
    }
    try:
        return templates[event_type].format(**data)
    except (KeyError, IndexError):
        return "Activity recorded"


@dataclass(slots=True)
class TimelinePage:
    items: list[TimelineEvent]
    page: int
    limit: int
    total: int


class TimelineRecorder:
    """Writes timeline events on behalf of every other component.

    ``append`` is best effort: a failed write is logged and reported as
    ``None`` so the business operation that triggered it still succeeds.
    """

    def __init__(self, repository: TimelineRepository, *, clock: Clock = utcnow) -> None:
        self._repository = repository
        self._clock = clock

    async def append(
        self,
        case_id: str,
        event_type: EventType,
        *,
        actor: Actor,
        description: str,
        payload: EventPayload = None,
        visible_to_user: bool = True,
        title: str | None = None,
    ) -> TimelineEvent | None:
        try:
            event = TimelineEvent(
                event_id=uuid.uuid4().hex,
                case_id=case_id,
                event_type=event_type,
                title=title or DEFAULT_TITLES.get(event_type, "Activity"),
                description=description,
                performed_by=PerformedBy(
                    user_id=actor.user_id,
                    name=actor.display_name,
                    role=actor.role.value,
                ),
                created_at=self._clock(),
                payload=payload,
                is_visible_to_user=visible_to_user,
                **style_for(event_type),
            )
            return await self._repository.append(event)
        except Exception:
            logger.exception("Failed to record %s event for case %s", event_type.value, case_id)
            return None

    async def get_timeline(
        self,
        case_id: str,
        *,
        user_view: bool = False,
        event_type: EventType | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> TimelinePage:
        if page < 1:
            raise ValidationError("page must be >= 1", field="page")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        items, total = await self._repository.query(
            case_id,
            visible_only=user_view,
            event_type=event_type,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return TimelinePage(items=items, page=page, limit=limit, total=total)
