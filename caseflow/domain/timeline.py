"""Timeline events and the typed payload carried by each event type."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Union


class EventType(str, Enum):
    CASE_CREATED = "case_created"
    CASE_ASSIGNED = "case_assigned"
    WORKFLOW_ASSIGNED = "workflow_assigned"
    STATUS_CHANGED = "status_changed"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_VERIFIED = "document_verified"
    DOCUMENT_REJECTED = "document_rejected"
    DOCUMENT_DELETED = "document_deleted"
    CHECKLIST_UPDATED = "checklist_updated"
    SLA_WARNING = "sla_warning"
    SLA_BREACH = "sla_breach"
    CASE_COMPLETED = "case_completed"
    CASE_REOPENED = "case_reopened"
    INTERNAL_NOTE_ADDED = "internal_note_added"


@dataclass(frozen=True, slots=True)
class CaseOpened:
    kind: ClassVar[str] = "case_opened"
    case_number: str
    service_id: str


@dataclass(frozen=True, slots=True)
class AssignmentChange:
    kind: ClassVar[str] = "assignment"
    employee_id: str
    previous_employee_id: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowChange:
    kind: ClassVar[str] = "workflow"
    template_id: str
    total_estimated_duration: float
    sla_deadline: datetime | None


@dataclass(frozen=True, slots=True)
class StatusChange:
    kind: ClassVar[str] = "status"
    old_status: str
    new_status: str
    old_step: int | None = None
    new_step: int | None = None


@dataclass(frozen=True, slots=True)
class Reopened:
    kind: ClassVar[str] = "reopened"
    reopen_count: int


@dataclass(frozen=True, slots=True)
class ChecklistChange:
    kind: ClassVar[str] = "checklist"
    step_id: str
    item_id: str
    item_title: str
    is_completed: bool


@dataclass(frozen=True, slots=True)
class DocumentChange:
    kind: ClassVar[str] = "document"
    document_type: str
    version: int
    restored_from: int | None = None


@dataclass(frozen=True, slots=True)
class VerificationChange:
    kind: ClassVar[str] = "verification"
    document_type: str
    version: int
    outcome: str
    rejection_reason: str | None = None


@dataclass(frozen=True, slots=True)
class SLAChange:
    kind: ClassVar[str] = "sla"
    old_status: str
    new_status: str
    sla_deadline: datetime
    hours_remaining: int


@dataclass(frozen=True, slots=True)
class NoteAdded:
    kind: ClassVar[str] = "note"
    note: str


EventPayload = Union[
    CaseOpened,
    AssignmentChange,
    WorkflowChange,
    StatusChange,
    Reopened,
    ChecklistChange,
    DocumentChange,
    VerificationChange,
    SLAChange,
    NoteAdded,
    None,
]

PAYLOAD_TYPES: dict[EventType, tuple[type, ...]] = {
    EventType.CASE_CREATED: (CaseOpened,),
    EventType.CASE_ASSIGNED: (AssignmentChange,),
    EventType.WORKFLOW_ASSIGNED: (WorkflowChange,),
    EventType.STATUS_CHANGED: (StatusChange,),
    EventType.DOCUMENT_UPLOADED: (DocumentChange,),
    EventType.DOCUMENT_VERIFIED: (VerificationChange,),
    EventType.DOCUMENT_REJECTED: (VerificationChange,),
    EventType.DOCUMENT_DELETED: (DocumentChange,),
    EventType.CHECKLIST_UPDATED: (ChecklistChange,),
    EventType.SLA_WARNING: (SLAChange,),
    EventType.SLA_BREACH: (SLAChange,),
    EventType.CASE_COMPLETED: (StatusChange,),
    EventType.CASE_REOPENED: (Reopened,),
    EventType.INTERNAL_NOTE_ADDED: (NoteAdded,),
}

EVENT_STYLES: dict[EventType, tuple[str, str]] = {
    EventType.CASE_CREATED: ("plus-circle", "blue"),
    EventType.CASE_ASSIGNED: ("user-check", "blue"),
    EventType.WORKFLOW_ASSIGNED: ("git-branch", "blue"),
    EventType.STATUS_CHANGED: ("refresh-cw", "purple"),
    EventType.DOCUMENT_UPLOADED: ("upload", "blue"),
    EventType.DOCUMENT_VERIFIED: ("check-circle", "green"),
    EventType.DOCUMENT_REJECTED: ("x-circle", "red"),
    EventType.DOCUMENT_DELETED: ("trash-2", "gray"),
    EventType.CHECKLIST_UPDATED: ("check-square", "green"),
    EventType.SLA_WARNING: ("alert-triangle", "yellow"),
    EventType.SLA_BREACH: ("alert-circle", "red"),
    EventType.CASE_COMPLETED: ("check-circle", "green"),
    EventType.CASE_REOPENED: ("rotate-ccw", "yellow"),
    EventType.INTERNAL_NOTE_ADDED: ("lock", "gray"),
}

EVENT_PRIORITIES: dict[EventType, str] = {
    EventType.SLA_WARNING: "high",
    EventType.SLA_BREACH: "high",
    EventType.DOCUMENT_REJECTED: "high",
    EventType.CHECKLIST_UPDATED: "low",
    EventType.INTERNAL_NOTE_ADDED: "low",
}


@dataclass(frozen=True, slots=True)
class PerformedBy:
    user_id: str | None
    name: str
    role: str


@dataclass(frozen=True, slots=True)
class TimelineEvent:
    """Immutable audit record of one state change on a case."""

    event_id: str
    case_id: str
    event_type: EventType
    title: str
    description: str
    performed_by: PerformedBy
    created_at: datetime
    sequence: int = 0
    payload: EventPayload = None
    is_visible_to_user: bool = True
    icon: str = "circle"
    color: str = "gray"
    priority: str = "medium"

    def __post_init__(self) -> None:
        allowed = PAYLOAD_TYPES[self.event_type]
        if self.payload is not None and not isinstance(self.payload, allowed):
            raise TypeError(
                f"{type(self.payload).__name__} is not a valid payload for {self.event_type.value}"
            )


def style_for(event_type: EventType) -> dict[str, str]:
    icon, color = EVENT_STYLES.get(event_type, ("circle", "gray"))
    return {"icon": icon, "color": color, "priority": EVENT_PRIORITIES.get(event_type, "medium")}
