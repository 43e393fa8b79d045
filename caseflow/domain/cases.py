"""Case aggregate and its lifecycle rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class CaseStatus(str, Enum):
    NEW = "new"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (CaseStatus.COMPLETED, CaseStatus.CANCELLED)


class SLAStatus(str, Enum):
    NOT_SET = "not_set"
    ON_TIME = "on_time"
    AT_RISK = "at_risk"
    BREACHED = "breached"


# completed -> in_progress is the reopen transition; cancelled is final.
ALLOWED_TRANSITIONS: dict[CaseStatus, frozenset[CaseStatus]] = {
    CaseStatus.NEW: frozenset({CaseStatus.IN_PROGRESS, CaseStatus.COMPLETED, CaseStatus.CANCELLED}),
    CaseStatus.IN_PROGRESS: frozenset({CaseStatus.COMPLETED, CaseStatus.CANCELLED}),
    CaseStatus.COMPLETED: frozenset({CaseStatus.IN_PROGRESS}),
    CaseStatus.CANCELLED: frozenset(),
}


def is_valid_transition(current: CaseStatus, target: CaseStatus) -> bool:
    if current == target:
        # re-stating a non-terminal status is how the current step advances
        return not current.is_terminal
    return target in ALLOWED_TRANSITIONS[current]


def is_reopen(current: CaseStatus, target: CaseStatus) -> bool:
    return current is CaseStatus.COMPLETED and target is CaseStatus.IN_PROGRESS


@dataclass(slots=True)
class ChecklistEntry:
    """Completion state of one ``(step_id, item_id)`` checklist item."""

    step_id: str
    item_id: str
    is_completed: bool = False
    completed_at: datetime | None = None
    completed_by: str | None = None


@dataclass(slots=True)
class Case:
    case_id: str
    case_number: str
    end_user_id: str
    service_id: str
    created_at: datetime
    last_activity_at: datetime
    status: CaseStatus = CaseStatus.NEW
    employee_id: str | None = None
    assigned_at: datetime | None = None
    workflow_template_id: str | None = None
    total_estimated_duration: float | None = None
    estimated_resolution_time: str | None = None
    current_step: int = 0
    checklist_progress: dict[tuple[str, str], ChecklistEntry] = field(default_factory=dict)
    sla_deadline: datetime | None = None
    sla_status: SLAStatus = SLAStatus.NOT_SET
    reopen_count: int = 0
    completed_at: datetime | None = None
    revision: int = 0

    @property
    def is_open(self) -> bool:
        return not self.status.is_terminal
