"""Domain layer definitions."""

from .actors import SYSTEM_ACTOR, Actor, Role
from .cases import (
    ALLOWED_TRANSITIONS,
    Case,
    CaseStatus,
    ChecklistEntry,
    SLAStatus,
    is_reopen,
    is_valid_transition,
)
from .documents import (
    DocumentStatusEntry,
    DocumentStatusSummary,
    DocumentVersion,
    FileMetadata,
    FileRef,
    VerificationStatus,
    VersionState,
)
from .timeline import (
    AssignmentChange,
    CaseOpened,
    ChecklistChange,
    DocumentChange,
    EventPayload,
    EventType,
    NoteAdded,
    PerformedBy,
    Reopened,
    SLAChange,
    StatusChange,
    TimelineEvent,
    VerificationChange,
    WorkflowChange,
    style_for,
)
from .workflows import (
    ChecklistItem,
    ServiceDefinition,
    TemplateState,
    WorkflowStep,
    WorkflowTemplate,
    total_duration,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "SYSTEM_ACTOR",
    "Actor",
    "AssignmentChange",
    "Case",
    "CaseOpened",
    "CaseStatus",
    "ChecklistChange",
    "ChecklistEntry",
    "ChecklistItem",
    "DocumentChange",
    "DocumentStatusEntry",
    "DocumentStatusSummary",
    "DocumentVersion",
    "EventPayload",
    "EventType",
    "FileMetadata",
    "FileRef",
    "NoteAdded",
    "PerformedBy",
    "Reopened",
    "Role",
    "SLAChange",
    "SLAStatus",
    "ServiceDefinition",
    "StatusChange",
    "TemplateState",
    "TimelineEvent",
    "VerificationChange",
    "VerificationStatus",
    "VersionState",
    "WorkflowChange",
    "WorkflowStep",
    "WorkflowTemplate",
    "is_reopen",
    "is_valid_transition",
    "style_for",
    "total_duration",
]
