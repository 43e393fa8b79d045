"""Application services."""

from .cases import CaseStore, ChecklistProgress, ItemProgress, StepProgress
from .documents import DocumentVersionStore
from .engine import Engine, build_engine, configure_engine, get_engine, reset_engine_state
from .sla import SLAInitialization, SLASweepJob, SLATracker, SweepResult
from .timeline import TimelinePage, TimelineRecorder
from .workflows import WorkflowResolver, build_template

__all__ = [
    "CaseStore",
    "ChecklistProgress",
    "DocumentVersionStore",
    "Engine",
    "ItemProgress",
    "SLAInitialization",
    "SLASweepJob",
    "SLATracker",
    "StepProgress",
    "SweepResult",
    "TimelinePage",
    "TimelineRecorder",
    "WorkflowResolver",
    "build_engine",
    "build_template",
    "configure_engine",
    "get_engine",
    "reset_engine_state",
]
