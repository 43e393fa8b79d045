"""Immutable workflow template blueprint."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class TemplateState(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    item_id: str
    title: str
    order: int
    description: str | None = None
    is_optional: bool = False


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    step_id: str
    name: str
    order: int
    estimated_duration: float = 24
    description: str | None = None
    checklist_items: tuple[ChecklistItem, ...] = ()
    required_documents: tuple[str, ...] = ()

    def find_item(self, item_id: str) -> ChecklistItem | None:
        for item in self.checklist_items:
            if item.item_id == item_id:
                return item
        return None


@dataclass(frozen=True, slots=True)
class WorkflowTemplate:
    template_id: str
    name: str
    service_id: str
    steps: tuple[WorkflowStep, ...]
    total_estimated_duration: float
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    description: str | None = None
    state: TemplateState = TemplateState.ACTIVE
    version: str = "1.0"
    tags: tuple[str, ...] = ()
    complexity: str = "medium"

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def find_step(self, step_id: str) -> WorkflowStep | None:
        for step in self.steps:
            if step.step_id == step_id:
                return step
        return None

    def item_keys(self) -> list[tuple[str, str]]:
        return [(step.step_id, item.item_id) for step in self.steps for item in step.checklist_items]


def total_duration(steps: tuple[WorkflowStep, ...] | list[WorkflowStep]) -> float:
    return sum(step.estimated_duration or 0 for step in steps)


@dataclass(frozen=True, slots=True)
class ServiceDefinition:
    """Purchased service as described by the external service catalogue."""

    service_id: str
    name: str
    documents_required: tuple[str, ...] = field(default_factory=tuple)
