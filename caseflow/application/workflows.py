"""Workflow Resolver: template storage, clone, and the read path used by cases."""
from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime
from typing import Any, Iterable, Mapping

from caseflow.application.access import ensure_admin
from caseflow.core.clock import Clock, utcnow
from caseflow.core.validation import ConflictError, NotFoundError, ValidationError, require_text
from caseflow.domain import (
    Actor,
    ChecklistItem,
    TemplateState,
    WorkflowStep,
    WorkflowTemplate,
    total_duration,
)
from caseflow.infrastructure import WorkflowTemplateRepository

COMPLEXITY_LEVELS = {"simple", "medium", "complex"}
UPDATABLE_FIELDS = {"name", "description", "service_id", "steps", "tags", "complexity", "state"}


def _new_id() -> str:
    return uuid.uuid4().hex


def _number(raw: Mapping[str, Any], key: str, default: Any, kind: type) -> Any:
    value = raw.get(key)
    if value is None:
        return default
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number", field=key) from None


def build_items(payloads: Iterable[Mapping[str, Any]]) -> tuple[ChecklistItem, ...]:
    items: list[ChecklistItem] = []
    for index, raw in enumerate(payloads):
        items.append(
            ChecklistItem(
                item_id=str(raw.get("item_id") or _new_id()),
                title=require_text(raw.get("title"), "checklist item title"),
                order=_number(raw, "order", index + 1, int),
                description=raw.get("description"),
                is_optional=bool(raw.get("is_optional", False)),
            )
        )
    items.sort(key=lambda item: item.order)
    if len({item.item_id for item in items}) != len(items):
        raise ValidationError("checklist item ids must be unique within a step")
    return tuple(items)


def build_steps(payloads: Iterable[Mapping[str, Any]]) -> tuple[WorkflowStep, ...]:
    steps: list[WorkflowStep] = []
    for index, raw in enumerate(payloads):
        duration = _number(raw, "estimated_duration", 24.0, float)
        if duration < 0:
            raise ValidationError("estimated_duration cannot be negative", field="estimated_duration")
        steps.append(
            WorkflowStep(
                step_id=str(raw.get("step_id") or _new_id()),
                name=require_text(raw.get("name"), "step name"),
                order=_number(raw, "order", index + 1, int),
                estimated_duration=duration,
                description=raw.get("description"),
                checklist_items=build_items(raw.get("checklist_items") or []),
                required_documents=tuple(str(doc).strip() for doc in raw.get("required_documents") or [] if str(doc).strip()),
            )
        )
    steps.sort(key=lambda step: step.order)
    if len({step.step_id for step in steps}) != len(steps):
        raise ValidationError("step ids must be unique within a template")
    return tuple(steps)


def build_template(
    data: Mapping[str, Any],
    *,
    now: datetime,
    created_by: str | None = None,
) -> WorkflowTemplate:
    """Construct a template from a plain mapping; the total duration is computed here, on save."""

    complexity = str(data.get("complexity") or "medium")
    if complexity not in COMPLEXITY_LEVELS:
        raise ValidationError(f"complexity must be one of {sorted(COMPLEXITY_LEVELS)}", field="complexity")
    try:
        state = TemplateState(data.get("state") or TemplateState.ACTIVE)
    except ValueError:
        raise ValidationError(
            f"state must be one of {sorted(item.value for item in TemplateState)}", field="state"
        ) from None
    steps = build_steps(data.get("steps") or [])
    return WorkflowTemplate(
        template_id=str(data.get("template_id") or _new_id()),
        name=require_text(data.get("name"), "name"),
        service_id=require_text(data.get("service_id"), "service_id"),
        steps=steps,
        total_estimated_duration=total_duration(steps),
        created_at=now,
        updated_at=now,
        created_by=created_by,
        description=data.get("description"),
        state=state,
        version=str(data.get("version") or "1.0"),
        tags=tuple(str(tag) for tag in data.get("tags") or []),
        complexity=complexity,
    )


class WorkflowResolver:
    """Reads are plain lookups; the derived total is recomputed on every save."""

    def __init__(self, repository: WorkflowTemplateRepository, *, clock: Clock = utcnow) -> None:
        self._repository = repository
        self._clock = clock

    # ------------------------------------------------------------------
    # read path
    # ------------------------------------------------------------------
    async def resolve(self, template_id: str) -> WorkflowTemplate:
        template = await self._repository.get(template_id)
        if template is None:
            raise NotFoundError("workflow template not found", template_id=template_id)
        return template

    async def list_templates(
        self,
        *,
        service_id: str | None = None,
        state: TemplateState | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[WorkflowTemplate], int]:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        return await self._repository.list_templates(
            service_id=service_id,
            state=state,
            offset=(page - 1) * limit,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # template lifecycle
    # ------------------------------------------------------------------
    async def _ensure_unique_name(self, name: str, *, exclude_id: str | None = None) -> None:
        existing = await self._repository.find_by_name(name)
        if existing is not None and existing.template_id != exclude_id:
            raise ConflictError("a workflow template with this name already exists", name=name)

    async def create_template(self, data: Mapping[str, Any], actor: Actor) -> WorkflowTemplate:
        ensure_admin(actor, "create workflow templates")
        template = build_template(data, now=self._clock(), created_by=actor.user_id)
        if await self._repository.get(template.template_id) is not None:
            raise ConflictError("workflow template id already exists", template_id=template.template_id)
        await self._ensure_unique_name(template.name)
        return await self._repository.save(template)

    async def update_template(self, template_id: str, changes: Mapping[str, Any], actor: Actor) -> WorkflowTemplate:
        ensure_admin(actor, "update workflow templates")
        current = await self.resolve(template_id)
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"unknown template fields: {', '.join(sorted(unknown))}")

        merged: dict[str, Any] = {
            "template_id": current.template_id,
            "name": current.name,
            "service_id": current.service_id,
            "description": current.description,
            "state": current.state,
            "version": current.version,
            "tags": list(current.tags),
            "complexity": current.complexity,
            "steps": [_step_to_mapping(step) for step in current.steps],
        }
        merged.update({key: value for key, value in changes.items() if value is not None})
        rebuilt = build_template(merged, now=self._clock(), created_by=current.created_by)
        if rebuilt.name != current.name:
            await self._ensure_unique_name(rebuilt.name, exclude_id=current.template_id)
        updated = dataclasses.replace(rebuilt, created_at=current.created_at)
        return await self._repository.save(updated)

    async def archive_template(self, template_id: str, actor: Actor) -> WorkflowTemplate:
        ensure_admin(actor, "delete workflow templates")
        current = await self.resolve(template_id)
        archived = dataclasses.replace(current, state=TemplateState.ARCHIVED, updated_at=self._clock())
        return await self._repository.save(archived)

    async def clone_template(self, template_id: str, actor: Actor) -> WorkflowTemplate:
        ensure_admin(actor, "clone workflow templates")
        original = await self.resolve(template_id)
        now = self._clock()
        name = f"{original.name} (Copy)"
        suffix = 2
        while await self._repository.find_by_name(name) is not None:
            name = f"{original.name} (Copy {suffix})"
            suffix += 1
        tags = tuple(original.tags) + (() if "cloned" in original.tags else ("cloned",))
        clone = WorkflowTemplate(
            template_id=_new_id(),
            name=name,
            service_id=original.service_id,
            steps=build_steps(_step_to_mapping(step) for step in original.steps),
            total_estimated_duration=original.total_estimated_duration,
            created_at=now,
            updated_at=now,
            created_by=actor.user_id,
            description=original.description,
            state=TemplateState.ACTIVE,
            version="1.0",
            tags=tags,
            complexity=original.complexity,
        )
        return await self._repository.save(clone)


def _step_to_mapping(step: WorkflowStep) -> dict[str, Any]:
    return {
        "step_id": step.step_id,
        "name": step.name,
        "order": step.order,
        "estimated_duration": step.estimated_duration,
        "description": step.description,
        "required_documents": list(step.required_documents),
        "checklist_items": [
            {
                "item_id": item.item_id,
                "title": item.title,
                "order": item.order,
                "description": item.description,
                "is_optional": item.is_optional,
            }
            for item in step.checklist_items
        ],
    }
