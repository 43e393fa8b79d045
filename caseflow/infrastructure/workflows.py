"""Persistence for workflow templates."""
from __future__ import annotations

import asyncio
from typing import Iterable, Protocol

from caseflow.domain import TemplateState, WorkflowTemplate


class WorkflowTemplateRepository(Protocol):
    async def save(self, template: WorkflowTemplate) -> WorkflowTemplate: ...

    async def get(self, template_id: str) -> WorkflowTemplate | None: ...

    async def find_by_name(self, name: str) -> WorkflowTemplate | None: ...

    async def list_templates(
        self,
        *,
        service_id: str | None = None,
        state: TemplateState | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[WorkflowTemplate], int]: ...


class InMemoryWorkflowTemplateRepository:
    """Templates are frozen, so storing the instance never aliases mutable state."""

    def __init__(self, templates: Iterable[WorkflowTemplate] = ()) -> None:
        self._templates: dict[str, WorkflowTemplate] = {template.template_id: template for template in templates}

    async def save(self, template: WorkflowTemplate) -> WorkflowTemplate:
        await asyncio.sleep(0)
        self._templates[template.template_id] = template
        return template

    async def get(self, template_id: str) -> WorkflowTemplate | None:
        await asyncio.sleep(0)
        return self._templates.get(template_id)

    async def find_by_name(self, name: str) -> WorkflowTemplate | None:
        await asyncio.sleep(0)
        wanted = name.strip().lower()
        for template in self._templates.values():
            if template.state is not TemplateState.ARCHIVED and template.name.strip().lower() == wanted:
                return template
        return None

    async def list_templates(
        self,
        *,
        service_id: str | None = None,
        state: TemplateState | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[WorkflowTemplate], int]:
        await asyncio.sleep(0)
        items = [
            template
            for template in self._templates.values()
            if (service_id is None or template.service_id == service_id)
            and (state is None or template.state is state)
        ]
        items.sort(key=lambda item: item.created_at, reverse=True)
        return items[offset : offset + limit], len(items)
