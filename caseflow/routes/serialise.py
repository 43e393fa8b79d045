"""JSON-ready views of domain objects for the HTTP layer."""
from __future__ import annotations

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Any

from caseflow.application import ChecklistProgress, TimelinePage
from caseflow.domain import Case, DocumentStatusEntry, DocumentStatusSummary, TimelineEvent


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {item.name: to_jsonable(getattr(value, item.name)) for item in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def case_to_dict(case: Case) -> dict[str, Any]:
    data = to_jsonable(case)
    data["checklist_progress"] = [
        to_jsonable(entry)
        for _, entry in sorted(case.checklist_progress.items(), key=lambda pair: pair[0])
    ]
    return data


def event_to_dict(event: TimelineEvent) -> dict[str, Any]:
    data = to_jsonable(event)
    if event.payload is not None:
        data["payload"] = {"kind": event.payload.kind, **to_jsonable(event.payload)}
    return data


def timeline_page_to_dict(page: TimelinePage) -> dict[str, Any]:
    pages = (page.total + page.limit - 1) // page.limit
    return {
        "items": [event_to_dict(event) for event in page.items],
        "pagination": {"page": page.page, "limit": page.limit, "total": page.total, "pages": pages},
    }


def checklist_to_dict(progress: ChecklistProgress) -> dict[str, Any]:
    steps = []
    for step in progress.steps:
        entry = to_jsonable(step)
        entry["is_completed"] = step.is_completed
        steps.append(entry)
    return {
        "case_id": progress.case_id,
        "workflow_template_id": progress.workflow_template_id,
        "current_step": progress.current_step,
        "steps": steps,
        "summary": {
            "total_items": progress.total_items,
            "completed_items": progress.completed_items,
            "required_items": progress.required_items,
            "completed_required_items": progress.completed_required_items,
            "percent_complete": progress.percent_complete,
        },
    }


def document_status_to_dict(entries: list[DocumentStatusEntry], summary: DocumentStatusSummary) -> dict[str, Any]:
    return {
        "documents": [
            {
                "document_type": entry.document_type,
                "is_uploaded": entry.is_uploaded,
                "verification_status": to_jsonable(entry.verification_status),
                "latest_version": to_jsonable(entry.latest),
            }
            for entry in entries
        ],
        "summary": {
            **to_jsonable(summary),
            "all_uploaded": summary.all_uploaded,
            "all_verified": summary.all_verified,
        },
    }
