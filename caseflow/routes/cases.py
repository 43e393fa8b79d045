from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from caseflow.application import get_engine
from caseflow.core.schema import (
    AssignEmployeeRequest,
    AssignWorkflowRequest,
    ChecklistUpdateRequest,
    CreateCaseRequest,
    InternalNoteRequest,
    UpdateStatusRequest,
)
from caseflow.domain import Actor, EventType
from caseflow.routes.context import get_actor
from caseflow.routes.serialise import case_to_dict, checklist_to_dict, event_to_dict, timeline_page_to_dict

router = APIRouter(prefix="/cases", tags=["cases"])


@router.post("", status_code=201)
async def create_case(payload: CreateCaseRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    case = await engine.cases.create_case(payload.end_user_id, payload.service_id, actor)
    return {"case": case_to_dict(case)}


@router.get("/{case_id}")
async def get_case(case_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    case = await engine.cases.get_case_for(case_id, actor)
    return {"case": case_to_dict(case)}


@router.post("/{case_id}/assign")
async def assign_employee(case_id: str, payload: AssignEmployeeRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    case = await engine.cases.assign_employee(case_id, payload.employee_id, actor)
    return {"case": case_to_dict(case)}


@router.post("/{case_id}/workflow")
async def assign_workflow(case_id: str, payload: AssignWorkflowRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    case = await engine.cases.assign_workflow(case_id, payload.template_id, actor)
    return {"case": case_to_dict(case)}


@router.put("/{case_id}/status")
async def update_status(case_id: str, payload: UpdateStatusRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    case = await engine.cases.update_status(case_id, payload.status, actor, current_step=payload.current_step)
    return {"case": case_to_dict(case)}


@router.post("/{case_id}/reopen")
async def reopen_case(case_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    case = await engine.cases.reopen_case(case_id, actor)
    return {"case": case_to_dict(case)}


@router.put("/{case_id}/checklist")
async def update_checklist(case_id: str, payload: ChecklistUpdateRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    await engine.cases.update_checklist_progress(
        case_id,
        payload.step_id,
        payload.item_id,
        payload.is_completed,
        actor,
    )
    progress = await engine.cases.get_checklist_progress(case_id, actor)
    return checklist_to_dict(progress)


@router.get("/{case_id}/checklist")
async def get_checklist(case_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    progress = await engine.cases.get_checklist_progress(case_id, actor)
    return checklist_to_dict(progress)


@router.post("/{case_id}/notes", status_code=201)
async def add_internal_note(case_id: str, payload: InternalNoteRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    event = await engine.cases.add_internal_note(case_id, payload.note, actor)
    return {"event": event_to_dict(event) if event else None}


@router.get("/{case_id}/timeline")
async def get_timeline(
    case_id: str,
    event_type: EventType | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
) -> dict:
    engine = get_engine()
    result = await engine.cases.get_timeline(case_id, actor, event_type=event_type, page=page, limit=limit)
    return timeline_page_to_dict(result)


@router.get("/{case_id}/timeline/internal")
async def get_internal_timeline(
    case_id: str,
    event_type: EventType | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
) -> dict:
    engine = get_engine()
    result = await engine.cases.get_timeline(
        case_id,
        actor,
        internal=True,
        event_type=event_type,
        page=page,
        limit=limit,
    )
    return timeline_page_to_dict(result)
