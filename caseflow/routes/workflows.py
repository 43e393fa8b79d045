from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from caseflow.application import get_engine
from caseflow.core.schema import WorkflowTemplateCreate, WorkflowTemplateUpdate
from caseflow.domain import Actor, TemplateState
from caseflow.routes.context import get_actor
from caseflow.routes.serialise import to_jsonable

router = APIRouter(prefix="/workflow-templates", tags=["workflow-templates"])


@router.get("")
async def list_templates(
    service_id: str | None = Query(default=None),
    state: TemplateState | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    actor: Actor = Depends(get_actor),
) -> dict:
    engine = get_engine()
    items, total = await engine.workflows.list_templates(service_id=service_id, state=state, page=page, limit=limit)
    return {
        "items": to_jsonable(items),
        "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
    }


@router.post("", status_code=201)
async def create_template(payload: WorkflowTemplateCreate, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    template = await engine.workflows.create_template(payload.model_dump(), actor)
    return {"template": to_jsonable(template)}


@router.get("/{template_id}")
async def get_template(template_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    template = await engine.workflows.resolve(template_id)
    return {"template": to_jsonable(template)}


@router.put("/{template_id}")
async def update_template(
    template_id: str,
    payload: WorkflowTemplateUpdate,
    actor: Actor = Depends(get_actor),
) -> dict:
    engine = get_engine()
    template = await engine.workflows.update_template(template_id, payload.model_dump(exclude_unset=True), actor)
    return {"template": to_jsonable(template)}


@router.delete("/{template_id}")
async def archive_template(template_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    template = await engine.workflows.archive_template(template_id, actor)
    return {"template": to_jsonable(template)}


@router.post("/{template_id}/clone", status_code=201)
async def clone_template(template_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    template = await engine.workflows.clone_template(template_id, actor)
    return {"template": to_jsonable(template)}
