from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from caseflow.application import get_engine
from caseflow.application.access import ensure_admin
from caseflow.domain import Actor, Role, SLAStatus
from caseflow.routes.context import get_actor
from caseflow.routes.serialise import to_jsonable

router = APIRouter(prefix="/sla", tags=["sla"])


@router.get("/alerts")
async def get_sla_alerts(
    status: SLAStatus | None = Query(default=None),
    actor: Actor = Depends(get_actor),
) -> dict:
    engine = get_engine()
    cases = await engine.sweeper.get_alerts(status)
    if actor.role is Role.EMPLOYEE:
        # employees see alerts for their own cases only
        cases = [case for case in cases if case.employee_id == actor.user_id]
    else:
        ensure_admin(actor, "view SLA alerts")
    items = [
        {
            "case_id": case.case_id,
            "case_number": case.case_number,
            "employee_id": case.employee_id,
            "status": case.status.value,
            "sla_status": case.sla_status.value,
            "sla_deadline": to_jsonable(case.sla_deadline),
            "hours_remaining": engine.sla.hours_remaining(case.sla_deadline),
        }
        for case in cases
    ]
    return {"items": items, "count": len(items)}


@router.post("/sweep")
async def run_sla_sweep(actor: Actor = Depends(get_actor)) -> dict:
    ensure_admin(actor, "run the SLA sweep")
    engine = get_engine()
    result = await engine.sweeper.sweep()
    return to_jsonable(result)
