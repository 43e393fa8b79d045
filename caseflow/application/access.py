"""Relationship checks between an actor and a case."""
from __future__ import annotations

from caseflow.core.validation import ForbiddenError
from caseflow.domain import Actor, Case, Role


def is_assignee(actor: Actor, case: Case) -> bool:
    return actor.role is Role.EMPLOYEE and bool(case.employee_id) and case.employee_id == actor.user_id


def is_owner(actor: Actor, case: Case) -> bool:
    return actor.role is Role.END_USER and case.end_user_id == actor.user_id


def can_manage(actor: Actor, case: Case) -> bool:
    return actor.is_admin or is_assignee(actor, case)


def can_view(actor: Actor, case: Case) -> bool:
    return can_manage(actor, case) or is_owner(actor, case)


def ensure_can_manage(actor: Actor, case: Case, action: str) -> None:
    if not can_manage(actor, case):
        raise ForbiddenError(f"Not authorized to {action}", case_id=case.case_id)


def ensure_can_view(actor: Actor, case: Case, action: str = "view this case") -> None:
    if not can_view(actor, case):
        raise ForbiddenError(f"Not authorized to {action}", case_id=case.case_id)


def ensure_admin(actor: Actor, action: str) -> None:
    if not (actor.is_admin or actor.role is Role.SYSTEM):
        raise ForbiddenError(f"Only administrators may {action}")
