from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from caseflow.application import Engine, build_engine, configure_engine, reset_engine_state
from caseflow.core.settings import Settings
from caseflow.domain import Actor, Case, Role
from caseflow.infrastructure import RecordingNotificationDispatcher

T0 = datetime(2025, 1, 6, 9, 0, tzinfo=timezone.utc)

ADMIN = Actor("admin-1", Role.ADMIN, "Ada Admin")
EMPLOYEE = Actor("emp-1", Role.EMPLOYEE, "Eli Employee")
OTHER_EMPLOYEE = Actor("emp-2", Role.EMPLOYEE, "Kit Employee")
OWNER = Actor("user-1", Role.END_USER, "Uri User")
STRANGER = Actor("user-2", Role.END_USER, "Sam Stranger")

TRADEMARK_TEMPLATE = "trademark-standard"


class FrozenClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture(autouse=True)
def reset_state():
    reset_engine_state()
    yield
    reset_engine_state()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def notifier() -> RecordingNotificationDispatcher:
    return RecordingNotificationDispatcher()


@pytest.fixture()
def engine(clock, notifier) -> Engine:
    built = build_engine(Settings(sla_sweep_enabled=False), clock=clock, notifier=notifier)
    configure_engine(built)
    return built


async def open_case(engine: Engine, *, template_id: str | None = TRADEMARK_TEMPLATE) -> Case:
    """Create a trademark case for OWNER, assigned to EMPLOYEE, with an optional workflow."""

    case = await engine.cases.create_case(OWNER.user_id, "trademark", ADMIN)
    case = await engine.cases.assign_employee(case.case_id, EMPLOYEE.user_id, ADMIN)
    if template_id:
        case = await engine.cases.assign_workflow(case.case_id, template_id, EMPLOYEE)
    return case
