"""Persistence for the case aggregate."""
from __future__ import annotations

import asyncio
import copy
from typing import Any, Iterable, Mapping, Protocol

from caseflow.core.validation import ConflictError, NotFoundError
from caseflow.domain import Case, ChecklistEntry, SLAStatus


class CaseRepository(Protocol):
    """Persistence contract for cases.

    ``update`` writes only the named fields and, when ``expected_revision`` is
    given, only if the stored revision still matches. Checklist upserts,
    activity touches and SLA writes are field-level and never bump the
    revision, so they do not collide with status changes.
    """

    async def add(self, case: Case) -> None: ...

    async def get(self, case_id: str) -> Case | None: ...

    async def get_by_number(self, case_number: str) -> Case | None: ...

    async def update(
        self,
        case_id: str,
        changes: Mapping[str, Any],
        *,
        expected_revision: int | None = None,
    ) -> Case: ...

    async def upsert_checklist_entry(self, case_id: str, entry: ChecklistEntry, *, activity_at: Any) -> Case: ...

    async def touch(self, case_id: str, at: Any) -> bool: ...

    async def set_sla_status(
        self,
        case_id: str,
        *,
        expected: SLAStatus,
        new_status: SLAStatus,
        expected_deadline: Any,
    ) -> bool: ...

    async def list_open_with_deadline(self) -> list[Case]: ...

    async def list_open_by_sla_status(self, statuses: Iterable[SLAStatus]) -> list[Case]: ...


class InMemoryCaseRepository:
    """In-memory repository; every call yields to the event loop once like real I/O."""

    def __init__(self) -> None:
        self._cases: dict[str, Case] = {}

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _require(self, case_id: str) -> Case:
        case = self._cases.get(case_id)
        if case is None:
            raise NotFoundError("case not found", case_id=case_id)
        return case

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    async def get(self, case_id: str) -> Case | None:
        await asyncio.sleep(0)
        case = self._cases.get(case_id)
        return copy.deepcopy(case) if case else None

    async def get_by_number(self, case_number: str) -> Case | None:
        await asyncio.sleep(0)
        for case in self._cases.values():
            if case.case_number == case_number:
                return copy.deepcopy(case)
        return None

    async def list_open_with_deadline(self) -> list[Case]:
        await asyncio.sleep(0)
        return [
            copy.deepcopy(case)
            for case in self._cases.values()
            if case.is_open and case.sla_deadline is not None
        ]

    async def list_open_by_sla_status(self, statuses: Iterable[SLAStatus]) -> list[Case]:
        await asyncio.sleep(0)
        wanted = set(statuses)
        matches = [copy.deepcopy(case) for case in self._cases.values() if case.is_open and case.sla_status in wanted]
        matches.sort(key=lambda item: (item.sla_deadline is None, item.sla_deadline))
        return matches

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    async def add(self, case: Case) -> None:
        await asyncio.sleep(0)
        if case.case_id in self._cases:
            raise ConflictError("case already exists", case_id=case.case_id)
        self._cases[case.case_id] = copy.deepcopy(case)

    async def update(
        self,
        case_id: str,
        changes: Mapping[str, Any],
        *,
        expected_revision: int | None = None,
    ) -> Case:
        await asyncio.sleep(0)
        case = self._require(case_id)
        if expected_revision is not None and case.revision != expected_revision:
            raise ConflictError(
                "case was modified concurrently, reload and retry",
                case_id=case_id,
                expected_revision=expected_revision,
                current_revision=case.revision,
            )
        for name, value in changes.items():
            setattr(case, name, copy.deepcopy(value))
        case.revision += 1
        return copy.deepcopy(case)

    async def upsert_checklist_entry(self, case_id: str, entry: ChecklistEntry, *, activity_at: Any) -> Case:
        await asyncio.sleep(0)
        case = self._require(case_id)
        case.checklist_progress[(entry.step_id, entry.item_id)] = copy.deepcopy(entry)
        case.last_activity_at = activity_at
        return copy.deepcopy(case)

    async def touch(self, case_id: str, at: Any) -> bool:
        await asyncio.sleep(0)
        case = self._cases.get(case_id)
        if case is None:
            return False
        case.last_activity_at = at
        return True

    async def set_sla_status(
        self,
        case_id: str,
        *,
        expected: SLAStatus,
        new_status: SLAStatus,
        expected_deadline: Any,
    ) -> bool:
        await asyncio.sleep(0)
        case = self._cases.get(case_id)
        if case is None or not case.is_open:
            return False
        if case.sla_status != expected or case.sla_deadline != expected_deadline:
            return False
        case.sla_status = new_status
        return True
