"""Write-once storage for timeline events."""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Protocol

from caseflow.domain import EventType, TimelineEvent


class TimelineRepository(Protocol):
    async def append(self, event: TimelineEvent) -> TimelineEvent: ...

    async def query(
        self,
        case_id: str,
        *,
        visible_only: bool = False,
        event_type: EventType | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[TimelineEvent], int]: ...


class InMemoryTimelineRepository:
    """Events are frozen dataclasses, so they are stored and returned as-is."""

    def __init__(self) -> None:
        self._events: dict[str, list[TimelineEvent]] = {}
        self._sequence = 0

    async def append(self, event: TimelineEvent) -> TimelineEvent:
        await asyncio.sleep(0)
        self._sequence += 1
        stored = dataclasses.replace(event, sequence=self._sequence)
        self._events.setdefault(stored.case_id, []).append(stored)
        return stored

    async def query(
        self,
        case_id: str,
        *,
        visible_only: bool = False,
        event_type: EventType | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[TimelineEvent], int]:
        await asyncio.sleep(0)
        events = [
            event
            for event in self._events.get(case_id, [])
            if (not visible_only or event.is_visible_to_user)
            and (event_type is None or event.event_type == event_type)
        ]
        events.sort(key=lambda item: (item.created_at, item.sequence), reverse=True)
        return events[offset : offset + limit], len(events)
