"""Read-only view of the external service catalogue."""
from __future__ import annotations

import asyncio
from typing import Iterable, Protocol

from caseflow.domain import ServiceDefinition


class ServiceCatalog(Protocol):
    async def get_service(self, service_id: str) -> ServiceDefinition | None: ...


class InMemoryServiceCatalog:
    def __init__(self, services: Iterable[ServiceDefinition] = ()) -> None:
        self._services = {service.service_id: service for service in services}

    async def get_service(self, service_id: str) -> ServiceDefinition | None:
        await asyncio.sleep(0)
        return self._services.get(service_id)
