"""Notification dispatch hooks.

The engine only triggers notifications; rendering and delivery belong to an
external notification service. Tests and local runs use the in-process
:class:`RecordingNotificationDispatcher`; deployments point
``NOTIFICATION_WEBHOOK_URL`` at the notification service and get the
:class:`WebhookNotificationDispatcher`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from caseflow.core.validation import DependencyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Notification:
    recipient_id: str
    title: str
    message: str
    related_case_id: str | None = None


class NotificationDispatcher(Protocol):
    """Contract for notification integrations."""

    async def notify(self, recipient_id: str, title: str, message: str, related_case_id: str | None = None) -> None:
        """Deliver one notification to ``recipient_id``."""


class RecordingNotificationDispatcher:
    """Keeps notifications in memory; used when no webhook is configured."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    async def notify(self, recipient_id: str, title: str, message: str, related_case_id: str | None = None) -> None:
        self.sent.append(Notification(recipient_id, title, message, related_case_id))


class WebhookNotificationDispatcher:
    """POSTs notifications as JSON to the external notification service."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url.startswith(("http://", "https://")):
            raise ValueError("notification url must include scheme and host")
        self._url = url
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def notify(self, recipient_id: str, title: str, message: str, related_case_id: str | None = None) -> None:
        body = {
            "recipient_id": recipient_id,
            "type": "in_app",
            "title": title,
            "message": message,
            "related_case_id": related_case_id,
        }
        try:
            response = await self._client.post(self._url, json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DependencyError("notification service request failed", reason=str(exc)) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def dispatch_quietly(
    dispatcher: NotificationDispatcher,
    recipient_id: str | None,
    title: str,
    message: str,
    related_case_id: str | None = None,
) -> bool:
    """Send a notification without letting a failure reach the caller."""

    if not recipient_id:
        return False
    try:
        await dispatcher.notify(recipient_id, title, message, related_case_id)
    except Exception:
        logger.exception("Notification to %s for case %s failed", recipient_id, related_case_id)
        return False
    return True
