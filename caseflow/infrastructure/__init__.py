"""Infrastructure layer exports."""

from .cases import CaseRepository, InMemoryCaseRepository
from .documents import DocumentVersionRepository, InMemoryDocumentVersionRepository
from .notifications import (
    Notification,
    NotificationDispatcher,
    RecordingNotificationDispatcher,
    WebhookNotificationDispatcher,
    dispatch_quietly,
)
from .services import InMemoryServiceCatalog, ServiceCatalog
from .timeline import InMemoryTimelineRepository, TimelineRepository
from .workflows import InMemoryWorkflowTemplateRepository, WorkflowTemplateRepository

__all__ = [
    "CaseRepository",
    "DocumentVersionRepository",
    "InMemoryCaseRepository",
    "InMemoryDocumentVersionRepository",
    "InMemoryServiceCatalog",
    "InMemoryTimelineRepository",
    "InMemoryWorkflowTemplateRepository",
    "Notification",
    "NotificationDispatcher",
    "RecordingNotificationDispatcher",
    "ServiceCatalog",
    "TimelineRepository",
    "WebhookNotificationDispatcher",
    "WorkflowTemplateRepository",
    "dispatch_quietly",
]
