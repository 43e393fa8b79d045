"""Append-only document version chain entities."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class VersionState(str, Enum):
    ACTIVE = "active"
    SUPERSEDED = "superseded"
    DELETED = "deleted"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class FileRef:
    """Durable reference into the external object store."""

    url: str
    provider_id: str


@dataclass(frozen=True, slots=True)
class FileMetadata:
    original_name: str
    size: int
    mime_type: str
    format: str | None = None


@dataclass(slots=True)
class DocumentVersion:
    version_id: str
    case_id: str
    document_type: str
    version: int
    file_ref: FileRef
    file_metadata: FileMetadata
    uploaded_by: str | None
    uploader_role: str
    created_at: datetime
    status: VersionState = VersionState.ACTIVE
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verified_by: str | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    notes: str | None = None
    restored_from: int | None = None
    deleted_by: str | None = None
    deleted_at: datetime | None = None


@dataclass(slots=True)
class DocumentStatusEntry:
    """Required-document completeness for one document type."""

    document_type: str
    is_uploaded: bool
    latest: DocumentVersion | None = None

    @property
    def verification_status(self) -> VerificationStatus | None:
        return self.latest.verification_status if self.latest else None


@dataclass(slots=True)
class DocumentStatusSummary:
    total: int
    uploaded: int
    verified: int
    pending: int
    rejected: int

    @property
    def all_uploaded(self) -> bool:
        return self.uploaded == self.total

    @property
    def all_verified(self) -> bool:
        return self.verified == self.total

    @classmethod
    def from_entries(cls, entries: list[DocumentStatusEntry]) -> "DocumentStatusSummary":
        statuses = [entry.verification_status for entry in entries if entry.is_uploaded]
        return cls(
            total=len(entries),
            uploaded=len(statuses),
            verified=statuses.count(VerificationStatus.VERIFIED),
            pending=statuses.count(VerificationStatus.PENDING),
            rejected=statuses.count(VerificationStatus.REJECTED),
        )
