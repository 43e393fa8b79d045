"""Document Version Store: append-only version chains with verification state."""
from __future__ import annotations

import logging
import uuid
from typing import Iterable

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from caseflow.application.access import can_manage, ensure_can_manage, ensure_can_view, is_owner
from caseflow.application.cases import CaseStore
from caseflow.application.timeline import TimelineRecorder, describe
from caseflow.core.clock import Clock, utcnow
from caseflow.core.validation import ConflictError, ForbiddenError, NotFoundError, ValidationError, require_text
from caseflow.domain import (
    Actor,
    Case,
    DocumentChange,
    DocumentStatusEntry,
    DocumentStatusSummary,
    DocumentVersion,
    EventType,
    FileMetadata,
    FileRef,
    VerificationChange,
    VerificationStatus,
    VersionState,
)
from caseflow.infrastructure import DocumentVersionRepository, ServiceCatalog

logger = logging.getLogger(__name__)


class DocumentVersionStore:
    """Owns document version rows; other components only read them.

    New versions are written with the repository's compare-and-swap
    ``insert_active``. When another writer advanced the chain first the
    attempt is retried against the fresh latest version.
    """

    def __init__(
        self,
        repository: DocumentVersionRepository,
        *,
        cases: CaseStore,
        catalog: ServiceCatalog,
        timeline: TimelineRecorder,
        clock: Clock = utcnow,
        max_attempts: int = 5,
    ) -> None:
        self._repository = repository
        self._cases = cases
        self._catalog = catalog
        self._timeline = timeline
        self._clock = clock
        self._max_attempts = max_attempts

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    async def _required_types(self, case: Case) -> tuple[str, ...]:
        service = await self._catalog.get_service(case.service_id)
        return service.documents_required if service else ()

    async def _require_version(self, version_id: str) -> DocumentVersion:
        version = await self._repository.get(version_id)
        if version is None:
            raise NotFoundError("document version not found", version_id=version_id)
        return version

    async def _append_version(
        self,
        case_id: str,
        document_type: str,
        *,
        file_ref: FileRef,
        file_metadata: FileMetadata,
        actor: Actor,
        notes: str | None = None,
        restored_from: int | None = None,
    ) -> DocumentVersion:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(ConflictError),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.01, max=0.2),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                latest = await self._repository.latest_version(case_id, document_type)
                candidate = DocumentVersion(
                    version_id=uuid.uuid4().hex,
                    case_id=case_id,
                    document_type=document_type,
                    version=latest + 1,
                    file_ref=file_ref,
                    file_metadata=file_metadata,
                    uploaded_by=actor.user_id,
                    uploader_role=actor.role.value,
                    created_at=self._clock(),
                    notes=notes,
                    restored_from=restored_from,
                )
                return await self._repository.insert_active(candidate, expected_latest=latest)
        raise ConflictError("document version chain could not be extended", case_id=case_id)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    async def upload(
        self,
        case_id: str,
        document_type: str,
        file_ref: FileRef,
        file_metadata: FileMetadata,
        actor: Actor,
        notes: str | None = None,
    ) -> DocumentVersion:
        case = await self._cases.get_case(case_id)
        if not (can_manage(actor, case) or is_owner(actor, case)):
            raise ForbiddenError("Not authorized to upload documents for this case", case_id=case_id)
        document_type = require_text(document_type, "document_type")
        required = await self._required_types(case)
        if document_type not in required:
            raise ValidationError(
                f"{document_type} is not a required document for this service",
                field="document_type",
                allowed=list(required),
            )

        version = await self._append_version(
            case_id,
            document_type,
            file_ref=file_ref,
            file_metadata=file_metadata,
            actor=actor,
            notes=notes,
        )
        await self._timeline.append(
            case_id,
            EventType.DOCUMENT_UPLOADED,
            actor=actor,
            description=describe(EventType.DOCUMENT_UPLOADED, document_type=document_type, version=version.version),
            payload=DocumentChange(document_type=document_type, version=version.version),
        )
        await self._cases.record_activity(case_id)
        logger.info("Stored %s v%d for case %s", document_type, version.version, case_id)
        return version

    async def verify(
        self,
        version_id: str,
        outcome: VerificationStatus,
        actor: Actor,
        reason: str | None = None,
    ) -> DocumentVersion:
        version = await self._require_version(version_id)
        case = await self._cases.get_case(version.case_id)
        ensure_can_manage(actor, case, "verify this document")
        if outcome is VerificationStatus.PENDING:
            raise ValidationError("outcome must be verified or rejected", field="outcome")
        if version.status is VersionState.DELETED:
            raise ValidationError("deleted versions cannot be verified", version_id=version_id)
        reason = (reason or "").strip() or None
        if outcome is VerificationStatus.REJECTED and reason is None:
            raise ValidationError("a rejection reason is required", field="rejection_reason")

        updated = await self._repository.set_verification(
            version_id,
            outcome=outcome,
            verified_by=actor.user_id,
            verified_at=self._clock(),
            rejection_reason=reason if outcome is VerificationStatus.REJECTED else None,
        )
        if outcome is VerificationStatus.VERIFIED:
            event_type = EventType.DOCUMENT_VERIFIED
            description = describe(event_type, document_type=version.document_type, verifier_name=actor.display_name)
        else:
            event_type = EventType.DOCUMENT_REJECTED
            description = describe(event_type, document_type=version.document_type, reason=reason)
        await self._timeline.append(
            version.case_id,
            event_type,
            actor=actor,
            description=description,
            payload=VerificationChange(
                document_type=version.document_type,
                version=version.version,
                outcome=outcome.value,
                rejection_reason=updated.rejection_reason,
            ),
        )
        await self._cases.record_activity(version.case_id)
        return updated

    async def restore(self, version_id: str, actor: Actor) -> DocumentVersion:
        """Append a new active version pointing at an older version's file."""

        old = await self._require_version(version_id)
        case = await self._cases.get_case(old.case_id)
        ensure_can_manage(actor, case, "restore this document")

        restored = await self._append_version(
            old.case_id,
            old.document_type,
            file_ref=old.file_ref,
            file_metadata=old.file_metadata,
            actor=actor,
            notes=f"Restored from version {old.version}",
            restored_from=old.version,
        )
        await self._timeline.append(
            old.case_id,
            EventType.DOCUMENT_UPLOADED,
            actor=actor,
            title="Document Restored",
            description=f"{old.document_type} restored from version {old.version} (Version {restored.version})",
            payload=DocumentChange(
                document_type=old.document_type,
                version=restored.version,
                restored_from=old.version,
            ),
            visible_to_user=False,
        )
        await self._cases.record_activity(old.case_id)
        return restored

    async def delete(self, version_id: str, actor: Actor) -> DocumentVersion:
        version = await self._require_version(version_id)
        case = await self._cases.get_case(version.case_id)
        ensure_can_manage(actor, case, "delete this document")
        if version.status is VersionState.DELETED:
            raise ValidationError("document version is already deleted", version_id=version_id)

        deleted = await self._repository.mark_deleted(version_id, deleted_by=actor.user_id, deleted_at=self._clock())
        await self._timeline.append(
            version.case_id,
            EventType.DOCUMENT_DELETED,
            actor=actor,
            description=describe(EventType.DOCUMENT_DELETED, document_type=version.document_type, version=version.version),
            payload=DocumentChange(document_type=version.document_type, version=version.version),
            visible_to_user=False,
        )
        await self._cases.record_activity(version.case_id)
        return deleted

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    async def get_version(self, version_id: str, actor: Actor) -> DocumentVersion:
        version = await self._require_version(version_id)
        case = await self._cases.get_case(version.case_id)
        ensure_can_view(actor, case, "view this document")
        return version

    async def list_versions(self, case_id: str, document_type: str, actor: Actor) -> list[DocumentVersion]:
        await self._cases.get_case_for(case_id, actor, "view document history")
        return await self._repository.list_versions(case_id, document_type)

    async def get_document_status(self, case_id: str, required_types: Iterable[str]) -> list[DocumentStatusEntry]:
        active = {version.document_type: version for version in await self._repository.list_active(case_id)}
        return [
            DocumentStatusEntry(
                document_type=document_type,
                is_uploaded=document_type in active,
                latest=active.get(document_type),
            )
            for document_type in required_types
        ]

    async def required_documents_status(
        self,
        case_id: str,
        actor: Actor,
    ) -> tuple[list[DocumentStatusEntry], DocumentStatusSummary]:
        case = await self._cases.get_case_for(case_id, actor, "view document status")
        entries = await self.get_document_status(case_id, await self._required_types(case))
        return entries, DocumentStatusSummary.from_entries(entries)

