"""Persistence for the append-only document version chain."""
from __future__ import annotations

import asyncio
import copy
from datetime import datetime
from typing import Protocol

from caseflow.core.validation import ConflictError, NotFoundError
from caseflow.domain import DocumentVersion, VerificationStatus, VersionState


class DocumentVersionRepository(Protocol):
    """Persistence contract for document versions.

    ``insert_active`` is the compare-and-swap at the heart of versioning: it
    succeeds only while the highest stored version for the pair still equals
    ``expected_latest``, and demotes every previously active row in the same
    step, so readers never observe zero or two active rows.
    """

    async def latest_version(self, case_id: str, document_type: str) -> int: ...

    async def insert_active(self, version: DocumentVersion, *, expected_latest: int) -> DocumentVersion: ...

    async def get(self, version_id: str) -> DocumentVersion | None: ...

    async def list_versions(self, case_id: str, document_type: str) -> list[DocumentVersion]: ...

    async def list_active(self, case_id: str) -> list[DocumentVersion]: ...

    async def set_verification(
        self,
        version_id: str,
        *,
        outcome: VerificationStatus,
        verified_by: str | None,
        verified_at: datetime,
        rejection_reason: str | None,
    ) -> DocumentVersion: ...

    async def mark_deleted(self, version_id: str, *, deleted_by: str | None, deleted_at: datetime) -> DocumentVersion: ...


class InMemoryDocumentVersionRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._versions: dict[str, DocumentVersion] = {}
        self._chains: dict[tuple[str, str], list[str]] = {}

    def _require(self, version_id: str) -> DocumentVersion:
        version = self._versions.get(version_id)
        if version is None:
            raise NotFoundError("document version not found", version_id=version_id)
        return version

    def _chain(self, case_id: str, document_type: str) -> list[DocumentVersion]:
        return [self._versions[version_id] for version_id in self._chains.get((case_id, document_type), [])]

    async def latest_version(self, case_id: str, document_type: str) -> int:
        await asyncio.sleep(0)
        return max((item.version for item in self._chain(case_id, document_type)), default=0)

    async def insert_active(self, version: DocumentVersion, *, expected_latest: int) -> DocumentVersion:
        await asyncio.sleep(0)
        chain = self._chain(version.case_id, version.document_type)
        current = max((item.version for item in chain), default=0)
        if current != expected_latest or version.version != expected_latest + 1:
            raise ConflictError(
                "document version chain advanced concurrently",
                case_id=version.case_id,
                document_type=version.document_type,
                expected_latest=expected_latest,
                current_latest=current,
            )
        for item in chain:
            if item.status is VersionState.ACTIVE and item.version < version.version:
                item.status = VersionState.SUPERSEDED
        stored = copy.deepcopy(version)
        stored.status = VersionState.ACTIVE
        self._versions[stored.version_id] = stored
        self._chains.setdefault((stored.case_id, stored.document_type), []).append(stored.version_id)
        return copy.deepcopy(stored)

    async def get(self, version_id: str) -> DocumentVersion | None:
        await asyncio.sleep(0)
        version = self._versions.get(version_id)
        return copy.deepcopy(version) if version else None

    async def list_versions(self, case_id: str, document_type: str) -> list[DocumentVersion]:
        await asyncio.sleep(0)
        chain = sorted(self._chain(case_id, document_type), key=lambda item: item.version, reverse=True)
        return [copy.deepcopy(item) for item in chain]

    async def list_active(self, case_id: str) -> list[DocumentVersion]:
        await asyncio.sleep(0)
        active = [
            copy.deepcopy(item)
            for (chain_case, _), ids in self._chains.items()
            if chain_case == case_id
            for item in (self._versions[version_id] for version_id in ids)
            if item.status is VersionState.ACTIVE
        ]
        active.sort(key=lambda item: item.version, reverse=True)
        return active

    async def set_verification(
        self,
        version_id: str,
        *,
        outcome: VerificationStatus,
        verified_by: str | None,
        verified_at: datetime,
        rejection_reason: str | None,
    ) -> DocumentVersion:
        await asyncio.sleep(0)
        version = self._require(version_id)
        version.verification_status = outcome
        version.verified_by = verified_by
        version.verified_at = verified_at
        version.rejection_reason = rejection_reason
        return copy.deepcopy(version)

    async def mark_deleted(self, version_id: str, *, deleted_by: str | None, deleted_at: datetime) -> DocumentVersion:
        await asyncio.sleep(0)
        version = self._require(version_id)
        version.status = VersionState.DELETED
        version.deleted_by = deleted_by
        version.deleted_at = deleted_at
        return copy.deepcopy(version)
