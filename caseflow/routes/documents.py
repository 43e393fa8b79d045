from __future__ import annotations

from fastapi import APIRouter, Depends

from caseflow.application import get_engine
from caseflow.core.schema import UploadDocumentRequest, VerifyDocumentRequest
from caseflow.domain import Actor, FileMetadata, FileRef, VerificationStatus
from caseflow.routes.context import get_actor
from caseflow.routes.serialise import document_status_to_dict, to_jsonable

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("/upload", status_code=201)
async def upload_document(payload: UploadDocumentRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    version = await engine.documents.upload(
        payload.case_id,
        payload.document_type,
        FileRef(url=payload.file.url, provider_id=payload.file.provider_id),
        FileMetadata(
            original_name=payload.metadata.original_name,
            size=payload.metadata.size,
            mime_type=payload.metadata.mime_type,
            format=payload.metadata.format,
        ),
        actor,
        notes=payload.notes,
    )
    return {"version": to_jsonable(version)}


@router.get("/{case_id}/status")
async def get_document_status(case_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    entries, summary = await engine.documents.required_documents_status(case_id, actor)
    return document_status_to_dict(entries, summary)


@router.get("/{case_id}/{document_type}/versions")
async def list_versions(case_id: str, document_type: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    versions = await engine.documents.list_versions(case_id, document_type, actor)
    return {"items": to_jsonable(versions), "count": len(versions)}


@router.get("/version/{version_id}")
async def get_version(version_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    version = await engine.documents.get_version(version_id, actor)
    return {"version": to_jsonable(version)}


@router.put("/version/{version_id}/verify")
async def verify_version(version_id: str, payload: VerifyDocumentRequest, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    version = await engine.documents.verify(
        version_id,
        VerificationStatus(payload.verification_status),
        actor,
        reason=payload.rejection_reason,
    )
    return {"version": to_jsonable(version)}


@router.post("/version/{version_id}/restore", status_code=201)
async def restore_version(version_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    version = await engine.documents.restore(version_id, actor)
    return {"version": to_jsonable(version)}


@router.delete("/version/{version_id}")
async def delete_version(version_id: str, actor: Actor = Depends(get_actor)) -> dict:
    engine = get_engine()
    version = await engine.documents.delete(version_id, actor)
    return {"version": to_jsonable(version)}
