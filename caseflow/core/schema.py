from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, constr

from caseflow.domain import CaseStatus, TemplateState


class CreateCaseRequest(BaseModel):
    end_user_id: constr(min_length=1)
    service_id: constr(min_length=1)


class AssignEmployeeRequest(BaseModel):
    employee_id: constr(min_length=1)


class AssignWorkflowRequest(BaseModel):
    template_id: constr(min_length=1)


class UpdateStatusRequest(BaseModel):
    status: CaseStatus
    current_step: int | None = Field(default=None, ge=0)


class ChecklistUpdateRequest(BaseModel):
    step_id: constr(min_length=1)
    item_id: constr(min_length=1)
    is_completed: bool


class InternalNoteRequest(BaseModel):
    note: constr(min_length=1, max_length=5000)


class FileRefPayload(BaseModel):
    url: constr(min_length=1)
    provider_id: constr(min_length=1)


class FileMetadataPayload(BaseModel):
    original_name: constr(min_length=1)
    size: int = Field(ge=0)
    mime_type: constr(min_length=1)
    format: str | None = None


class UploadDocumentRequest(BaseModel):
    case_id: constr(min_length=1)
    document_type: constr(min_length=1)
    file: FileRefPayload
    metadata: FileMetadataPayload
    notes: str | None = None


class VerifyDocumentRequest(BaseModel):
    verification_status: Literal["verified", "rejected"]
    rejection_reason: str | None = None


class ChecklistItemPayload(BaseModel):
    item_id: str | None = None
    title: constr(min_length=1)
    order: int | None = None
    description: str | None = None
    is_optional: bool = False


class WorkflowStepPayload(BaseModel):
    step_id: str | None = None
    name: constr(min_length=1)
    order: int | None = None
    estimated_duration: float = Field(default=24, ge=0)
    description: str | None = None
    checklist_items: list[ChecklistItemPayload] = Field(default_factory=list)
    required_documents: list[str] = Field(default_factory=list)


class WorkflowTemplateCreate(BaseModel):
    name: constr(min_length=1)
    service_id: constr(min_length=1)
    description: str | None = None
    steps: list[WorkflowStepPayload] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    complexity: Literal["simple", "medium", "complex"] = "medium"
    state: TemplateState = TemplateState.ACTIVE


class WorkflowTemplateUpdate(BaseModel):
    name: str | None = None
    service_id: str | None = None
    description: str | None = None
    steps: list[WorkflowStepPayload] | None = None
    tags: list[str] | None = None
    complexity: Literal["simple", "medium", "complex"] | None = None
    state: TemplateState | None = None
