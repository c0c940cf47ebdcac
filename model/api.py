# model/api.py
from pydantic import BaseModel, Field
from model.client import DocumentSlot
from model.drift import DriftRecord, RepairReport
from model.promotion import PromotionResult


class CreateClientResponse(BaseModel):
    id: str
    promotion: PromotionResult | None = None


class UploadDocumentResponse(BaseModel):
    documentUrl: str
    fileName: str
    fileType: str
    fileSize: int


class PromoteRequest(BaseModel):
    stagingId: str = Field(min_length=1)
    clientId: str = Field(min_length=1)
    slots: list[DocumentSlot] = Field(min_length=1)


class ScanRequest(BaseModel):
    offset: int = Field(default=0, ge=0)
    limit: int | None = Field(default=None, ge=1)


class RepairRequest(BaseModel):
    # Omit to repair from a fresh scan.
    driftRecords: list[DriftRecord] | None = None


class RepairResponse(BaseModel):
    ok: bool
    report: RepairReport


class UpdateDocumentsResponse(BaseModel):
    id: str
    documents: dict[DocumentSlot, UploadDocumentResponse]
