# model/drift.py
from enum import Enum
from pydantic import BaseModel, Field
from model.client import DocumentSlot


class DriftStatus(str, Enum):
    ok = "ok"
    temp_path = "temp-path"
    missing_temp_file = "missing-temp-file"
    wrong_prefix = "wrong-prefix"
    missing_file = "missing-file"
    error = "error"

    @property
    def fixable(self) -> bool:
        return self in (DriftStatus.temp_path, DriftStatus.wrong_prefix)


class DriftRecord(BaseModel):
    clientId: str
    slot: DocumentSlot
    status: DriftStatus
    currentPath: str
    proposedPath: str | None = None
    error: str | None = None


class ClientScanDetail(BaseModel):
    clientId: str
    clientName: str | None = None
    documents: list[DriftRecord] = Field(default_factory=list)
    missingFiles: int = 0
    tempFiles: int = 0


class ScanReport(BaseModel):
    totalClients: int = 0
    checkedDocuments: int = 0
    missingFiles: int = 0
    tempFiles: int = 0
    createdDirectories: int = 0
    cancelled: bool = False
    # Offset to resume from when the scan stopped early (limit reached or cancelled).
    nextOffset: int | None = None
    errors: list[str] = Field(default_factory=list)
    details: list[ClientScanDetail] = Field(default_factory=list)

    def records(self) -> list[DriftRecord]:
        return [r for d in self.details for r in d.documents]


class RepairAction(str, Enum):
    rewritten = "rewritten"
    copied = "copied"
    placeholder = "placeholder"
    skipped = "skipped"
    reported = "reported"
    failed = "failed"


class RepairOutcome(BaseModel):
    clientId: str
    slot: DocumentSlot
    status: DriftStatus
    action: RepairAction
    oldPath: str
    newPath: str | None = None
    error: str | None = None


class RepairReport(BaseModel):
    checkedPaths: int = 0
    fixedPaths: int = 0
    createdDirectories: int = 0
    placeholders: int = 0
    manualFollowUp: list[RepairOutcome] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    details: list[RepairOutcome] = Field(default_factory=list)
