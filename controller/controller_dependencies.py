# controller/controller_dependencies.py
from fastapi import File, HTTPException, Request, UploadFile
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from core.drift_scanner import DriftScanner
from core.path_codec import PathCodec
from core.promotion import PromotionCoordinator
from core.repair_executor import RepairExecutor
from core.repair_trigger import (
    HttpRepairTrigger,
    InlineRepairTrigger,
    NullRepairTrigger,
    RepairTrigger,
)
from core.staging import StagingNamespaceManager
from repository.client_repository import ClientRepository
from repository.file_store import LocalFileStore
from repository.lock_repository import NamespaceLockRepository
from service.document_service import DocumentService
from service.maintenance_service import MaintenanceService

rate_limit = RateLimiter(times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS)


def build_trigger(executor: RepairExecutor) -> RepairTrigger:
    if settings.REPAIR_TRIGGER == "http":
        return HttpRepairTrigger()
    if settings.REPAIR_TRIGGER == "none":
        return NullRepairTrigger()
    return InlineRepairTrigger(executor)


def _core():
    _clients = ClientRepository()
    _files = LocalFileStore(settings.DOCUMENTS_DIR)
    _codec = PathCodec()
    _locks = NamespaceLockRepository()
    _scanner = DriftScanner(_clients, _files, _codec)
    _executor = RepairExecutor(_clients, _files, _codec, _locks, _scanner)
    _trigger = build_trigger(_executor)
    _promotion = PromotionCoordinator(_clients, _files, _codec, _locks, _trigger)
    return _clients, _files, _codec, _locks, _scanner, _executor, _trigger, _promotion


def get_document_service() -> DocumentService:
    _clients, _files, _codec, _locks, _, _, _trigger, _promotion = _core()
    _staging = StagingNamespaceManager(_files, _codec)
    return DocumentService(_clients, _files, _codec, _locks, _staging, _promotion, _trigger)


def get_maintenance_service() -> MaintenanceService:
    _, _, _, _, _scanner, _executor, _, _promotion = _core()
    return MaintenanceService(_promotion, _scanner, _executor)


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=413,
        detail={
            "ok": False,
            "error": "file_too_large",
            "maxMb": settings.MAX_FILE_MB,
        },
    )


async def read_capped(upload: UploadFile) -> bytes:
    """Read an upload, refusing anything above MAX_FILE_MB."""
    max_bytes = settings.MAX_FILE_MB * 1024 * 1024
    blob = await upload.read(max_bytes + 1)
    if len(blob) > max_bytes:
        raise _too_large()
    return blob


async def enforce_max_upload_size(
    request: Request, document: UploadFile = File(...)
) -> UploadFile:
    # Fast pre-check via Content-Length if present
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > settings.MAX_FILE_MB * 1024 * 1024:
        raise _too_large()
    await read_capped(document)
    # Reset so downstream can re-read file stream
    await document.seek(0)
    return document
