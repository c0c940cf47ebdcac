# core/drift_scanner.py
import asyncio
import logging
from typing import Optional
from config.settings import settings
from core.entities import PathKind
from core.path_codec import PathCodec
from model.client import ClientRecord, DocumentSlot
from model.drift import ClientScanDetail, DriftRecord, DriftStatus, ScanReport
from repository.client_repository import ReferenceStore
from repository.file_store import FileStore
from util.errors import DocumentSyncError
from util.timing import timed

logger = logging.getLogger(__name__)


class DriftScanner:
    """
    Read-only pass comparing every stored document reference with the disk.

    The only side effect is creating a missing client namespace directory; the
    reference store is never written. Clients are read in pages of `page_size`.
    """

    def __init__(
        self,
        clients: ReferenceStore,
        files: FileStore,
        codec: PathCodec,
        page_size: int = settings.SCAN_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._clients = clients
        self._files = files
        self._codec = codec
        self._page_size = page_size

    async def scan(
        self,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> ScanReport:
        """
        Scan up to `limit` clients starting at `offset`.

        `cancel` is checked between clients only; when it is set, or when `limit`
        stops the scan before the end, `nextOffset` tells where to resume.
        Failing to read the first page raises; a later page failure ends the scan
        early and keeps what was gathered.
        """
        report = ScanReport()
        position = offset
        with timed(logger, "scan", offset=offset) as extra:
            while limit is None or report.totalClients < limit:
                want = self._page_size
                if limit is not None:
                    want = min(want, limit - report.totalClients)
                try:
                    page = await self._clients.list(position, want)
                except Exception as e:
                    if position == offset:
                        raise
                    logger.error("scan.page.error offset=%d err=%s", position, e)
                    report.errors.append(f"listing clients at offset {position}: {e}")
                    report.nextOffset = position
                    break

                for client in page:
                    if cancel is not None and cancel.is_set():
                        report.cancelled = True
                        report.nextOffset = position
                        break
                    self._scan_client(client, report)
                    position += 1
                if report.cancelled or len(page) < want:
                    break
            else:
                report.nextOffset = position

            extra.update(
                clients=report.totalClients,
                documents=report.checkedDocuments,
                missing=report.missingFiles,
                temp=report.tempFiles,
                cancelled=report.cancelled,
            )
        return report

    def _scan_client(self, client: ClientRecord, report: ScanReport) -> None:
        report.totalClients += 1
        try:
            if self._files.mkdir_all(client.id):
                report.createdDirectories += 1
                logger.info("scan.mkdir client=%s", client.id)
        except DocumentSyncError as e:
            logger.error("scan.mkdir.error client=%s err=%s", client.id, e)
            report.errors.append(f"client {client.id}: cannot create directory: {e}")

        detail = ClientScanDetail(clientId=client.id, clientName=client.name)
        for slot, ref in client.filled_slots():
            report.checkedDocuments += 1
            record = self.inspect(client.id, slot, ref.storedPath)
            if record.status in (DriftStatus.temp_path, DriftStatus.missing_temp_file):
                report.tempFiles += 1
                detail.tempFiles += 1
            if record.status in (DriftStatus.missing_file, DriftStatus.missing_temp_file):
                report.missingFiles += 1
                detail.missingFiles += 1
            if record.status is not DriftStatus.ok:
                logger.info(
                    "scan.drift client=%s slot=%s status=%s",
                    client.id,
                    slot.value,
                    record.status.value,
                )
            detail.documents.append(record)

        if detail.documents:
            report.details.append(detail)

    def inspect(self, client_id: str, slot: DocumentSlot, path: str) -> DriftRecord:
        """Classify one stored path against the disk."""
        record = DriftRecord(
            clientId=client_id, slot=slot, status=DriftStatus.error, currentPath=path
        )
        cls = self._codec.classify(path)
        try:
            if cls.kind is PathKind.MALFORMED:
                record.error = f"Malformed path: {cls.reason}"
            elif cls.kind is PathKind.STAGING_RESIDUE:
                record.proposedPath = self._codec.encode(client_id, cls.filename)
                if self._files.exists(cls.entry.key):
                    record.status = DriftStatus.temp_path
                else:
                    record.status = DriftStatus.missing_temp_file
                    record.error = f"Temp file not found: {cls.entry.key}"
            elif cls.kind is PathKind.LEGACY_MISSING_ROOT:
                record.status = DriftStatus.wrong_prefix
                record.proposedPath = self._codec.encode(cls.namespace, cls.filename)
            elif self._files.exists(cls.entry.key):
                record.status = DriftStatus.ok
            else:
                record.status = DriftStatus.missing_file
                record.error = f"File not found: {cls.entry.key}"
        except DocumentSyncError as e:
            record.status = DriftStatus.error
            record.error = str(e)
        return record
