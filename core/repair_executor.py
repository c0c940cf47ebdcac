# core/repair_executor.py
import logging
from typing import Dict, Iterable, List, Optional
from config.settings import settings
from core.drift_scanner import DriftScanner
from core.path_codec import PathCodec
from core.placeholders import build_placeholder
from model.client import ClientRecord, DocumentReference
from model.drift import (
    DriftRecord,
    DriftStatus,
    RepairAction,
    RepairOutcome,
    RepairReport,
)
from repository.client_repository import ReferenceStore
from repository.file_store import FileStore
from repository.lock_repository import NamespaceLocks
from util.errors import DocumentSyncError, MalformedPathError, ReferenceWriteError
from util.timing import timed

logger = logging.getLogger(__name__)


class RepairExecutor:
    """
    Applies corrective actions for drift records, one client at a time under that
    client's namespace lock.

    Never deletes or moves a file: staging files are copied and left behind, lost
    files are only ever replaced by marked placeholders. Running it twice with no
    change in between writes nothing the second time.
    """

    def __init__(
        self,
        clients: ReferenceStore,
        files: FileStore,
        codec: PathCodec,
        locks: NamespaceLocks,
        scanner: DriftScanner,
        write_placeholders: bool = settings.REPAIR_WRITE_PLACEHOLDERS,
    ) -> None:
        self._clients = clients
        self._files = files
        self._codec = codec
        self._locks = locks
        self._scanner = scanner
        self._write_placeholders = write_placeholders

    async def repair(
        self,
        drift_records: Optional[Iterable[DriftRecord]] = None,
        *,
        only: Optional[set[DriftStatus]] = None,
    ) -> RepairReport:
        """
        Repair the given records, or everything a fresh scan finds.
        `only` restricts which statuses are acted on; the rest are counted as checked.
        """
        report = RepairReport()
        with timed(logger, "repair") as extra:
            if drift_records is None:
                scan = await self._scanner.scan()
                records = scan.records()
                report.createdDirectories += scan.createdDirectories
                report.errors.extend(scan.errors)
            else:
                records = list(drift_records)

            for client_id, group in _by_client(records).items():
                try:
                    async with self._locks.hold(client_id):
                        await self._repair_client(client_id, group, report, only)
                except Exception as e:
                    logger.error("repair.client.error client=%s err=%s", client_id, e)
                    report.errors.append(f"client {client_id}: {e}")

            extra.update(
                checked=report.checkedPaths,
                fixed=report.fixedPaths,
                placeholders=report.placeholders,
                errors=len(report.errors),
            )
        return report

    async def fix_prefixes(self) -> RepairReport:
        """Rewrite only paths that lost the root prefix; touches no files."""
        return await self.repair(only={DriftStatus.wrong_prefix})

    async def _repair_client(
        self,
        client_id: str,
        records: List[DriftRecord],
        report: RepairReport,
        only: Optional[set[DriftStatus]],
    ) -> None:
        client = await self._clients.get(client_id)
        for record in records:
            report.checkedPaths += 1
            if record.status is DriftStatus.ok:
                continue
            if only is not None and record.status not in only:
                continue
            if client is None:
                outcome = _outcome(record, RepairAction.failed, error="client not found")
            else:
                outcome = await self._apply(client, record, report)

            report.details.append(outcome)
            if outcome.action is RepairAction.failed:
                report.errors.append(
                    f"client {client_id} {record.slot.value}: {outcome.error}"
                )
            elif outcome.action in (RepairAction.placeholder, RepairAction.reported):
                report.manualFollowUp.append(outcome)

    async def _apply(
        self, client: ClientRecord, record: DriftRecord, report: RepairReport
    ) -> RepairOutcome:
        current = client.reference(record.slot)
        if current is None or current.storedPath != record.currentPath:
            logger.info(
                "repair.stale client=%s slot=%s", client.id, record.slot.value
            )
            return _outcome(
                record, RepairAction.skipped, error="reference changed since scan"
            )

        try:
            if record.status is DriftStatus.wrong_prefix:
                return await self._fix_prefix(client, record, report)
            if record.status is DriftStatus.temp_path:
                return await self._fix_temp_path(client, record, report)
            if record.status in (DriftStatus.missing_file, DriftStatus.missing_temp_file):
                return await self._substitute_placeholder(client, record, report)
            return _outcome(record, RepairAction.reported, error=record.error)
        except DocumentSyncError as e:
            logger.error(
                "repair.apply.error client=%s slot=%s status=%s err=%s",
                client.id,
                record.slot.value,
                record.status.value,
                e,
            )
            return _outcome(record, RepairAction.failed, error=str(e))

    async def _fix_prefix(
        self, client: ClientRecord, record: DriftRecord, report: RepairReport
    ) -> RepairOutcome:
        new_path = self._proposed(record)
        await self._write_reference(client, record, new_path)
        report.fixedPaths += 1
        logger.info(
            "repair.prefix client=%s slot=%s %s -> %s",
            client.id,
            record.slot.value,
            record.currentPath,
            new_path,
        )
        return _outcome(record, RepairAction.rewritten, new_path=new_path)

    async def _fix_temp_path(
        self, client: ClientRecord, record: DriftRecord, report: RepairReport
    ) -> RepairOutcome:
        new_path = self._proposed(record)
        source = self._codec.classify(record.currentPath).entry
        if source is None:
            raise MalformedPathError(f"not a staging path: {record.currentPath!r}")
        target = self._codec.decode(new_path)

        if self._files.mkdir_all(target.namespace):
            report.createdDirectories += 1
        action = RepairAction.rewritten
        if not self._files.exists(target.key):
            # Copy, never move: the staging file stays as the fallback.
            self._files.copy(source.key, target.key)
            action = RepairAction.copied
            logger.info("repair.copy %s -> %s", source.key, target.key)

        if record.currentPath != new_path:
            await self._write_reference(client, record, new_path)
        report.fixedPaths += 1
        return _outcome(record, action, new_path=new_path)

    async def _substitute_placeholder(
        self, client: ClientRecord, record: DriftRecord, report: RepairReport
    ) -> RepairOutcome:
        if not self._write_placeholders:
            return _outcome(record, RepairAction.reported, error=record.error)

        # missing-temp-file: the placeholder goes to the permanent location and the
        # reference follows it; missing-file: the reference stays as it is.
        if record.status is DriftStatus.missing_temp_file:
            new_path = self._proposed(record)
        else:
            new_path = record.currentPath
        target = self._codec.decode(new_path)

        if self._files.mkdir_all(target.namespace):
            report.createdDirectories += 1
        if not self._files.exists(target.key):
            data = build_placeholder(
                target.filename, client_id=client.id, slot=record.slot.value
            )
            self._files.write(target.key, data)
            report.placeholders += 1
            logger.warning(
                "repair.placeholder client=%s slot=%s file=%s",
                client.id,
                record.slot.value,
                target.key,
            )
        if new_path != record.currentPath:
            await self._write_reference(client, record, new_path)

        return _outcome(
            record,
            RepairAction.placeholder,
            new_path=new_path,
            error=record.error or "original document lost; placeholder written",
        )

    def _proposed(self, record: DriftRecord) -> str:
        if not record.proposedPath:
            raise ReferenceWriteError(f"no proposed path for {record.status.value}")
        # Round-trip through the codec so only canonical paths get written back.
        return self._codec.encode_entry(self._codec.decode(record.proposedPath))

    async def _write_reference(
        self, client: ClientRecord, record: DriftRecord, new_path: str
    ) -> None:
        ref = DocumentReference(storedPath=new_path)
        if not await self._clients.set(client.id, {record.slot: ref}):
            raise ReferenceWriteError(f"client {client.id} no longer exists")
        client.documents[record.slot] = ref


def _by_client(records: Iterable[DriftRecord]) -> Dict[str, List[DriftRecord]]:
    grouped: Dict[str, List[DriftRecord]] = {}
    for record in records:
        grouped.setdefault(record.clientId, []).append(record)
    return grouped


def _outcome(
    record: DriftRecord,
    action: RepairAction,
    *,
    new_path: Optional[str] = None,
    error: Optional[str] = None,
) -> RepairOutcome:
    return RepairOutcome(
        clientId=record.clientId,
        slot=record.slot,
        status=record.status,
        action=action,
        oldPath=record.currentPath,
        newPath=new_path,
        error=error,
    )
