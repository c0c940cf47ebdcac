# service/maintenance_service.py
import asyncio
import logging
from typing import Iterable, Optional
from core.drift_scanner import DriftScanner
from core.promotion import PromotionCoordinator
from core.repair_executor import RepairExecutor
from model.client import DocumentSlot
from model.drift import DriftRecord, RepairReport, ScanReport
from model.promotion import PromotionResult
from util.errors import DocumentSyncError, to_app_error

logger = logging.getLogger(__name__)


class MaintenanceService:
    """
    On-demand entry points for promotion, drift scans and repairs.
    Domain errors become AppError here; partial failures stay inside the reports.
    """

    def __init__(
        self,
        promotion: PromotionCoordinator,
        scanner: DriftScanner,
        executor: RepairExecutor,
    ) -> None:
        self._promotion = promotion
        self._scanner = scanner
        self._executor = executor

    async def promote(
        self, staging_id: str, client_id: str, slots: Iterable[DocumentSlot]
    ) -> PromotionResult:
        try:
            return await self._promotion.promote(staging_id, client_id, slots)
        except DocumentSyncError as e:
            logger.error("promote.error client=%s staging=%s err=%s", client_id, staging_id, e)
            raise to_app_error(e)

    async def scan(
        self,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> ScanReport:
        return await self._scanner.scan(offset=offset, limit=limit, cancel=cancel)

    async def repair(self, records: Optional[Iterable[DriftRecord]] = None) -> RepairReport:
        report = await self._executor.repair(records)
        if report.errors:
            logger.warning("repair.partial errors=%d", len(report.errors))
        return report

    async def fix_paths(self) -> RepairReport:
        return await self._executor.fix_prefixes()
