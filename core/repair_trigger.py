# core/repair_trigger.py
import logging
from typing import TYPE_CHECKING, Protocol
import httpx
from config.settings import settings

if TYPE_CHECKING:
    from core.repair_executor import RepairExecutor

logger = logging.getLogger(__name__)


class RepairTrigger(Protocol):
    """Kicks off a full repair pass after documents were written."""

    async def fire(self, reason: str) -> None: ...


class NullRepairTrigger:
    async def fire(self, reason: str) -> None:
        logger.debug("repair.trigger.skip reason=%s", reason)


class InlineRepairTrigger:
    """Runs the repair pass in-process and waits for it."""

    def __init__(self, executor: "RepairExecutor") -> None:
        self._executor = executor

    async def fire(self, reason: str) -> None:
        report = await self._executor.repair()
        logger.info(
            "repair.trigger.inline reason=%s fixed=%d dirs=%d errors=%d",
            reason,
            report.fixedPaths,
            report.createdDirectories,
            len(report.errors),
        )


class HttpRepairTrigger:
    """POSTs to a repair endpoint, e.g. another instance of this service."""

    def __init__(
        self,
        url: str = settings.REPAIR_TRIGGER_URL,
        timeout_seconds: float = settings.REPAIR_TRIGGER_TIMEOUT_SECONDS,
    ) -> None:
        self._url = url
        self._timeout = httpx.Timeout(timeout_seconds, connect=5.0)

    async def fire(self, reason: str) -> None:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            res = await client.post(self._url, json={})
            res.raise_for_status()
        try:
            body = res.json()
        except ValueError:
            body = {}
        report = body.get("report") or {}
        logger.info(
            "repair.trigger.http reason=%s status=%d fixed=%s",
            reason,
            res.status_code,
            report.get("fixedPaths"),
        )
