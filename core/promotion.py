# core/promotion.py
import logging
from typing import Iterable, Literal
from config.settings import settings
from core.entities import PathKind
from core.path_codec import PathCodec
from core.repair_trigger import NullRepairTrigger, RepairTrigger
from model.client import ClientRecord, DocumentReference, DocumentSlot
from model.promotion import PromotionResult, SlotPromotion
from repository.client_repository import ReferenceStore
from repository.file_store import FileStore
from repository.lock_repository import NamespaceLocks
from util.errors import (
    ClientNotFoundError,
    DocumentSyncError,
    FilesystemError,
    NamespaceCollisionError,
)
from util.timing import timed

logger = logging.getLogger(__name__)

ExistingPolicy = Literal["purge", "reject"]


class PromotionCoordinator:
    """
    Binds a staging namespace to a freshly created client.

    Flow (both namespaces locked):
    1) Clear the way: an existing client directory with files is purged
       (policy "purge", logged) or refused (policy "reject"). Never merged.
    2) Relocate: one directory rename, or copy every file then remove the sources.
    3) Point each affected slot at the client namespace, one write per slot.
    4) Verify each rewritten path resolves to a file on disk.
    Locks are released before the repair trigger fires. Nothing is rolled back:
    a half-finished promotion is left for the scanner to find.
    """

    def __init__(
        self,
        clients: ReferenceStore,
        files: FileStore,
        codec: PathCodec,
        locks: NamespaceLocks,
        trigger: RepairTrigger | None = None,
        existing_policy: ExistingPolicy = settings.PROMOTION_EXISTING_POLICY,
    ) -> None:
        self._clients = clients
        self._files = files
        self._codec = codec
        self._locks = locks
        self._trigger = trigger or NullRepairTrigger()
        self._existing_policy = existing_policy

    async def promote(
        self, staging_id: str, client_id: str, slots: Iterable[DocumentSlot]
    ) -> PromotionResult:
        if not self._codec.is_staging_id(staging_id):
            raise NamespaceCollisionError(f"{staging_id!r} is not a staging namespace")
        if self._codec.is_staging_id(client_id):
            raise NamespaceCollisionError(f"client id {client_id!r} looks like a staging namespace")
        # Both ids must be usable as path segments.
        self._codec.encode(staging_id, "probe")
        self._codec.encode(client_id, "probe")
        wanted = list(dict.fromkeys(DocumentSlot(s) for s in slots))

        result = PromotionResult(clientId=client_id, stagingId=staging_id)
        async with self._locks.hold(staging_id, client_id):
            with timed(logger, "promote", client=client_id, staging=staging_id) as extra:
                client = await self._clients.get(client_id)
                if client is None:
                    raise ClientNotFoundError(f"client {client_id} not found")

                relocation_error = None
                try:
                    result.relocation = self._relocate(staging_id, client_id)
                except NamespaceCollisionError:
                    raise
                except DocumentSyncError as e:
                    logger.error(
                        "promote.relocate.error client=%s staging=%s err=%s",
                        client_id,
                        staging_id,
                        e,
                    )
                    relocation_error = str(e)

                for slot in wanted:
                    if relocation_error is not None:
                        # References stay on the staging paths so the scanner can heal them.
                        status = SlotPromotion(status="failed", error=relocation_error)
                    else:
                        status = await self._promote_slot(client, slot, staging_id)
                    result.perSlotStatus[slot] = status

                result.allFilesUpdated = all(
                    s.status == "updated" for s in result.perSlotStatus.values()
                )
                extra.update(
                    relocation=result.relocation,
                    slots=len(wanted),
                    ok=result.allFilesUpdated,
                )

        if not result.allFilesUpdated:
            logger.warning(
                "promote.incomplete client=%s staging=%s", client_id, staging_id
            )
        await self._fire_trigger(client_id)
        return result

    def _relocate(self, staging_id: str, client_id: str) -> Literal["rename", "copy", "none"]:
        if not self._files.exists(staging_id):
            logger.error("promote.staging.missing staging=%s", staging_id)
            self._files.mkdir_all(client_id)
            return "none"

        if self._files.exists(client_id):
            existing = self._files.readdir(client_id)
            if existing and self._existing_policy == "reject":
                raise NamespaceCollisionError(
                    f"namespace {client_id} already holds {len(existing)} file(s)"
                )
            if existing:
                logger.warning(
                    "promote.namespace.purge client=%s files=%d",
                    client_id,
                    len(existing),
                )
            self._files.remove(client_id)

        try:
            self._files.rename(staging_id, client_id)
            logger.info("promote.rename %s -> %s", staging_id, client_id)
            return "rename"
        except FilesystemError as e:
            logger.warning("promote.rename.fallback staging=%s err=%s", staging_id, e)

        names = self._files.readdir(staging_id)
        self._files.mkdir_all(client_id)
        for name in names:
            self._files.copy(f"{staging_id}/{name}", f"{client_id}/{name}")
        # Sources go only after every copy landed.
        for name in names:
            self._files.remove(f"{staging_id}/{name}")
        self._files.remove(staging_id)
        logger.info("promote.copy %s -> %s files=%d", staging_id, client_id, len(names))
        return "copy"

    async def _promote_slot(
        self, client: ClientRecord, slot: DocumentSlot, staging_id: str
    ) -> SlotPromotion:
        ref = client.reference(slot)
        if ref is None:
            return SlotPromotion(status="skipped", error="no document reference")

        cls = self._codec.classify(ref.storedPath)
        if cls.kind is PathKind.STAGING_RESIDUE and cls.namespace == staging_id:
            new_path = self._codec.encode(client.id, cls.filename)
        elif cls.kind is PathKind.CANONICAL and cls.namespace == client.id:
            new_path = ref.storedPath  # already promoted
        else:
            return SlotPromotion(
                status="skipped",
                path=ref.storedPath,
                error=f"reference does not belong to {staging_id}",
            )

        try:
            if new_path != ref.storedPath:
                new_ref = DocumentReference(storedPath=new_path)
                if not await self._clients.set(client.id, {slot: new_ref}):
                    return SlotPromotion(
                        status="failed", path=ref.storedPath, error="client record vanished"
                    )
                client.documents[slot] = new_ref
                logger.info(
                    "promote.path client=%s slot=%s %s -> %s",
                    client.id,
                    slot.value,
                    ref.storedPath,
                    new_path,
                )
            entry = self._codec.decode(new_path)
            if not self._files.exists(entry.key):
                logger.error("promote.verify.missing client=%s file=%s", client.id, entry.key)
                return SlotPromotion(
                    status="missing", path=new_path, error=f"File not found: {entry.key}"
                )
        except DocumentSyncError as e:
            return SlotPromotion(status="failed", path=ref.storedPath, error=str(e))
        return SlotPromotion(status="updated", path=new_path)

    async def _fire_trigger(self, client_id: str) -> None:
        try:
            await self._trigger.fire(reason=f"promote:{client_id}")
        except Exception as e:
            logger.error("promote.trigger.error client=%s err=%s", client_id, e)
