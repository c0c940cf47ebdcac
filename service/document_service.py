# service/document_service.py
import logging
from typing import List, Mapping, Optional
from core.entities import FileEntry, IncomingDocument
from core.path_codec import PathCodec
from core.promotion import PromotionCoordinator
from core.repair_trigger import RepairTrigger
from core.staging import StagingNamespaceManager
from model.api import CreateClientResponse, UpdateDocumentsResponse, UploadDocumentResponse
from model.client import ClientRecord, DocumentReference, DocumentSlot, SlotMap
from repository.client_repository import ClientRepository
from repository.file_store import FileStore
from repository.lock_repository import NamespaceLocks
from util import functions
from util.constants import CONTENT_TYPES
from util.errors import (
    ClientNotFoundError,
    DocumentSyncError,
    FileMissingError,
    InvalidDocumentError,
    MalformedPathError,
    NamespaceCollisionError,
    to_app_error,
)

logger = logging.getLogger(__name__)


class DocumentService:
    """
    Upload intake: stores incoming bytes, keeps the client's slot references in
    step and hands promotion over to the coordinator.
    """

    def __init__(
        self,
        clients: ClientRepository,
        files: FileStore,
        codec: PathCodec,
        locks: NamespaceLocks,
        staging: StagingNamespaceManager,
        promotion: PromotionCoordinator,
        trigger: RepairTrigger,
    ) -> None:
        self._clients = clients
        self._files = files
        self._codec = codec
        self._locks = locks
        self._staging = staging
        self._promotion = promotion
        self._trigger = trigger

    async def create_client_with_documents(
        self,
        *,
        name: Optional[str],
        documents: Mapping[DocumentSlot, IncomingDocument],
        client_id: Optional[str] = None,
    ) -> CreateClientResponse:
        """
        No client id exists yet, so files go to a fresh staging namespace first;
        the record is created pointing there and then promoted.
        Logs: staging id, client id, slot count (no payloads).
        """
        try:
            if client_id is not None:
                # Refuse unusable ids before anything is staged or stored.
                self._codec.encode(client_id, "probe")
                if self._codec.is_staging_id(client_id):
                    raise NamespaceCollisionError(
                        f"client id {client_id!r} looks like a staging namespace"
                    )

            if not documents:
                client = await self._clients.create(name=name, client_id=client_id)
                return CreateClientResponse(id=client.id)

            staging_id = self._staging.allocate()
            paths = {}
            for slot, doc in documents.items():
                entry = self._staging.write(staging_id, slot, doc.data, doc.filename)
                paths[DocumentSlot(slot)] = DocumentReference(
                    storedPath=self._codec.encode_entry(entry)
                )

            client = await self._clients.create(
                name=name, documents=paths, client_id=client_id
            )
            logger.info(
                "client.documents.staged client=%s staging=%s slots=%d",
                client.id,
                staging_id,
                len(paths),
            )
            promotion = await self._promotion.promote(staging_id, client.id, paths.keys())
        except DocumentSyncError as e:
            logger.error("client.create.error err=%s", e)
            raise to_app_error(e)
        return CreateClientResponse(id=client.id, promotion=promotion)

    async def upload_document(
        self, client_id: str, slot: DocumentSlot, doc: IncomingDocument
    ) -> UploadDocumentResponse:
        """Write straight into the client's namespace and replace the slot wholesale."""
        try:
            written = await self._replace_documents(client_id, {slot: doc})
        except DocumentSyncError as e:
            logger.error("document.upload.error client=%s slot=%s err=%s", client_id, slot.value, e)
            raise to_app_error(e)

        logger.info(
            "document.upload.ok client=%s slot=%s bytes=%d", client_id, slot.value, len(doc.data)
        )
        await self._fire_trigger(f"upload:{client_id}")
        return self._upload_response(written[slot], doc)

    async def update_client_documents(
        self, client_id: str, documents: Mapping[DocumentSlot, IncomingDocument]
    ) -> UpdateDocumentsResponse:
        """Replace several slots in one go; the repair trigger fires once afterwards."""
        try:
            if not documents:
                raise InvalidDocumentError("no documents to update")
            written = await self._replace_documents(client_id, documents)
        except DocumentSyncError as e:
            logger.error("client.documents.update.error client=%s err=%s", client_id, e)
            raise to_app_error(e)

        logger.info("client.documents.update.ok client=%s slots=%d", client_id, len(written))
        await self._fire_trigger(f"update:{client_id}")
        return UpdateDocumentsResponse(
            id=client_id,
            documents={
                slot: self._upload_response(entry, documents[slot])
                for slot, entry in written.items()
            },
        )

    async def delete_document(self, client_id: str, slot: DocumentSlot) -> None:
        try:
            async with self._locks.hold(client_id):
                client = await self._require_client(client_id)
                ref = client.reference(slot)
                if ref is None:
                    raise FileMissingError(f"{slot.value} of client {client_id}")
                self._discard(ref.storedPath)
                if not await self._clients.set(client_id, {slot: None}):
                    raise ClientNotFoundError(client_id)
        except DocumentSyncError as e:
            raise to_app_error(e)
        logger.info("document.delete.ok client=%s slot=%s", client_id, slot.value)

    async def delete_client(self, client_id: str) -> None:
        """
        Remove the client's files, its namespace directory and then the record.
        Files still referenced in a staging namespace go too; files in another
        client's namespace are left alone.
        """
        try:
            async with self._locks.hold(client_id):
                client = await self._require_client(client_id)
                for _, ref in client.filled_slots():
                    entry = self._codec.classify(ref.storedPath).entry
                    if entry is not None and self._codec.is_staging_id(entry.namespace):
                        self._discard_entries([entry])
                self._files.remove(client.id)
                if not await self._clients.delete(client.id):
                    raise ClientNotFoundError(client_id)
        except DocumentSyncError as e:
            logger.error("client.delete.error client=%s err=%s", client_id, e)
            raise to_app_error(e)
        logger.info("client.delete.ok client=%s documents=%d", client_id, len(client.filled_slots()))

    async def open_document(
        self, client_id: str, slot: DocumentSlot
    ) -> tuple[bytes, str, str]:
        """Returns (bytes, content type, download filename)."""
        try:
            client = await self._require_client(client_id)
            ref = client.reference(slot)
            if ref is None:
                raise FileMissingError(f"{slot.value} of client {client_id}")
            entry = self._codec.classify(ref.storedPath).entry
            if entry is None:
                raise MalformedPathError(ref.storedPath)
            data = self._files.read(entry.key)
        except DocumentSyncError as e:
            raise to_app_error(e)

        ext = functions.extension_of(entry.filename)
        name = functions.download_filename(client.name, slot.display_name, entry.filename)
        return data, CONTENT_TYPES.get(ext, "application/octet-stream"), name

    async def _replace_documents(
        self, client_id: str, documents: Mapping[DocumentSlot, IncomingDocument]
    ) -> dict[DocumentSlot, FileEntry]:
        """
        Under the client lock: write every file into the client namespace, swap all
        slot references in one write, then drop the files they used to point at.
        Files written before a failure are removed again.
        """
        async with self._locks.hold(client_id):
            client = await self._require_client(client_id)
            written: dict[DocumentSlot, FileEntry] = {}
            try:
                for slot, doc in documents.items():
                    slot = DocumentSlot(slot)
                    written[slot] = self._staging.write(client_id, slot, doc.data, doc.filename)
                refs: SlotMap = {
                    slot: DocumentReference(storedPath=self._codec.encode_entry(entry))
                    for slot, entry in written.items()
                }
                if not await self._clients.set(client_id, refs):
                    raise ClientNotFoundError(client_id)
            except DocumentSyncError:
                self._discard_entries(list(written.values()))
                raise

            for slot, ref in refs.items():
                old = client.reference(slot)
                if old is not None and old.storedPath != ref.storedPath:
                    self._discard(old.storedPath)
        return written

    async def _require_client(self, client_id: str) -> ClientRecord:
        client = await self._clients.get(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    def _upload_response(self, entry: FileEntry, doc: IncomingDocument) -> UploadDocumentResponse:
        ext = functions.extension_of(entry.filename)
        return UploadDocumentResponse(
            documentUrl=self._codec.encode_entry(entry),
            fileName=entry.filename,
            fileType=CONTENT_TYPES.get(ext, "application/octet-stream"),
            fileSize=len(doc.data),
        )

    def _discard(self, stored_path: str) -> None:
        # Best effort: a reference being replaced or cleared may already be dangling.
        entry = self._codec.classify(stored_path).entry
        if entry is not None:
            self._discard_entries([entry])

    def _discard_entries(self, entries: List[FileEntry]) -> None:
        for entry in entries:
            try:
                self._files.remove(entry.key)
            except DocumentSyncError as e:
                logger.warning("document.discard.error file=%s err=%s", entry.key, e)

    async def _fire_trigger(self, reason: str) -> None:
        try:
            await self._trigger.fire(reason=reason)
        except Exception as e:
            logger.error("document.trigger.error reason=%s err=%s", reason, e)
