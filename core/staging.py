# core/staging.py
import logging
from uuid import uuid4
from config.settings import settings
from core.entities import FileEntry
from core.path_codec import PathCodec
from model.client import DocumentSlot
from repository.file_store import FileStore
from util.errors import InvalidDocumentError, NamespaceCollisionError
from util.functions import extension_of

logger = logging.getLogger(__name__)

_MAX_ALLOCATE_ATTEMPTS = 5


class StagingNamespaceManager:
    """
    Hands out pre-identity namespaces and writes uploaded bytes into namespaces.

    Staging namespaces are never reclaimed here; a staging namespace nobody
    promoted shows up in scans as temp-path / missing-temp-file residue.
    """

    def __init__(
        self,
        files: FileStore,
        codec: PathCodec,
        prefix: str = settings.STAGING_PREFIXES[0],
        allowed_extensions: tuple[str, ...] = settings.ALLOWED_EXTENSIONS,
    ) -> None:
        if not codec.is_staging_id(f"{prefix}x"):
            raise ValueError(f"staging prefix {prefix!r} is not recognised by the codec")
        self._files = files
        self._codec = codec
        self._prefix = prefix
        self._allowed = tuple(e.lower() for e in allowed_extensions)

    def allocate(self) -> str:
        for _ in range(_MAX_ALLOCATE_ATTEMPTS):
            namespace_id = f"{self._prefix}{uuid4()}"
            # mkdir_all reports False when the directory was already there
            if self._files.mkdir_all(namespace_id):
                logger.info("staging.allocate ns=%s", namespace_id)
                return namespace_id
            logger.warning("staging.allocate.collision ns=%s", namespace_id)
        raise NamespaceCollisionError("could not allocate a fresh staging namespace")

    def write(
        self, namespace_id: str, slot: DocumentSlot, data: bytes, filename: str
    ) -> FileEntry:
        """Store `data` as <slot>-<uuid4>.<ext> inside `namespace_id`, <ext> taken from `filename`."""
        ext = extension_of(filename)
        if ext not in self._allowed:
            raise InvalidDocumentError(
                f"extension {ext or '(none)'} not allowed; expected one of {', '.join(self._allowed)}"
            )
        slot = DocumentSlot(slot)
        entry = FileEntry(namespace_id, f"{slot.value}-{uuid4()}.{ext}")
        # Validates both segments before anything touches disk.
        self._codec.encode_entry(entry)
        self._files.mkdir_all(namespace_id)
        self._files.write(entry.key, data)
        logger.info(
            "staging.write ns=%s slot=%s file=%s bytes=%d",
            namespace_id,
            slot.value,
            entry.filename,
            len(data),
        )
        return entry
