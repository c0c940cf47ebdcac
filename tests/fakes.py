"""In-memory stand-ins for the File Store, Reference Store, locks and repair trigger."""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Set, Tuple

from core.path_codec import check_segment
from model.client import ClientRecord, DocumentReference, DocumentSlot, SlotMap
from util.errors import (
    FileMissingError,
    FilesystemError,
    NamespaceBusyError,
    NamespaceCollisionError,
    ReferenceWriteError,
)


def _parent(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


class MemoryFileStore:
    """Dict-backed FileStore. `writes` counts every mutating call that changed something."""

    def __init__(self) -> None:
        self.data: Dict[str, bytes] = {}
        self.dirs: Set[str] = {""}
        self.writes = 0
        self.fail_rename = False
        self.fail_copy_to: Set[str] = set()

    def _add_dirs(self, path: str) -> bool:
        created = False
        while path not in self.dirs:
            self.dirs.add(path)
            created = True
            path = _parent(path)
        return created

    def exists(self, path: str) -> bool:
        return path in self.data or path in self.dirs

    def mkdir_all(self, path: str) -> bool:
        created = self._add_dirs(path)
        if created:
            self.writes += 1
        return created

    def copy(self, src: str, dst: str) -> None:
        if src not in self.data:
            raise FileMissingError(f"copy source missing: {src}")
        if dst in self.fail_copy_to:
            raise FilesystemError(f"copy {src} -> {dst}: permission denied")
        self._add_dirs(_parent(dst))
        self.data[dst] = self.data[src]
        self.writes += 1

    def rename(self, src: str, dst: str) -> None:
        if not self.exists(src):
            raise FileMissingError(f"rename source missing: {src}")
        if self.fail_rename:
            raise FilesystemError(f"rename {src} -> {dst}: cross-device link")
        moved_files = {k: v for k, v in self.data.items() if k == src or k.startswith(src + "/")}
        moved_dirs = {d for d in self.dirs if d == src or d.startswith(src + "/")}
        for k in moved_files:
            del self.data[k]
        self.dirs -= moved_dirs
        for k, v in moved_files.items():
            self.data[dst + k[len(src):]] = v
        for d in moved_dirs:
            self.dirs.add(dst + d[len(src):])
        self._add_dirs(_parent(dst))
        self.writes += 1

    def write(self, path: str, data: bytes) -> None:
        self._add_dirs(_parent(path))
        self.data[path] = data
        self.writes += 1

    def read(self, path: str) -> bytes:
        if path not in self.data:
            raise FileMissingError(f"file missing: {path}")
        return self.data[path]

    def readdir(self, path: str) -> List[str]:
        prefix = f"{path}/" if path else ""
        names = {
            k[len(prefix):].split("/", 1)[0]
            for k in list(self.data) + list(self.dirs)
            if k and k.startswith(prefix) and k != path
        }
        return sorted(names)

    def remove(self, path: str) -> None:
        removed = False
        for k in [k for k in self.data if k == path or k.startswith(path + "/")]:
            del self.data[k]
            removed = True
        for d in [d for d in self.dirs if d and (d == path or d.startswith(path + "/"))]:
            self.dirs.discard(d)
            removed = True
        if removed:
            self.writes += 1


class MemoryReferenceStore:
    """Dict-backed ReferenceStore keeping insertion order for list()."""

    def __init__(self) -> None:
        self.records: Dict[str, ClientRecord] = {}
        self.writes = 0
        self.fail_slots: Set[Tuple[str, DocumentSlot]] = set()
        self.fail_list_from: Optional[int] = None

    def add(self, client_id: str, name: Optional[str] = None, **paths: str) -> ClientRecord:
        documents = {DocumentSlot(k): DocumentReference(storedPath=v) for k, v in paths.items()}
        record = ClientRecord(id=client_id, name=name, documents=documents)
        self.records[client_id] = record
        return record

    def path(self, client_id: str, slot: DocumentSlot) -> Optional[str]:
        ref = self.records[client_id].documents.get(slot)
        return ref.storedPath if ref else None

    async def create(
        self,
        *,
        name: Optional[str] = None,
        documents: Optional[SlotMap] = None,
        client_id: Optional[str] = None,
    ) -> ClientRecord:
        cid = client_id or f"C{len(self.records) + 1:08d}"
        check_segment(cid, "client id")
        if cid in self.records or cid.startswith(("temp-", "staging")):
            raise NamespaceCollisionError(f"client id {cid!r} not available")
        record = ClientRecord(id=cid, name=name, documents=dict(documents or {}))
        self.records[cid] = record
        return record.model_copy(deep=True)

    async def get(self, client_id: str) -> Optional[ClientRecord]:
        record = self.records.get(client_id)
        return record.model_copy(deep=True) if record else None

    async def set(self, client_id: str, slots: SlotMap) -> bool:
        record = self.records.get(client_id)
        if record is None:
            return False
        for slot, ref in slots.items():
            if (client_id, slot) in self.fail_slots:
                raise ReferenceWriteError(f"update client {client_id}: connection reset")
            if ref is None:
                record.documents.pop(slot, None)
            else:
                record.documents[slot] = ref
            self.writes += 1
        return True

    async def delete(self, client_id: str) -> bool:
        return self.records.pop(client_id, None) is not None

    async def list(self, offset: int = 0, limit: Optional[int] = None) -> List[ClientRecord]:
        if self.fail_list_from is not None and offset >= self.fail_list_from:
            raise ConnectionError("reference store unreachable")
        ids = list(self.records)
        end = None if limit is None else offset + limit
        return [self.records[i].model_copy(deep=True) for i in ids[offset:end]]


class MemoryLocks:
    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self.busy: Set[str] = set()
        self.acquired: List[Tuple[str, ...]] = []

    @asynccontextmanager
    async def hold(self, *namespace_ids: str):
        names = tuple(sorted(set(namespace_ids)))
        for ns in names:
            if ns in self.busy:
                raise NamespaceBusyError(f"namespace {ns} is locked by another operation")
        locks = [self._locks.setdefault(ns, asyncio.Lock()) for ns in names]
        for lock in locks:
            await lock.acquire()
        self.acquired.append(names)
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()


class RecordingTrigger:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.reasons: List[str] = []
        self.error = error

    async def fire(self, reason: str) -> None:
        self.reasons.append(reason)
        if self.error is not None:
            raise self.error
