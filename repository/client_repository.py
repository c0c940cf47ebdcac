# repository/client_repository.py
import logging
import time
from typing import Final, List, Optional, Protocol
from uuid import uuid4
from redis.asyncio import Redis
from redis.exceptions import RedisError
from config.cache import get_redis
from config.settings import settings
from core.path_codec import check_segment
from model.client import ClientRecord, DocumentReference, DocumentSlot, SlotMap
from repository.namespaces import CLIENT_INDEX, CLIENTS
from util.errors import NamespaceCollisionError, ReferenceWriteError

logger = logging.getLogger(__name__)

KEY_PREFIX: Final[str] = CLIENTS
DOC_FIELD_PREFIX: Final[str] = "doc:"


class ReferenceStore(Protocol):
    async def get(self, client_id: str) -> Optional[ClientRecord]: ...

    async def set(self, client_id: str, slots: SlotMap) -> bool: ...

    async def list(self, offset: int = 0, limit: Optional[int] = None) -> List[ClientRecord]: ...


def _s(v) -> str:
    return v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v)


class ClientRepository:
    """
    Redis-backed Reference Store.

    One hash per client at clientdocs:clients:<id> holding "id", "name" and one
    "doc:<slot>" field per non-null document reference. A missing field means the
    slot is null. Client ids are also kept in a zset ordered by creation time so
    list() pages are stable while a scan walks them.
    """

    def __init__(self, redis: Optional[Redis] = None) -> None:
        self._redis = redis

    async def _client(self) -> Redis:
        return self._redis if self._redis is not None else await get_redis()

    @staticmethod
    def _key(client_id: str) -> str:
        return f"{KEY_PREFIX}:{client_id}"

    @staticmethod
    def _new_id() -> str:
        return f"C{uuid4().hex[:8]}"

    # ---------------- Core CRUD ----------------

    async def create(
        self,
        *,
        name: Optional[str] = None,
        documents: Optional[SlotMap] = None,
        client_id: Optional[str] = None,
    ) -> ClientRecord:
        cid = client_id or self._new_id()
        # The id doubles as the permanent namespace directory name.
        check_segment(cid, "client id")
        if cid.startswith(settings.STAGING_PREFIXES):
            raise NamespaceCollisionError(f"client id {cid!r} has a staging prefix")

        r = await self._client()
        if await r.exists(self._key(cid)):
            raise NamespaceCollisionError(f"client {cid} already exists")

        record = ClientRecord(id=cid, name=name, documents=dict(documents or {}))
        mapping = {"id": cid}
        if name:
            mapping["name"] = name
        for slot, ref in record.filled_slots():
            mapping[DOC_FIELD_PREFIX + slot.value] = ref.storedPath

        try:
            async with r.pipeline(transaction=True) as pipe:
                pipe.hset(self._key(cid), mapping=mapping)
                pipe.zadd(CLIENT_INDEX, {cid: time.time()})
                await pipe.execute()
        except RedisError as e:
            raise ReferenceWriteError(f"create client {cid}: {e}") from e
        logger.info("client.create id=%s documents=%d", cid, len(record.filled_slots()))
        return record

    async def get(self, client_id: str) -> Optional[ClientRecord]:
        if not client_id:
            return None
        r = await self._client()
        h = await r.hgetall(self._key(client_id))
        if not h:
            return None
        return self._from_hash(client_id, h)

    async def set(self, client_id: str, slots: SlotMap) -> bool:
        """
        Replace whole slots; a None value clears the slot. Slots not named are left
        alone. Returns False when the client does not exist.
        """
        r = await self._client()
        key = self._key(client_id)
        to_set = {
            DOC_FIELD_PREFIX + DocumentSlot(slot).value: ref.storedPath
            for slot, ref in slots.items()
            if ref is not None
        }
        to_clear = [
            DOC_FIELD_PREFIX + DocumentSlot(slot).value
            for slot, ref in slots.items()
            if ref is None
        ]
        try:
            if not await r.exists(key):
                return False
            if not to_set and not to_clear:
                return True
            async with r.pipeline(transaction=True) as pipe:
                if to_set:
                    pipe.hset(key, mapping=to_set)
                if to_clear:
                    pipe.hdel(key, *to_clear)
                await pipe.execute()
        except RedisError as e:
            raise ReferenceWriteError(f"update client {client_id}: {e}") from e
        return True

    async def list(self, offset: int = 0, limit: Optional[int] = None) -> List[ClientRecord]:
        r = await self._client()
        end = -1 if limit is None else offset + limit - 1
        ids = await r.zrange(CLIENT_INDEX, offset, end)
        out: List[ClientRecord] = []
        for raw_id in ids or []:
            cid = _s(raw_id)
            h = await r.hgetall(self._key(cid))
            if not h:
                # Index entry outlived its hash; not a client anymore.
                logger.warning("client.index.orphan id=%s", cid)
                continue
            out.append(self._from_hash(cid, h))
        return out

    async def delete(self, client_id: str) -> bool:
        r = await self._client()
        try:
            async with r.pipeline(transaction=True) as pipe:
                pipe.delete(self._key(client_id))
                pipe.zrem(CLIENT_INDEX, client_id)
                deleted, _ = await pipe.execute()
        except RedisError as e:
            raise ReferenceWriteError(f"delete client {client_id}: {e}") from e
        return bool(deleted)

    # ---------------- Helpers ----------------

    @staticmethod
    def _from_hash(client_id: str, h: dict) -> ClientRecord:
        fields = {_s(k): _s(v) for k, v in h.items()}
        documents: SlotMap = {}
        for field, value in fields.items():
            if not field.startswith(DOC_FIELD_PREFIX) or not value:
                continue
            try:
                slot = DocumentSlot(field[len(DOC_FIELD_PREFIX):])
            except ValueError:
                logger.warning("client.slot.unknown id=%s field=%s", client_id, field)
                continue
            documents[slot] = DocumentReference(storedPath=value)
        return ClientRecord(
            id=fields.get("id") or client_id,
            name=fields.get("name") or None,
            documents=documents,
        )
