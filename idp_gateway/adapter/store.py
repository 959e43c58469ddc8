"""
Redis persistence adapter for the protocol engine's runtime artifacts.
"""

import math
import time
from typing import Any, Dict, List, Optional
from loguru import logger
from idp_gateway.config import settings
from idp_gateway.exceptions import BackendUnavailable, MalformedPayload
from idp_gateway.metrics.adapter import track_operation, track_revocation
from idp_gateway.safe_redis import SafeRedis
from idp_gateway.adapter import scripts
from idp_gateway.adapter.schemas import (
    PAYLOAD_HASH_FIELD,
    UID_FIELD,
    USER_CODE_FIELD,
    ArtifactKeys,
    ModelKind,
    as_text,
    decode_record,
    encode_payload,
    grant_id_of,
)


class RedisAdapter:
    """
    Artifact store for a single model kind.

    The engine constructs one adapter per kind and calls upsert/find/consume/
    destroy/revoke_by_grant_id on it. No state is held between calls; every
    operation is one round of redis commands.
    """

    def __init__(
        self,
        name: str | ModelKind,
        client: Optional[SafeRedis] = None,
        prefix: Optional[str] = None,
    ):
        self.kind = ModelKind.parse(name)
        self.name = self.kind.value
        self.keys = ArtifactKeys(prefix=prefix or settings.key_prefix, kind=self.kind)
        self._client = client

    @property
    def client(self) -> SafeRedis:
        return self._client if self._client is not None else settings.redis_client

    async def upsert(self, id: str, payload: Dict[str, Any], expires_in: Optional[int] = None):
        """
        Write (or overwrite) a record and maintain its grant and secondary indexes.

        A falsy expires_in persists the record without expiry; fractions of a
        second round up so a short-lived record never becomes permanent.
        """
        key = self.keys.primary(id)
        encoded = encode_payload(key, payload)
        if expires_in and expires_in < 0:
            raise ValueError(f"expires_in must not be negative, got {expires_in}")
        ttl = math.ceil(expires_in) if expires_in else 0
        track_operation(self.name, "upsert")
        index_keys = self.keys.secondary(payload)

        # Index the grant first: a record the grant set does not know about
        # would survive revocation. Its index keys ride along so revocation
        # removes them too.
        grant_id = grant_id_of(payload)
        if grant_id:
            await self.client.eval(
                scripts.ADD_TO_GRANT, 1, self.keys.grant(grant_id), ttl, key, *index_keys.values()
            )

        previous = await self._stored_payload(key, id)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.hset(key, PAYLOAD_HASH_FIELD, encoded)
            if ttl:
                pipe.expire(key, ttl)
            else:
                pipe.persist(key)
            await pipe.execute()

        await self._write_secondary(id, index_keys, previous, ttl)
        logger.debug(f"Stored {self.name} {id=} {ttl=} {grant_id=}")

    async def _stored_payload(self, key: str, id: str) -> Dict[str, Any]:
        """
        Current payload of a record, {} when absent or undecodable.
        """
        raw = await self.client.hget(key, PAYLOAD_HASH_FIELD)
        if raw is None:
            return {}
        try:
            return decode_record(key, {PAYLOAD_HASH_FIELD: raw}) or {}
        except MalformedPayload as exc:
            logger.warning(f"Ignoring undecodable {self.name} {id=}: {exc}")
            return {}

    async def _pointing_at(self, id: str, index_keys: List[str]) -> List[str]:
        """
        The subset of index_keys still resolving to id; a value may have been reused.
        """
        if not index_keys:
            return []
        targets = await self.client.mget(index_keys)
        return [
            index_key
            for index_key, target in zip(index_keys, targets)
            if as_text(target) == id
        ]

    async def _write_secondary(
        self,
        id: str,
        index_keys: Dict[str, str],
        previous: Dict[str, Any],
        ttl: int,
    ):
        """
        Point userCode/uid lookups at the record and drop the ones it no
        longer carries, best-effort.
        """
        replaced = [
            index_key
            for index_key in self.keys.secondary(previous).values()
            if index_key not in index_keys.values()
        ]
        if not index_keys and not replaced:
            return
        try:
            stale = await self._pointing_at(id, replaced)
            async with self.client.pipeline(transaction=True) as pipe:
                if stale:
                    pipe.delete(*stale)
                for index_key in index_keys.values():
                    pipe.set(index_key, id, ex=ttl or None)
                await pipe.execute()
        except BackendUnavailable as exc:
            logger.warning(
                f"Secondary index write failed for {self.name} {id=} "
                f"({', '.join(index_keys.values())}), lookups will miss: {exc}"
            )

    async def find(self, id: str) -> Optional[Dict[str, Any]]:
        """
        Load a record by id, None when absent or expired.
        """
        key = self.keys.primary(id)
        track_operation(self.name, "find")
        record = await self.client.hgetall(key)
        if not record:
            return None
        return decode_record(key, record)

    async def _find_by_index(self, index_key: str, field: str, value: str) -> Optional[Dict[str, Any]]:
        id = await self.client.get(index_key)
        if not id:
            return None
        # The target may have expired, been revoked, or moved to another value
        # while the index entry lingers.
        payload = await self.find(as_text(id))
        if payload is None or payload.get(field) != value:
            return None
        return payload

    async def find_by_user_code(self, user_code: str) -> Optional[Dict[str, Any]]:
        track_operation(self.name, "find_by_user_code")
        return await self._find_by_index(self.keys.user_code(user_code), USER_CODE_FIELD, user_code)

    async def find_by_uid(self, uid: str) -> Optional[Dict[str, Any]]:
        track_operation(self.name, "find_by_uid")
        return await self._find_by_index(self.keys.uid(uid), UID_FIELD, uid)

    async def consume(self, id: str) -> bool:
        """
        Mark a record consumed, keeping its remaining TTL.

        Returns False when there is no such record. A second call leaves the
        original timestamp in place and still returns True.
        """
        key = self.keys.primary(id)
        track_operation(self.name, "consume")
        marked = await self.client.eval(scripts.CONSUME, 1, key, int(time.time()))
        return bool(int(marked))

    async def destroy(self, id: str):
        """
        Delete a record along with the index entries that point at it.
        """
        key = self.keys.primary(id)
        track_operation(self.name, "destroy")
        payload = await self._stored_payload(key, id)
        index_keys = list(self.keys.secondary(payload).values())
        stale = await self._pointing_at(id, index_keys)

        grant_id = grant_id_of(payload)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(key, *stale)
            if grant_id:
                pipe.srem(self.keys.grant(grant_id), key, *index_keys)
            await pipe.execute()
        logger.debug(f"Destroyed {self.name} {id=}")

    async def revoke_by_grant_id(self, grant_id: str):
        """
        Delete every artifact recorded under a grant, of any kind, together
        with its userCode/uid keys and the grant set.
        """
        grant_key = self.keys.grant(grant_id)
        track_operation(self.name, "revoke_by_grant_id")
        members = [as_text(member) for member in await self.client.smembers(grant_key)]
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(grant_key, *members)
            await pipe.execute()
        revoked = sum(1 for member in members if not self.keys.is_index(member))
        track_revocation(revoked)
        logger.info(f"Revoked {revoked} artifact(s) for {grant_id=}")


def adapter_factory(name: str) -> RedisAdapter:
    """
    Adapter constructor handed to the protocol engine, called once per model kind.
    """
    return RedisAdapter(name)
