"""
Session Store - Redis repository for session records.

Each session lives under ``<namespace>:<session id>`` as the JSON of a
SessionRecord, written with a TTL equal to its remaining lifetime so the
store itself forgets abandoned sessions.

Concurrent requests for the same session id each replace the whole document
(SETEX), so the last write wins and values are never merged.

Pattern: Repository pattern (Percival & Gregory pp. 86)
Pattern: Dependency injection for Redis client (Sinha pp. 89-90)
"""

from datetime import datetime, timezone
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import WatchError

from web_gateway.core.exceptions import SessionStoreError
from web_gateway.sessions.models import SessionRecord


class SessionStore:
    """
    Redis-based session storage.

    Attributes:
        _redis: The Redis client instance (borrowed from StoreConnection).
        _key_prefix: Prefix for Redis keys.

    Example:
        >>> store = SessionStore(redis_client=client, namespace="sessions")
        >>> await store.save(record)
        >>> retrieved = await store.get(record.id)
    """

    def __init__(self, redis_client: Redis, namespace: str = "sessions") -> None:
        self._redis: Redis = redis_client
        self._key_prefix: str = f"{namespace}:"

    def _make_key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    @staticmethod
    def _calculate_ttl(expires_at: datetime) -> int:
        """Remaining lifetime in whole seconds (minimum 1)."""
        ttl_delta = expires_at - datetime.now(timezone.utc)
        return max(int(ttl_delta.total_seconds()), 1)

    async def save(self, record: SessionRecord) -> None:
        """
        Write a session record, replacing any previous version.

        Raises:
            SessionStoreError: If the save operation fails.
        """
        try:
            await self._redis.setex(
                self._make_key(record.id),
                self._calculate_ttl(record.expires_at),
                record.model_dump_json(),
            )
        except Exception as e:
            raise SessionStoreError(
                f"Failed to save session {record.id}: {e}", session_id=record.id
            ) from e

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        """
        Retrieve a session record.

        Two layers of expiration handling:
        1. Redis TTL: keys auto-expire at the record's expires_at
        2. Application check: a record whose expires_at has passed but whose
           key has not been evicted yet is deleted and reported missing

        Returns:
            The record if found and not expired, None otherwise.

        Raises:
            SessionStoreError: If the read fails or the stored JSON is invalid.
        """
        key = self._make_key(session_id)
        try:
            json_data = await self._redis.get(key)
            if json_data is None:
                return None

            record = SessionRecord.model_validate_json(json_data)

            if record.is_expired():
                await self._redis.delete(key)
                return None

            return record

        except Exception as e:
            raise SessionStoreError(
                f"Failed to get session {session_id}: {e}", session_id=session_id
            ) from e

    async def touch(self, record: SessionRecord) -> bool:
        """
        Refresh the expiry of an existing record without replacing its data.

        Only the expires_at field of the stored document and the key TTL are
        rewritten. The read-modify-write runs under WATCH; if another request
        saves the session in between, its write (which carries its own expiry)
        wins and the touch is dropped.

        Returns:
            True if the record still existed, False if it had vanished.

        Raises:
            SessionStoreError: If the operation fails.
        """
        key = self._make_key(record.id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(key)
                json_data = await pipe.get(key)
                if json_data is None:
                    return False

                stored = SessionRecord.model_validate_json(json_data)
                stored.expires_at = record.expires_at

                pipe.multi()
                pipe.set(
                    key,
                    stored.model_dump_json(),
                    ex=self._calculate_ttl(record.expires_at),
                    xx=True,
                )
                await pipe.execute()
            return True

        except WatchError:
            return True
        except Exception as e:
            raise SessionStoreError(
                f"Failed to touch session {record.id}: {e}", session_id=record.id
            ) from e

    async def delete(self, session_id: str) -> bool:
        """
        Delete a session record.

        Returns:
            True if the session was deleted, False if it didn't exist.
        """
        try:
            deleted_count = await self._redis.delete(self._make_key(session_id))
            return deleted_count > 0
        except Exception as e:
            raise SessionStoreError(
                f"Failed to delete session {session_id}: {e}", session_id=session_id
            ) from e

    async def exists(self, session_id: str) -> bool:
        try:
            return await self._redis.exists(self._make_key(session_id)) > 0
        except Exception as e:
            raise SessionStoreError(
                f"Failed to check session existence {session_id}: {e}",
                session_id=session_id,
            ) from e
