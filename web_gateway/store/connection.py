"""
Persistent Store Adapter.

StoreConnection owns the single long-lived Redis client of the process. The
Lifecycle Manager connects and closes it; the Session Manager and route
handlers only borrow it (through ServerContext and the request context).

The client is backed by a connection pool, so concurrent requests may use it
at the same time. close() runs at most once; any use after that raises
StoreClosedError.
"""

from typing import Optional

import redis.asyncio as redis
from redis.asyncio import Redis

from web_gateway.core.config import DatabaseSettings, Settings
from web_gateway.core.exceptions import StoreClosedError
from web_gateway.observability.logging import get_logger
from web_gateway.sessions.store import SessionStore

logger = get_logger(__name__)


class StoreConnection:
    """
    Shared handle to the external store.

    Args:
        client: Redis client (injected in tests, built from settings otherwise).
        namespace: Key namespace for session records.
        display_url: Credential-free URL used in log lines.
    """

    def __init__(
        self,
        client: Redis,
        namespace: str = "sessions",
        display_url: str = "redis",
    ) -> None:
        self._client: Optional[Redis] = client
        self._namespace = namespace
        self._display_url = display_url
        self._connected = False
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreConnection":
        database: DatabaseSettings = settings.database
        client = redis.from_url(
            database.build_url(),
            max_connections=database.pool_size,
            decode_responses=True,
        )
        return cls(
            client=client,
            namespace=database.collection,
            display_url=database.build_url(redact=True),
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def is_connected(self) -> bool:
        return self._connected and not self._closed

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def client(self) -> Redis:
        """
        The live Redis client.

        Raises:
            StoreClosedError: After close() has run.
        """
        if self._closed or self._client is None:
            raise StoreClosedError()
        return self._client

    @property
    def sessions(self) -> SessionStore:
        """Session repository bound to this connection."""
        return SessionStore(self.client, namespace=self._namespace)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> bool:
        """
        Verify the store is reachable.

        Failure is logged and reported, never raised: the listener starts
        regardless and requests needing the store fail individually. The
        pooled client keeps retrying connections on later commands.

        Returns:
            True if the store answered PING.
        """
        try:
            await self.client.ping()
        except StoreClosedError:
            raise
        except Exception as e:
            self._connected = False
            logger.error(
                "Database connection failed",
                url=self._display_url,
                error=str(e),
                exc_info=e,
            )
            return False

        self._connected = True
        logger.info("Connected to database", url=self._display_url)
        return True

    async def ping(self) -> bool:
        """Readiness probe; never raises."""
        if self._closed:
            return False
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.warning("Database ping failed", url=self._display_url, error=str(e))
            return False

    async def close(self) -> bool:
        """
        Close the client and its pool.

        Idempotent: only the first call closes anything.

        Returns:
            True if this call performed the close.
        """
        if self._closed:
            return False
        self._closed = True
        self._connected = False

        client, self._client = self._client, None
        if client is None:
            return False

        try:
            await client.aclose()
        except Exception as e:
            logger.warning("Error while closing database connection", error=str(e))
        else:
            logger.info("Database connection closed", url=self._display_url)
        return True
