"""
Durable key-value storage backed by Redis.

Holds the serialized contact collection and the current session for the
local-only mode. Values are JSON documents stored under fixed keys.
"""

import json
from typing import Any

import redis.asyncio as redis

from nexus_crm.config import settings
from nexus_crm.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CONTACTS_KEY = "nexus_crm_data"
SESSION_KEY = "nexus_crm_user"


class LocalStorageError(Exception):
    """Raised when the local key-value store cannot be read or written."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.operation = operation


class LocalStorage:
    """Thin JSON layer over an async Redis client."""

    def __init__(self, client: Any | None = None, url: str | None = None):
        self.client = client
        self._url = url or settings.LOCAL_STORAGE_URL
        self._initialized = client is not None

    async def initialize(self) -> None:
        """Connect on startup."""
        if self._initialized:
            return

        try:
            logger.info("Connecting local storage", url_preview=self._url[:30] + "...")
            self.client = redis.Redis.from_url(
                self._url,
                socket_connect_timeout=10,
                socket_timeout=10,
                decode_responses=True,
            )
            await self.client.ping()
            self._initialized = True
            logger.info("Local storage connected")
        except Exception as e:
            logger.error("Failed to connect local storage", error=str(e))
            self._initialized = False
            raise LocalStorageError(f"Local storage initialization failed: {e}", "initialize") from e

    async def close(self) -> None:
        try:
            if self.client is not None:
                await self.client.aclose()
            self._initialized = False
            logger.info("Local storage closed")
        except Exception as e:
            logger.error("Error closing local storage", error=str(e))

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Local storage ping failed", error=str(e))
            return False

    async def get_json(self, key: str) -> Any | None:
        """Read and decode a JSON value; None when the key is absent."""
        try:
            raw = await self.client.get(key)
        except Exception as e:
            logger.error("Local storage GET failed", key=key, error=str(e))
            raise LocalStorageError(f"Failed to read {key}: {e}", "get") from e

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.error("Corrupt local storage value", key=key, error=str(e))
            raise LocalStorageError(f"Corrupt value under {key}: {e}", "decode") from e

    async def set_json(self, key: str, value: Any) -> None:
        try:
            await self.client.set(key, json.dumps(value))
        except Exception as e:
            logger.error("Local storage SET failed", key=key, error=str(e))
            raise LocalStorageError(f"Failed to write {key}: {e}", "set") from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except Exception as e:
            logger.error("Local storage DELETE failed", key=key, error=str(e))
            raise LocalStorageError(f"Failed to delete {key}: {e}", "delete") from e
