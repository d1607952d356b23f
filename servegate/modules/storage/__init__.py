"""
Storage Module - Black Box Interface

Purpose: Abstract all data persistence
Interface: StorageModule.connect(), ConnectionStore, OrderStore, MenuStore
Hidden: Redis specifics, key layout, serialization

Can be replaced with any storage backend without affecting other modules.
"""

from typing import Optional

import redis.asyncio as redis

from .connections import ConnectionStore
from .orders import MenuStore, OrderStore


class StorageModule:
    """Black box storage abstraction."""

    def __init__(self, connection_url: str = "redis://localhost:6379/0", password: Optional[str] = None):
        """Initialize storage with connection URL."""
        self.url = connection_url
        self.password = password
        self._client = None

    async def connect(self) -> redis.Redis:
        """Get storage connection."""
        if not self._client:
            self._client = redis.from_url(
                self.url,
                password=self.password,  # Passed separately to avoid URL encoding issues
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    async def disconnect(self):
        """Close storage connection."""
        if self._client:
            await self._client.aclose()
            self._client = None


__all__ = ["ConnectionStore", "MenuStore", "OrderStore", "StorageModule"]
