"""
Partner connection records.

One Redis hash per organization holds the connection row; a plain key maps
each partner location back to its organization for webhook routing.

Writes are keyed by organization id and never read-modify-write, so
concurrent reconnects for the same organization cannot lose updates.
"""

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, Dict, Optional

CONNECTION_KEY = "partner:connection:{organization_id}"
LOCATION_KEY = "partner:location:{location_id}"


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class ConnectionRecord:
    """Stored partner connection; tokens are kept encrypted."""
    id: str
    organization_id: str
    remote_account_id: str
    remote_location_id: str
    access_token_enc: str
    refresh_token_enc: str
    token_expires_at: str
    account_name: str
    connected_at: str
    last_synced_at: Optional[str] = None
    is_active: bool = True
    updated_at: Optional[str] = None

    @classmethod
    def from_hash(cls, data: Dict[str, str]) -> "ConnectionRecord":
        return cls(
            id=data.get("id", ""),
            organization_id=data.get("organization_id", ""),
            remote_account_id=data.get("remote_account_id", ""),
            remote_location_id=data.get("remote_location_id", ""),
            access_token_enc=data.get("access_token_enc", ""),
            refresh_token_enc=data.get("refresh_token_enc", ""),
            token_expires_at=data.get("token_expires_at", ""),
            account_name=data.get("account_name", ""),
            connected_at=data.get("connected_at", ""),
            last_synced_at=data.get("last_synced_at") or None,
            is_active=data.get("is_active") == "1",
            updated_at=data.get("updated_at") or None,
        )

    def public_dict(self) -> Dict[str, Any]:
        """Metadata safe to expose; credentials stripped."""
        data = asdict(self)
        data.pop("access_token_enc")
        data.pop("refresh_token_enc")
        return data


class ConnectionStore:
    def __init__(self, redis_client):
        """
        Initialize connection store.

        Args:
            redis_client: Async Redis client (decode_responses=True)
        """
        self.redis = redis_client

    @staticmethod
    def _key(organization_id: str) -> str:
        return CONNECTION_KEY.format(organization_id=organization_id)

    async def upsert(
        self,
        connection_id: str,
        organization_id: str,
        remote_account_id: str,
        remote_location_id: str,
        access_token_enc: str,
        refresh_token_enc: str,
        token_expires_at: str,
        account_name: str,
    ) -> None:
        """
        Insert or update the connection for an organization.

        Logic:
        1. Set id and connected_at only if the row is new
        2. Overwrite credentials and account metadata
        3. Re-activate the row (reconnect after a soft delete)
        4. Point the location index at the organization
        """
        key = self._key(organization_id)
        now = _now()

        await self.redis.hsetnx(key, "id", connection_id)
        await self.redis.hsetnx(key, "connected_at", now)
        await self.redis.hset(
            key,
            mapping={
                "organization_id": organization_id,
                "remote_account_id": remote_account_id or "",
                "remote_location_id": remote_location_id or "",
                "access_token_enc": access_token_enc,
                "refresh_token_enc": refresh_token_enc,
                "token_expires_at": token_expires_at,
                "account_name": account_name,
                "is_active": "1",
                "updated_at": now,
            },
        )
        if remote_location_id:
            await self.redis.set(LOCATION_KEY.format(location_id=remote_location_id), organization_id)

    async def get(self, organization_id: str) -> Optional[ConnectionRecord]:
        """Get the connection row, active or not."""
        data = await self.redis.hgetall(self._key(organization_id))
        if not data:
            return None
        return ConnectionRecord.from_hash(data)

    async def get_active(self, organization_id: str) -> Optional[ConnectionRecord]:
        """Get the connection row only if it is active."""
        record = await self.get(organization_id)
        if record and record.is_active:
            return record
        return None

    async def find_active_by_location(self, location_id: str) -> Optional[ConnectionRecord]:
        """
        Resolve the active connection owning a partner location.

        The location index may be stale after a reconnect to another location,
        so the row's own location id is checked too.
        """
        if not location_id:
            return None
        organization_id = await self.redis.get(LOCATION_KEY.format(location_id=location_id))
        if not organization_id:
            return None
        record = await self.get_active(organization_id)
        if record and record.remote_location_id == str(location_id):
            return record
        return None

    async def deactivate(self, organization_id: str) -> bool:
        """
        Soft delete: flip is_active, keep the row for reconnection.

        Returns:
            True if a row existed
        """
        key = self._key(organization_id)
        if not await self.redis.exists(key):
            return False
        await self.redis.hset(key, mapping={"is_active": "0", "updated_at": _now()})
        return True

    async def mark_synced(self, organization_id: str) -> None:
        now = _now()
        await self.redis.hset(
            self._key(organization_id), mapping={"last_synced_at": now, "updated_at": now}
        )

    async def update_tokens(
        self,
        organization_id: str,
        access_token_enc: str,
        refresh_token_enc: str,
        token_expires_at: str,
    ) -> None:
        """Store refreshed credentials."""
        await self.redis.hset(
            self._key(organization_id),
            mapping={
                "access_token_enc": access_token_enc,
                "refresh_token_enc": refresh_token_enc,
                "token_expires_at": token_expires_at,
                "updated_at": _now(),
            },
        )
