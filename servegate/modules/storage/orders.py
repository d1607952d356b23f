"""Order and menu storage wrappers."""

import json
import logging
from datetime import UTC, date, datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

ORDERS_KEY = "orders:{organization_id}"
MENU_KEY = "menu:{organization_id}"


def _parse_instant(value: Any) -> Optional[datetime]:
    """ISO-8601 string as an aware UTC datetime; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _created_at(order: Dict[str, Any]) -> Optional[datetime]:
    return _parse_instant(order.get("createdAt")) or _parse_instant(order.get("Timestamp"))


def _decode_items(order: Dict[str, Any]) -> Dict[str, Any]:
    """Line items are stored as a JSON string; callers get the list back."""
    items = order.get("orderItems")
    if isinstance(items, str):
        try:
            order["orderItems"] = json.loads(items)
        except ValueError:
            logger.warning(f"Unreadable line items on order {order.get('RowKey')}")
            order["orderItems"] = []
    return order


class OrderStore:
    """Orders keyed by (organization id, row key)."""

    def __init__(self, redis_client):
        self.redis = redis_client

    async def add_order(self, organization_id: str, row_key: str, record: Dict[str, Any]) -> None:
        """
        Persist an order record.

        Writing the same row key again replaces the stored order, so repeated
        deliveries of one partner order do not duplicate it.
        """
        await self.redis.hset(
            ORDERS_KEY.format(organization_id=organization_id), row_key, json.dumps(record)
        )

    async def read_today_orders(
        self, organization_id: str, branch_code: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Get orders created today (UTC) for an organization, newest first.

        Creation times may carry any offset; they are compared as UTC dates.
        Orders without a usable creation time fall back to their storage
        timestamp.

        Args:
            organization_id: Partition to read
            branch_code: Optional branch filter; orders without a branch match
                when the branch code equals the organization id
        """
        today: date = datetime.now(UTC).date()
        stored = await self.redis.hgetall(ORDERS_KEY.format(organization_id=organization_id))

        dated = []
        for row_key, raw in stored.items():
            try:
                order = json.loads(raw)
            except (TypeError, ValueError):
                logger.warning(f"Skipping unreadable order {row_key} for {organization_id}")
                continue
            created = _created_at(order)
            if created is None or created.date() != today:
                continue
            if branch_code and order.get("branchCode", organization_id) != branch_code:
                continue
            dated.append((created, _decode_items(order)))

        dated.sort(key=lambda pair: pair[0], reverse=True)
        return [order for _, order in dated]


class MenuStore:
    """Locally stored catalog per organization."""

    def __init__(self, redis_client):
        self.redis = redis_client

    async def get_menu(self, organization_id: str) -> Optional[List[Dict[str, Any]]]:
        data = await self.redis.get(MENU_KEY.format(organization_id=organization_id))
        if not data:
            return None
        return json.loads(data)

    async def save_menu(self, organization_id: str, items: List[Dict[str, Any]]) -> None:
        await self.redis.set(MENU_KEY.format(organization_id=organization_id), json.dumps(items))
