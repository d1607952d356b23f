"""Mapping between the local catalog/order shapes and the partner's schema."""

import json
import re
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

_WHITESPACE = re.compile(r"\s+")


def category_ref(name: str) -> str:
    """Slug-like reference: lower case, whitespace runs become underscores."""
    return _WHITESPACE.sub("_", name.lower())


def _price(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def menu_to_catalog(menu_items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Transform stored menu items into the partner catalog format.

    Items are grouped by category; each category appears once, in order of
    first appearance.
    """
    categories: Dict[str, Dict[str, str]] = {}
    products = []

    for item in menu_items:
        category_name = item.get("Category") or "Uncategorized"
        if category_name not in categories:
            categories[category_name] = {"name": category_name, "ref": category_ref(category_name)}

        tags = item.get("Tags") or ""
        products.append(
            {
                "name": item.get("Name") or item.get("ItemName"),
                "ref": item.get("RowKey") or item.get("id"),
                "category_ref": categories[category_name]["ref"],
                "description": item.get("Description") or "",
                "price": _price(item.get("Price")),
                "image_ids": [item["ImageUrl"]] if item.get("ImageUrl") else [],
                "tags": [t.strip() for t in tags.split(",") if t.strip()] if isinstance(tags, str) else list(tags),
                "available": item.get("IsAvailable") is not False,
            }
        )

    return {
        "name": "Menu Catalog",
        "categories": list(categories.values()),
        "products": products,
    }


def order_to_internal(order: Dict[str, Any]) -> Dict[str, Any]:
    """Transform a partner order into the internal order shape."""
    customer = order.get("customer") or {}
    name_parts = [customer.get("first_name"), customer.get("last_name")]

    return {
        "remoteOrderId": order.get("id"),
        "status": order.get("status"),
        "customerName": " ".join(p for p in name_parts if p),
        "customerEmail": customer.get("email"),
        "customerPhone": customer.get("phone"),
        "items": [
            {
                "name": item.get("product_name"),
                "quantity": item.get("quantity"),
                "price": item.get("price"),
                "skuRef": item.get("sku_ref"),
            }
            for item in order.get("items") or []
        ],
        "totalAmount": order.get("total"),
        "currency": order.get("currency"),
        "serviceType": order.get("service_type"),
        "expectedTime": order.get("expected_time"),
        "createdAt": order.get("created_at"),
    }


def build_order_record(
    organization_id: str,
    row_key: str,
    location_id: Optional[str],
    internal: Dict[str, Any],
    source_name: str,
) -> Dict[str, Any]:
    """Build the persisted order record with storage defaults applied."""
    now = datetime.now(UTC).isoformat()
    return {
        "PartitionKey": organization_id,
        "RowKey": row_key,
        "remoteOrderId": internal.get("remoteOrderId"),
        "remoteLocationId": location_id,
        "status": internal.get("status") or "new",
        "customerName": internal.get("customerName") or "",
        "customerEmail": internal.get("customerEmail") or "",
        "customerPhone": internal.get("customerPhone") or "",
        "orderItems": json.dumps(internal.get("items") or []),
        "totalAmount": internal.get("totalAmount") or 0,
        "currency": internal.get("currency") or "EUR",
        "serviceType": internal.get("serviceType") or "delivery",
        "expectedTime": internal.get("expectedTime") or "",
        "orderSource": source_name,
        "createdAt": internal.get("createdAt") or now,
        "Timestamp": now,
    }
