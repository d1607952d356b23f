import json
from datetime import UTC, datetime, timedelta, timezone

import pytest

from servegate.modules.storage import ConnectionStore, MenuStore, OrderStore


def _upsert_kwargs(**overrides):
    values = dict(
        connection_id="conn-1",
        organization_id="org-1",
        remote_account_id="acc-1",
        remote_location_id="loc-1",
        access_token_enc="enc-access",
        refresh_token_enc="enc-refresh",
        token_expires_at="2030-01-01T00:00:00+00:00",
        account_name="Hotel One",
    )
    values.update(overrides)
    return values


@pytest.fixture
def connections(mock_redis_with_data):
    return ConnectionStore(mock_redis_with_data)


@pytest.mark.asyncio
async def test_upsert_creates_connection(connections, mock_redis_with_data):
    await connections.upsert(**_upsert_kwargs())

    record = await connections.get("org-1")
    assert record.id == "conn-1"
    assert record.is_active is True
    assert record.account_name == "Hotel One"
    assert record.connected_at
    assert mock_redis_with_data._storage["partner:location:loc-1"] == "org-1"


@pytest.mark.asyncio
async def test_upsert_twice_keeps_identity_and_updates_fields(connections, mock_redis_with_data):
    """Reconnecting keeps id and connected_at, replaces everything else."""
    await connections.upsert(**_upsert_kwargs())
    first = await connections.get("org-1")

    await connections.upsert(
        **_upsert_kwargs(connection_id="conn-2", access_token_enc="enc-new", account_name="Renamed")
    )
    second = await connections.get("org-1")

    assert second.id == first.id == "conn-1"
    assert second.connected_at == first.connected_at
    assert second.access_token_enc == "enc-new"
    assert second.account_name == "Renamed"
    assert [k for k in mock_redis_with_data._storage if k.startswith("partner:connection:")] == [
        "partner:connection:org-1"
    ]


@pytest.mark.asyncio
async def test_reconnect_reactivates_connection(connections):
    await connections.upsert(**_upsert_kwargs())
    assert await connections.deactivate("org-1") is True
    assert await connections.get_active("org-1") is None

    await connections.upsert(**_upsert_kwargs())

    record = await connections.get_active("org-1")
    assert record is not None
    assert record.is_active is True


@pytest.mark.asyncio
async def test_deactivate_is_soft_and_idempotent(connections):
    assert await connections.deactivate("org-1") is False

    await connections.upsert(**_upsert_kwargs())
    assert await connections.deactivate("org-1") is True
    assert await connections.deactivate("org-1") is True

    record = await connections.get("org-1")
    assert record is not None
    assert record.is_active is False
    assert record.access_token_enc == "enc-access"


@pytest.mark.asyncio
async def test_find_active_by_location(connections):
    await connections.upsert(**_upsert_kwargs())

    assert (await connections.find_active_by_location("loc-1")).organization_id == "org-1"
    assert await connections.find_active_by_location("unknown") is None
    assert await connections.find_active_by_location("") is None

    await connections.deactivate("org-1")
    assert await connections.find_active_by_location("loc-1") is None


@pytest.mark.asyncio
async def test_stale_location_index_is_ignored(connections):
    """After moving to another location the old index entry no longer resolves."""
    await connections.upsert(**_upsert_kwargs())
    await connections.upsert(**_upsert_kwargs(remote_location_id="loc-2"))

    assert await connections.find_active_by_location("loc-1") is None
    assert (await connections.find_active_by_location("loc-2")).organization_id == "org-1"


@pytest.mark.asyncio
async def test_mark_synced_and_update_tokens(connections):
    await connections.upsert(**_upsert_kwargs())

    await connections.mark_synced("org-1")
    await connections.update_tokens("org-1", "enc-a2", "enc-r2", "2031-01-01T00:00:00+00:00")

    record = await connections.get("org-1")
    assert record.last_synced_at is not None
    assert record.access_token_enc == "enc-a2"
    assert record.refresh_token_enc == "enc-r2"
    assert record.token_expires_at.startswith("2031")


@pytest.mark.asyncio
async def test_public_dict_strips_credentials(connections):
    await connections.upsert(**_upsert_kwargs())

    data = (await connections.get("org-1")).public_dict()

    assert "access_token_enc" not in data
    assert "refresh_token_enc" not in data
    assert data["remote_account_id"] == "acc-1"


# Orders and menus


@pytest.mark.asyncio
async def test_add_order_replaces_same_row_key(mock_redis_with_data):
    orders = OrderStore(mock_redis_with_data)

    await orders.add_order("org-1", "order-1", {"status": "new"})
    await orders.add_order("org-1", "order-1", {"status": "accepted"})

    assert json.loads(mock_redis_with_data._storage["orders:org-1"]["order-1"]) == {"status": "accepted"}
    assert len(mock_redis_with_data._storage["orders:org-1"]) == 1


@pytest.mark.asyncio
async def test_read_today_orders_filters_and_sorts(mock_redis_with_data):
    orders = OrderStore(mock_redis_with_data)
    now = datetime.now(UTC)
    yesterday = (now - timedelta(days=1)).isoformat()

    await orders.add_order("org-1", "a", {"RowKey": "a", "createdAt": now.replace(hour=0, minute=0, second=0, microsecond=0).isoformat()})
    await orders.add_order("org-1", "b", {"RowKey": "b", "createdAt": now.isoformat()})
    await orders.add_order("org-1", "old", {"RowKey": "old", "createdAt": yesterday})
    await orders.add_order("org-1", "other", {"RowKey": "other", "createdAt": now.isoformat(), "branchCode": "b2"})
    mock_redis_with_data._storage["orders:org-1"]["broken"] = "{not json"

    result = await orders.read_today_orders("org-1", "org-1")

    assert [o["RowKey"] for o in result] == ["b", "a"]
    assert [o["RowKey"] for o in await orders.read_today_orders("org-1", "b2")] == ["other"]


@pytest.mark.asyncio
async def test_read_today_orders_compares_utc_dates(mock_redis_with_data):
    """Offsets ahead of or behind UTC still land on the UTC day."""
    orders = OrderStore(mock_redis_with_data)
    now = datetime.now(UTC)
    ahead = now.astimezone(timezone(timedelta(hours=13))).isoformat()
    behind = now.astimezone(timezone(timedelta(hours=-11))).isoformat()
    tomorrow_local_yesterday_utc = (now - timedelta(days=1)).astimezone(timezone(timedelta(hours=14))).isoformat()

    await orders.add_order("org-1", "ahead", {"RowKey": "ahead", "createdAt": ahead})
    await orders.add_order("org-1", "behind", {"RowKey": "behind", "createdAt": behind})
    await orders.add_order("org-1", "shifted", {"RowKey": "shifted", "createdAt": tomorrow_local_yesterday_utc})
    await orders.add_order("org-1", "zulu", {"RowKey": "zulu", "createdAt": now.strftime("%Y-%m-%dT%H:%M:%SZ")})

    result = await orders.read_today_orders("org-1")

    assert sorted(o["RowKey"] for o in result) == ["ahead", "behind", "zulu"]


@pytest.mark.asyncio
async def test_read_today_orders_falls_back_to_timestamp(mock_redis_with_data):
    orders = OrderStore(mock_redis_with_data)

    await orders.add_order("org-1", "a", {"RowKey": "a", "createdAt": "", "Timestamp": datetime.now(UTC).isoformat()})
    await orders.add_order("org-1", "b", {"RowKey": "b", "createdAt": "not a date"})

    assert [o["RowKey"] for o in await orders.read_today_orders("org-1")] == ["a"]


@pytest.mark.asyncio
async def test_read_today_orders_decodes_line_items(mock_redis_with_data):
    orders = OrderStore(mock_redis_with_data)
    now = datetime.now(UTC).isoformat()

    await orders.add_order("org-1", "a", {"RowKey": "a", "createdAt": now, "orderItems": json.dumps([{"name": "Soup"}])})
    await orders.add_order("org-1", "b", {"RowKey": "b", "createdAt": now, "orderItems": "{broken"})

    result = {o["RowKey"]: o for o in await orders.read_today_orders("org-1")}

    assert result["a"]["orderItems"] == [{"name": "Soup"}]
    assert result["b"]["orderItems"] == []


@pytest.mark.asyncio
async def test_menu_store(mock_redis_with_data):
    menus = MenuStore(mock_redis_with_data)
    assert await menus.get_menu("org-1") is None

    await menus.save_menu("org-1", [{"Name": "Soup"}])

    assert await menus.get_menu("org-1") == [{"Name": "Soup"}]
    assert json.loads(mock_redis_with_data._storage["menu:org-1"]) == [{"Name": "Soup"}]
