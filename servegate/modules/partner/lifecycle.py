"""
Partner integration lifecycle.

Owns every write to partner connection records: OAuth connect and callback,
status, soft disconnect, catalog sync, order status push and webhook
ingestion. Access tokens are only ever decrypted transiently for outbound
calls.
"""

import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ...config.provider import APIConfig, PartnerConfig, SecurityConfig
from ...errors import BadRequestError, NotFoundError, ServeGateError, ServerConfigError, UpstreamError
from ..crypto import DecryptionError, decrypt, encrypt, generate_id, validate_hmac
from ..storage import ConnectionStore, MenuStore, OrderStore
from ..storage.connections import ConnectionRecord
from .client import PartnerClient
from .transform import build_order_record, menu_to_catalog, order_to_internal

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 3600
INTEGRATIONS_PATH = "/admin/settings/integrations"
ORDER_EVENTS = ("order.create", "order.update")
AUDIT_KEY = "partner:audit"


class IntegrationManager:
    """
    Black box over the partner integration.

    Dependencies are injected; the manager never reads the environment.
    """

    def __init__(
        self,
        partner_config: PartnerConfig,
        security_config: SecurityConfig,
        api_config: APIConfig,
        client: PartnerClient,
        connections: ConnectionStore,
        orders: OrderStore,
        menus: MenuStore,
        redis_client=None,
    ):
        """
        Initialize with injected dependencies.

        Args:
            partner_config: OAuth client settings and endpoints
            security_config: Encryption and webhook secrets
            api_config: Public URLs of the app and of this API
            client: Partner API client
            connections: Connection record store
            orders: Order store
            menus: Local catalog store
            redis_client: Optional Redis client for the audit trail
        """
        self.partner_config = partner_config
        self.security = security_config
        self.api_config = api_config
        self.client = client
        self.connections = connections
        self.orders = orders
        self.menus = menus
        self.redis = redis_client

    # OAuth

    def connect(self, organization_id: Optional[str]) -> Dict[str, str]:
        """
        Build the partner authorization URL.

        The state parameter carries the organization id so the callback can
        correlate without server-side session storage.
        """
        if not organization_id:
            raise BadRequestError("Organization ID not found")
        if not self.partner_config.client_id or not self.partner_config.redirect_uri:
            logger.error("Partner OAuth client is not configured")
            raise ServerConfigError()

        params = urlencode(
            {
                "client_id": self.partner_config.client_id,
                "redirect_uri": self.partner_config.redirect_uri,
                "scope": self.partner_config.scope,
                "response_type": "code",
                "state": organization_id,
            }
        )
        return {
            "authUrl": f"{self.partner_config.authorize_url}?{params}",
            "message": "Redirect user to this URL to connect the partner account",
        }

    def _app_redirect(self, **params: str) -> str:
        return f"{self.api_config.app_url}{INTEGRATIONS_PATH}?{urlencode(params)}"

    async def handle_callback(
        self, code: Optional[str], state: Optional[str], error: Optional[str] = None
    ) -> str:
        """
        Complete the OAuth flow.

        Returns:
            Application URL to redirect the browser to; failures are reported
            through an ``error`` query parameter, never as a raw error body.
        """
        if error:
            logger.error(f"OAuth error from partner: {error}")
            return self._app_redirect(error=error)

        if not code or not state:
            return self._app_redirect(error="invalid_callback")

        organization_id = state
        try:
            secret = self._encryption_secret()
            tokens = await self.client.exchange_code(code)

            access_token = tokens["access_token"]
            refresh_token = tokens.get("refresh_token") or ""
            account_id = str(tokens.get("account_id") or "")
            location_id = str(tokens.get("location_id") or "")

            account_name = await self._account_name(access_token, account_id)

            await self.connections.upsert(
                connection_id=generate_id(),
                organization_id=organization_id,
                remote_account_id=account_id,
                remote_location_id=location_id,
                access_token_enc=encrypt(access_token, secret),
                refresh_token_enc=encrypt(refresh_token, secret),
                token_expires_at=self._expires_at(tokens.get("expires_in")),
                account_name=account_name,
            )
            logger.info(f"Partner connection stored for organization {organization_id}")

            await self._register_webhook(access_token, location_id)
        except Exception as e:
            logger.exception(f"OAuth callback failed for organization {organization_id}: {e}")
            return self._app_redirect(error="callback_failed")

        return self._app_redirect(connected="true")

    async def _account_name(self, access_token: str, account_id: str) -> str:
        """Best effort: a failed lookup leaves the name as 'Unknown'."""
        if not account_id:
            return "Unknown"
        try:
            account = await self.client.get_account(access_token, account_id)
            return account.get("name") or "Unknown"
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get partner account info: {e}")
            return "Unknown"

    async def _register_webhook(self, access_token: str, location_id: str) -> None:
        """Best effort: the connection stays usable without a callback."""
        if not location_id:
            return
        webhook_url = f"{self.api_config.api_endpoint}/api/partner/webhook"
        try:
            await self.client.create_callback(access_token, location_id, webhook_url)
        except (UpstreamError, httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to create partner webhook: {e}")

    @staticmethod
    def _expires_at(expires_in: Any) -> str:
        try:
            seconds = int(expires_in) if expires_in else DEFAULT_EXPIRES_IN
        except (TypeError, ValueError):
            seconds = DEFAULT_EXPIRES_IN
        return (datetime.now(UTC) + timedelta(seconds=seconds)).isoformat()

    # Connection state

    async def get_status(self, organization_id: str) -> Dict[str, Any]:
        """Connection metadata; no decryption involved."""
        connection = await self.connections.get(organization_id)
        if not connection:
            return {"connected": False, "message": "No partner connection found"}
        public = connection.public_dict()
        return {
            "connected": public["is_active"],
            "accountName": public["account_name"],
            "accountId": public["remote_account_id"],
            "connectedAt": public["connected_at"],
            "lastSyncedAt": public["last_synced_at"],
        }

    async def disconnect(self, organization_id: str) -> Dict[str, Any]:
        """Soft delete; historical data and the row stay for reconnection."""
        existed = await self.connections.deactivate(organization_id)
        if existed:
            logger.info(f"Partner connection deactivated for organization {organization_id}")
        return {"success": True, "message": "Partner disconnected successfully"}

    async def _require_active(self, organization_id: str) -> ConnectionRecord:
        connection = await self.connections.get_active(organization_id)
        if not connection:
            raise NotFoundError("No active partner connection found")
        return connection

    def _encryption_secret(self) -> str:
        if not self.security.encryption_secret:
            logger.error("ENCRYPTION_SECRET is not configured")
            raise ServerConfigError()
        return self.security.encryption_secret

    async def _access_token(self, connection: ConnectionRecord) -> str:
        """
        Decrypt the stored access token, refreshing it first when expired.

        Refreshed tokens are encrypted and written back before use.
        """
        secret = self._encryption_secret()
        try:
            access_token = decrypt(connection.access_token_enc, secret)
        except DecryptionError as e:
            logger.error(f"Stored access token unreadable for {connection.organization_id}")
            raise ServeGateError("Failed to decrypt stored credentials") from e

        if not self._is_expired(connection.token_expires_at) or not connection.refresh_token_enc:
            return access_token

        try:
            refresh_token = decrypt(connection.refresh_token_enc, secret)
        except DecryptionError as e:
            raise ServeGateError("Failed to decrypt stored credentials") from e
        if not refresh_token:
            return access_token

        logger.info(f"Refreshing partner access token for {connection.organization_id}")
        tokens = await self.client.refresh_access_token(refresh_token)
        access_token = tokens["access_token"]
        await self.connections.update_tokens(
            connection.organization_id,
            access_token_enc=encrypt(access_token, secret),
            refresh_token_enc=encrypt(tokens.get("refresh_token") or refresh_token, secret),
            token_expires_at=self._expires_at(tokens.get("expires_in")),
        )
        return access_token

    @staticmethod
    def _is_expired(token_expires_at: str) -> bool:
        try:
            expires_at = datetime.fromisoformat(token_expires_at)
        except (TypeError, ValueError):
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at <= datetime.now(UTC)

    # Outbound operations

    async def sync_menu(self, organization_id: str) -> Dict[str, Any]:
        """
        Push the organization's local catalog to the partner.

        Logic:
        1. Require an active connection
        2. Decrypt (or refresh) the access token
        3. Load and transform the local menu
        4. Replace the partner catalog identified by the location id
        5. Record last_synced_at only after a successful push
        """
        connection = await self._require_active(organization_id)
        access_token = await self._access_token(connection)

        menu_items = await self.menus.get_menu(organization_id)
        if not menu_items:
            raise NotFoundError("No menu data found")

        catalog = menu_to_catalog(menu_items)
        await self.client.put_catalog(access_token, connection.remote_location_id, catalog)
        await self.connections.mark_synced(organization_id)

        logger.info(f"Synced {len(menu_items)} menu items for {organization_id}")
        return {
            "success": True,
            "itemsSynced": len(menu_items),
            "message": "Menu synced successfully to partner",
        }

    async def update_order_status(
        self,
        organization_id: str,
        remote_order_id: str,
        status: str,
        expected_time: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Push a partial status update; local order storage is not touched."""
        connection = await self._require_active(organization_id)
        access_token = await self._access_token(connection)

        update: Dict[str, Any] = {"status": status}
        if expected_time:
            update["expected_time"] = expected_time

        await self.client.patch_order(access_token, remote_order_id, update)
        return {"success": True, "message": "Order status updated successfully"}

    async def list_orders(self, organization_id: str, branch_code: Optional[str] = None) -> Dict[str, Any]:
        """Today's orders that arrived through the partner."""
        orders = await self.orders.read_today_orders(organization_id, branch_code or organization_id)
        partner_orders = [o for o in orders if o.get("orderSource") == self.partner_config.source_name]
        return {"orders": partner_orders, "count": len(partner_orders)}

    # Webhook

    async def handle_webhook(self, raw_body: bytes, signature: Optional[str]) -> int:
        """
        Ingest a partner webhook.

        Delivery acknowledgment is decoupled from processing outcome: the
        sender retries on any non-2xx, so only a bad signature yields 401;
        everything after verification answers 200.

        Returns:
            HTTP status for the sender
        """
        if self.security.webhook_secret:
            if not validate_hmac(raw_body, signature, self.security.webhook_secret):
                logger.error("Invalid webhook signature")
                return 401

        try:
            await self._process_webhook(raw_body)
        except Exception as e:
            logger.exception(f"Webhook processing error: {e}")
            await self._log_event("webhook_processing_failed", {"error": str(e)})

        return 200

    async def _process_webhook(self, raw_body: bytes) -> None:
        try:
            webhook = json.loads(raw_body)
        except (TypeError, ValueError):
            logger.error("Webhook body is not valid JSON")
            await self._log_event("webhook_invalid_body", {})
            return
        if not isinstance(webhook, dict):
            return

        event_type = webhook.get("event_type")
        location_id = webhook.get("location_id")

        connection = await self.connections.find_active_by_location(str(location_id or ""))
        if not connection:
            logger.warning(f"No connection found for location: {location_id}")
            return

        if event_type not in ORDER_EVENTS:
            logger.debug(f"Ignoring webhook event {event_type}")
            return

        organization_id = connection.organization_id
        order = webhook.get("order") or {}
        row_key = str(order.get("id") or generate_id())
        record = build_order_record(
            organization_id=organization_id,
            row_key=row_key,
            location_id=location_id,
            internal=order_to_internal(order),
            source_name=self.partner_config.source_name,
        )

        try:
            await self.orders.add_order(organization_id, row_key, record)
        except Exception as e:
            logger.error(f"Failed to store order {row_key} for {organization_id}: {e}")
            await self._log_event(
                "order_store_failed",
                {"organization_id": organization_id, "row_key": row_key, "error": str(e)},
            )
            return

        logger.info(f"Order {row_key} stored successfully for {organization_id}")

    async def _log_event(self, event_type: str, data: dict) -> None:
        """Record a processing failure in the audit trail."""
        if not self.redis:
            return
        event = {"type": event_type, "data": data, "timestamp": datetime.now(UTC).isoformat()}
        try:
            await self.redis.lpush(AUDIT_KEY, json.dumps(event))
            # Keep last 10000 events
            await self.redis.ltrim(AUDIT_KEY, 0, 9999)
        except Exception as e:
            logger.error(f"Failed to record audit event {event_type}: {e}")
