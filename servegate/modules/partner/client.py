"""
Partner API client (HubRise-compatible).

Thin async wrapper over the partner's OAuth token endpoint and REST API.
Every non-2xx answer raises UpstreamError carrying the upstream body.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ...config.provider import PartnerConfig
from ...errors import UpstreamError

logger = logging.getLogger(__name__)


class PartnerClient:
    def __init__(self, config: PartnerConfig, http_client: httpx.AsyncClient):
        """
        Initialize client with injected dependencies.

        Args:
            config: Partner configuration
            http_client: Shared async HTTP client
        """
        self.config = config
        self.http = http_client
        self.api_base_url = config.api_base_url.rstrip("/")

    @staticmethod
    def _bearer(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}", "Content-Type": "application/json"}

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        logger.error(f"{action} failed with HTTP {response.status_code}")
        raise UpstreamError(f"{action} failed", details=response.text)

    async def _token_request(self, form: Dict[str, str], action: str) -> Dict[str, Any]:
        response = await self.http.post(
            self.config.token_url,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        self._raise_for_status(response, action)
        return response.json()

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an OAuth authorization code.

        Returns:
            {access_token, refresh_token, expires_in, account_id, location_id}
        """
        return await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.config.client_id or "",
                "client_secret": self.config.client_secret or "",
                "redirect_uri": self.config.redirect_uri or "",
            },
            "Token exchange",
        )

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """Obtain a new access token from a refresh token."""
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.config.client_id or "",
                "client_secret": self.config.client_secret or "",
            },
            "Token refresh",
        )

    async def get_account(self, access_token: str, account_id: str) -> Dict[str, Any]:
        response = await self.http.get(
            f"{self.api_base_url}/accounts/{account_id}", headers=self._bearer(access_token)
        )
        self._raise_for_status(response, "Account lookup")
        return response.json()

    async def put_catalog(self, access_token: str, catalog_id: str, catalog: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the partner catalog in full."""
        response = await self.http.put(
            f"{self.api_base_url}/catalogs/{catalog_id}",
            json=catalog,
            headers=self._bearer(access_token),
        )
        self._raise_for_status(response, "Menu sync")
        return response.json() if response.content else {}

    async def patch_order(self, access_token: str, order_id: str, update: Dict[str, Any]) -> Dict[str, Any]:
        """Partially update a partner order."""
        response = await self.http.patch(
            f"{self.api_base_url}/orders/{order_id}",
            json=update,
            headers=self._bearer(access_token),
        )
        self._raise_for_status(response, "Order update")
        return response.json() if response.content else {}

    async def create_callback(
        self,
        access_token: str,
        location_id: str,
        callback_url: str,
        events: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Register the webhook URL with the partner."""
        response = await self.http.post(
            f"{self.api_base_url}/locations/{location_id}/callbacks",
            json={"url": callback_url, "events": events or self.config.callback_events},
            headers=self._bearer(access_token),
        )
        self._raise_for_status(response, "Callback creation")
        return response.json() if response.content else {}
