"""
Turnstile bot-challenge verifier implementing the ChallengeVerifier interface.
"""

import logging

import httpx

from ...config.provider import ChallengeConfig
from ...errors import ServerConfigError
from .interfaces import ChallengeResult

logger = logging.getLogger(__name__)


class TurnstileVerifier:
    """
    Verifies proof-of-human tokens with the challenge provider.

    A non-2xx answer, a body that is not JSON, a transport failure or
    ``success: false`` all count as a failed challenge, never as a system error.
    """

    def __init__(self, config: ChallengeConfig, http_client: httpx.AsyncClient):
        """
        Initialize verifier with injected dependencies.

        Args:
            config: Challenge configuration
            http_client: Shared async HTTP client
        """
        self.config = config
        self.http = http_client

    async def verify(self, challenge_token: str) -> ChallengeResult:
        if not self.config.secret:
            logger.error("TURNSTILE_SECRET is not configured")
            raise ServerConfigError()

        try:
            response = await self.http.post(
                self.config.verify_url,
                json={"secret": self.config.secret, "response": challenge_token},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Challenge verification request failed: {type(e).__name__}")
            return ChallengeResult(success=False, details={"error": "verification_unavailable"})

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        if not response.is_success:
            logger.warning(f"Challenge provider answered HTTP {response.status_code}")
            return ChallengeResult(success=False, details=result or {"status": response.status_code})

        return ChallengeResult(success=result.get("success") is True, details=result)
