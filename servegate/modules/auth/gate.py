"""
Authentication gate.

Turns a route policy plus request headers into a final allow/deny decision.
The gate never touches persisted state; it is a request-scoped decision
function and handlers never re-authenticate.
"""

import logging
import time
from typing import Callable, Mapping, Optional

from ...errors import ClientAuthError, LicenseError, ServeGateError, ServerConfigError
from ..api.models import RoutePolicy, TokenClaims
from .credentials import extract_challenge_token, extract_token
from .interfaces import ChallengeVerifier, GateDecision, TokenValidator
from .token_verifier import VerificationError

logger = logging.getLogger(__name__)

LICENSE_ERROR = "License expired or missing. Please purchase a plan."


class AuthenticationGate:
    """
    Per-route authentication policy engine.

    This is a black box that:
    - Accepts any TokenValidator implementation
    - Accepts any ChallengeVerifier implementation
    - Enforces the licence-expiry business rule on verified tokens
    """

    def __init__(
        self,
        token_validator: TokenValidator,
        challenge_verifier: ChallengeVerifier,
        app_env: str,
        challenge_header: str = "turnstileToken",
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize with injected dependencies.

        Args:
            token_validator: Verifies bearer tokens
            challenge_verifier: Verifies bot-challenge tokens
            app_env: Deployment environment; "production" disables header fallback
            challenge_header: Header carrying the bot-challenge token
            clock: Source of the current Unix time
        """
        self.token_validator = token_validator
        self.challenge_verifier = challenge_verifier
        self.app_env = app_env
        self.challenge_header = challenge_header
        self.clock = clock

        # Track decisions for diagnostics
        self.auth_stats = {"allowed": 0, "denied": 0}

    async def authenticate(self, headers: Mapping[str, str], policy: RoutePolicy) -> GateDecision:
        """
        Decide whether a request may reach its handler.

        Args:
            headers: Request headers
            policy: Policy bound to the matched route

        Returns:
            GateDecision; ``auth_data`` holds the claims for token routes
        """
        try:
            claims: Optional[TokenClaims] = None
            if policy == RoutePolicy.BOT_CHALLENGE:
                await self._check_challenge(headers)
            elif policy == RoutePolicy.TOKEN:
                claims = self._check_token(headers)
        except ServeGateError as e:
            self.auth_stats["denied"] += 1
            return GateDecision(ok=False, status_code=e.status_code, error=e.message, details=e.details)

        self.auth_stats["allowed"] += 1
        return GateDecision(ok=True, auth_data=claims)

    async def _check_challenge(self, headers: Mapping[str, str]) -> None:
        challenge_token = extract_challenge_token(headers, self.challenge_header)
        if not challenge_token:
            raise LicenseError("Turnstile token missing")

        result = await self.challenge_verifier.verify(challenge_token)
        if not result.success:
            logger.warning("Bot challenge failed")
            raise LicenseError("Invalid Turnstile token", details=result.details)

    def _check_token(self, headers: Mapping[str, str]) -> TokenClaims:
        token = extract_token(headers, self.app_env)
        try:
            claims = self.token_validator.verify(token)
        except VerificationError as e:
            if e.is_server_fault:
                raise ServerConfigError() from e
            logger.info(f"Token rejected: {e.message}")
            raise ClientAuthError(e.message or "Invalid token") from e

        if not self.licence_is_valid(claims):
            logger.info(f"Licence expired or missing for subject {claims.sub}")
            raise LicenseError(LICENSE_ERROR)

        return claims

    def licence_is_valid(self, claims: TokenClaims) -> bool:
        """A licence is valid while its expiry lies strictly in the future."""
        licence_validity = claims.user_claims.licence_validity
        if licence_validity is None:
            return False
        now = int(self.clock())
        return licence_validity > now
