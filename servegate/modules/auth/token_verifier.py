"""
ES256 bearer token verifier implementing the TokenValidator interface.

This module follows Black Box Design principles:
- Accepts configuration via dependency injection
- No direct environment variable access
- No I/O; the parsed public key is kept after first use
"""

import logging
from typing import Optional

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import ValidationError

from ...config.provider import TokenConfig
from ..api.models import TokenClaims

logger = logging.getLogger(__name__)


class VerificationError(Exception):
    """Token could not be verified.

    ``status_code`` is 401 for client faults and 500 for server configuration
    faults (for example a missing public key).
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_server_fault(self) -> bool:
        return self.status_code >= 500


class TokenVerifier:
    """
    Verifies bearer tokens minted by the identity authority.

    The signing algorithm is pinned; tokens announcing any other algorithm in
    their header are rejected.
    """

    def __init__(self, config: TokenConfig):
        """
        Initialize verifier with injected config.

        Args:
            config: Token configuration object
        """
        self.config = config
        self.issuer = config.issuer
        self.audience = config.audience
        self.algorithm = config.algorithm
        self._public_key: Optional[ec.EllipticCurvePublicKey] = None

    def _load_public_key(self) -> ec.EllipticCurvePublicKey:
        if self._public_key is not None:
            return self._public_key

        if not self.config.is_configured:
            logger.error("EC_PUBLIC_KEY_PEM is not set; cannot verify tokens")
            raise VerificationError(500, "Server configuration error: Public key not found.")

        try:
            key = serialization.load_pem_public_key(self.config.public_key_pem.encode("utf-8"))
        except (ValueError, TypeError) as e:
            logger.error(f"Failed to load token public key: {type(e).__name__}")
            raise VerificationError(500, "Server configuration error: Invalid public key.") from e

        if not isinstance(key, ec.EllipticCurvePublicKey) or not isinstance(key.curve, ec.SECP256R1):
            logger.error("Token public key is not a P-256 EC key")
            raise VerificationError(500, "Server configuration error: Invalid public key.")

        self._public_key = key
        return key

    def verify(self, token: Optional[str]) -> TokenClaims:
        """
        Verify signature, issuer, audience and temporal claims.

        Args:
            token: Raw token string

        Returns:
            Typed claims

        Raises:
            VerificationError: 401 on client faults, 500 on configuration faults
        """
        if not token:
            raise VerificationError(401, "Token not provided")

        public_key = self._load_public_key()

        try:
            payload = jwt.decode(
                token,
                public_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iss": bool(self.issuer),
                    "verify_aud": bool(self.audience),
                },
            )
        except jwt.ExpiredSignatureError as e:
            logger.debug("Token expired")
            raise VerificationError(401, str(e)) from e
        except jwt.InvalidAudienceError as e:
            logger.debug(f"Invalid audience in token (expected {self.audience})")
            raise VerificationError(401, str(e)) from e
        except jwt.InvalidIssuerError as e:
            logger.debug(f"Invalid issuer in token (expected {self.issuer})")
            raise VerificationError(401, str(e)) from e
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid token: {e}")
            raise VerificationError(401, str(e) or "Invalid token") from e

        try:
            return TokenClaims.model_validate(payload)
        except ValidationError as e:
            logger.debug(f"Token claims do not match schema: {e.error_count()} errors")
            raise VerificationError(401, "Invalid token claims") from e
