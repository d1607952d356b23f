"""Authentication interfaces following Black Box Design principles."""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

from ..api.models import TokenClaims


class TokenValidator(Protocol):
    """Protocol for bearer token validation - allows swappable implementations."""

    def verify(self, token: Optional[str]) -> TokenClaims:
        """
        Verify a bearer token.

        Args:
            token: Raw token string

        Returns:
            Verified claims

        Raises:
            VerificationError: With the HTTP status the failure maps to
        """
        ...


class ChallengeVerifier(Protocol):
    """Protocol for bot-challenge verification."""

    async def verify(self, challenge_token: str) -> "ChallengeResult":
        """Ask the verification service whether the token proves a human."""
        ...


@dataclass
class ChallengeResult:
    """Outcome of a bot-challenge verification."""
    success: bool
    details: Optional[Dict[str, Any]] = None


@dataclass
class GateDecision:
    """Standardized result of the authentication gate."""
    ok: bool
    status_code: int = 200
    error: Optional[str] = None
    details: Optional[Any] = None
    auth_data: Optional[TokenClaims] = None

    def error_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


def get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup that works for plain dicts too."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, item in headers.items():
        if key.lower() == lowered:
            return item
    return None
