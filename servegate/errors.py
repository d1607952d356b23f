"""
Error taxonomy for ServeGate.

Every error carries the HTTP status it maps to and a message that is safe to
return to the caller. ``details`` is optional diagnostic payload (for example
an upstream response body).
"""

from typing import Any, Dict, Optional


class ServeGateError(Exception):
    """Base class for errors that map to a JSON error response."""

    status_code: int = 500

    def __init__(self, message: str, details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class BadRequestError(ServeGateError):
    status_code = 400


class ClientAuthError(ServeGateError):
    """Missing, invalid or expired credential."""

    status_code = 401


class LicenseError(ServeGateError):
    """Valid credential without a usable licence, or failed bot challenge."""

    status_code = 403


class NotFoundError(ServeGateError):
    status_code = 404


class ServerConfigError(ServeGateError):
    """A required server secret or key is absent.

    The public message never names the missing setting.
    """

    status_code = 500

    def __init__(self, message: str = "Server configuration error"):
        super().__init__(message)


class UpstreamError(ServeGateError):
    """Non-2xx answer from a partner API call."""

    status_code = 500
