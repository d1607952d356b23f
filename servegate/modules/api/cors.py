"""CORS header construction keyed off an injected origin allow-list."""

from typing import Dict, List, Mapping, Optional

ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization, X-Turnstile-Token, X-Code-Token,turnstileToken,code"


class CorsPolicy:
    """Builds Access-Control-* headers for a request."""

    def __init__(self, allowed_origins: List[str], default_origin: str):
        self.allowed_origins = list(allowed_origins)
        self.default_origin = default_origin

    def headers_for(self, request_headers: Mapping[str, str]) -> Dict[str, str]:
        """
        Get CORS headers for the caller.

        Allowed origins are echoed back; anything else gets the restrictive
        default origin.
        """
        origin: Optional[str] = request_headers.get("origin")
        headers = {
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Access-Control-Allow-Credentials": "true",
        }
        if origin and origin in self.allowed_origins:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
        else:
            headers["Access-Control-Allow-Origin"] = self.default_origin
        return headers
