"""
Credential extraction from inbound request headers.

The bearer credential normally travels in the HttpOnly ``accessToken`` cookie.
Outside production the ``Authorization`` header is accepted as a fallback so
the API can be exercised from local tools.
"""

from typing import Mapping, Optional
from urllib.parse import unquote

from .interfaces import get_header

ACCESS_TOKEN_COOKIE = "accessToken"
CHALLENGE_HEADER = "turnstileToken"
PRODUCTION_ENV = "production"


def get_cookie(headers: Mapping[str, str], name: str) -> Optional[str]:
    """
    Read a cookie value from the raw Cookie header.

    The first cookie with a matching name wins. Everything after the first
    '=' is the value, so values containing '=' survive. The value is
    percent-decoded; an empty value counts as absent.
    """
    cookie_header = get_header(headers, "Cookie") or ""
    for cookie in cookie_header.split(";"):
        cookie_name, *rest = cookie.strip().split("=")
        if cookie_name == name:
            value = "=".join(rest)
            return unquote(value) if value else None
    return None


def extract_token(headers: Mapping[str, str], app_env: str) -> Optional[str]:
    """
    Locate the caller's bearer credential.

    Args:
        headers: Request headers
        app_env: Deployment environment name

    Returns:
        Token string or None
    """
    token = get_cookie(headers, ACCESS_TOKEN_COOKIE)
    if token:
        return token

    if (app_env or "").lower() == PRODUCTION_ENV:
        return None

    # Development only: take the Authorization header, with or without the scheme
    auth_header = get_header(headers, "Authorization")
    if not auth_header:
        return None
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return auth_header


def extract_challenge_token(headers: Mapping[str, str], header_name: str = CHALLENGE_HEADER) -> Optional[str]:
    """Read the bot-challenge token header."""
    return get_header(headers, header_name) or None
