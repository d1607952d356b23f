"""
Shared pytest fixtures for ServeGate tests.

This module provides common fixtures including:
- Redis mocks (plain AsyncMock and an in-memory variant that reads back writes)
- P-256 key material and token minting helpers
- Configuration objects for every module
"""

import fnmatch
import os
import sys
import time
from typing import Any, Dict, Optional
from unittest.mock import AsyncMock

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from servegate.config.provider import (
    APIConfig,
    ChallengeConfig,
    PartnerConfig,
    SecurityConfig,
    StorageConfig,
    TokenConfig,
)

TEST_ISSUER = "https://identity.test"
TEST_AUDIENCE = "servegate-test"
TEST_ENCRYPTION_SECRET = "unit-test-encryption-secret"
TEST_WEBHOOK_SECRET = "unit-test-webhook-secret"


# =============================================================================
# Key material and tokens
# =============================================================================

@pytest.fixture(scope="session")
def signing_key() -> ec.EllipticCurvePrivateKey:
    """P-256 private key standing in for the identity authority."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def public_key_pem(signing_key) -> str:
    return signing_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


def mint_token(
    key: Any,
    user_claims: Optional[Dict[str, Any]] = None,
    algorithm: str = "ES256",
    **overrides: Any,
) -> str:
    """
    Sign a token the way the identity authority does.

    Standard claims default to a valid, unexpired token for the test issuer
    and audience; pass ``name=None`` to drop a claim.
    """
    now = int(time.time())
    payload: Dict[str, Any] = {
        "iss": TEST_ISSUER,
        "aud": TEST_AUDIENCE,
        "sub": "user-1",
        "iat": now,
        "exp": now + 3600,
    }
    if user_claims is not None:
        payload["userClaims"] = user_claims
    payload.update(overrides)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, key, algorithm=algorithm)


@pytest.fixture
def valid_user_claims() -> Dict[str, Any]:
    """Claims of a caller with a licence valid for another day."""
    return {"LicenceValidity": int(time.time()) + 86400, "MotelID": "org-1"}


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def token_config(public_key_pem) -> TokenConfig:
    return TokenConfig(public_key_pem=public_key_pem, issuer=TEST_ISSUER, audience=TEST_AUDIENCE)


@pytest.fixture
def challenge_config() -> ChallengeConfig:
    return ChallengeConfig(verify_url="https://challenge.test/siteverify", secret="challenge-secret")


@pytest.fixture
def partner_config() -> PartnerConfig:
    return PartnerConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="https://api.test/api/partner/callback",
        scope="location[orders.write,catalog.write]",
        authorize_url="https://partner.test/oauth2/v1/authorize",
        token_url="https://partner.test/oauth2/v1/token",
        api_base_url="https://api.partner.test/v1",
    )


@pytest.fixture
def security_config() -> SecurityConfig:
    return SecurityConfig(
        encryption_secret=TEST_ENCRYPTION_SECRET,
        webhook_secret=TEST_WEBHOOK_SECRET,
    )


@pytest.fixture
def api_config() -> APIConfig:
    return APIConfig(
        port=8080,
        host="127.0.0.1",
        debug=False,
        app_env="production",
        app_url="https://app.test",
        api_endpoint="https://api.test",
        cors_origins=["http://localhost:3000", "https://app.test"],
        cors_default_origin="https://app.test",
    )


class StaticConfigProvider:
    """ConfigProvider returning prebuilt config objects."""

    def __init__(self, token, challenge, partner, security, api):
        self.token = token
        self.challenge = challenge
        self.partner = partner
        self.security = security
        self.api = api

    def get_token_config(self) -> TokenConfig:
        return self.token

    def get_challenge_config(self) -> ChallengeConfig:
        return self.challenge

    def get_partner_config(self) -> PartnerConfig:
        return self.partner

    def get_security_config(self) -> SecurityConfig:
        return self.security

    def get_api_config(self) -> APIConfig:
        return self.api

    def get_storage_config(self) -> StorageConfig:
        return StorageConfig(host="localhost", port=6379, db=0)


@pytest.fixture
def config_provider(token_config, challenge_config, partner_config, security_config, api_config):
    return StaticConfigProvider(
        token_config, challenge_config, partner_config, security_config, api_config
    )


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis():
    """Create a mock Redis client for async operations."""
    redis = AsyncMock()

    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.exists = AsyncMock(return_value=0)
    redis.hset = AsyncMock()
    redis.hsetnx = AsyncMock(return_value=1)
    redis.hget = AsyncMock(return_value=None)
    redis.hgetall = AsyncMock(return_value={})
    redis.lpush = AsyncMock()
    redis.ltrim = AsyncMock()

    return redis


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    Strings, hashes and lists share one keyspace, as in Redis. Values are
    stored as strings, matching a client created with decode_responses=True.
    """
    storage: Dict[str, Any] = {}

    redis = AsyncMock()

    async def mock_set(key, value, *args, **kwargs):
        storage[key] = str(value)
        return True

    async def mock_get(key):
        value = storage.get(key)
        return value if isinstance(value, str) else None

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                count += 1
        return count

    async def mock_exists(*keys):
        return sum(1 for k in keys if k in storage)

    async def mock_keys(pattern):
        return [k for k in storage.keys() if fnmatch.fnmatch(k, pattern)]

    async def mock_hset(key, field=None, value=None, mapping=None):
        bucket = storage.setdefault(key, {})
        added = 0
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        for name, item in items.items():
            if name not in bucket:
                added += 1
            bucket[name] = str(item)
        return added

    async def mock_hsetnx(key, field, value):
        bucket = storage.setdefault(key, {})
        if field in bucket:
            return 0
        bucket[field] = str(value)
        return 1

    async def mock_hget(key, field):
        return storage.get(key, {}).get(field)

    async def mock_hgetall(key):
        return dict(storage.get(key, {}))

    async def mock_lpush(key, *values):
        bucket = storage.setdefault(key, [])
        for value in values:
            bucket.insert(0, str(value))
        return len(bucket)

    async def mock_ltrim(key, start, end):
        if key in storage:
            storage[key] = storage[key][start : end + 1]
        return True

    async def mock_lrange(key, start, end):
        bucket = storage.get(key, [])
        return bucket[start:] if end == -1 else bucket[start : end + 1]

    redis.set = mock_set
    redis.get = mock_get
    redis.delete = mock_delete
    redis.exists = mock_exists
    redis.keys = mock_keys
    redis.hset = mock_hset
    redis.hsetnx = mock_hsetnx
    redis.hget = mock_hget
    redis.hgetall = mock_hgetall
    redis.lpush = mock_lpush
    redis.ltrim = mock_ltrim
    redis.lrange = mock_lrange
    redis._storage = storage  # Expose for test assertions

    return redis


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring infrastructure"
    )
