import logging

from servegate.config.provider import EnvConfigProvider
from servegate.errors import BadRequestError, ServerConfigError, UpstreamError
from servegate.logging_config import HealthCheckFilter, get_logging_config


def test_env_provider_defaults(monkeypatch):
    for name in ("APP_ENV", "CORS_ORIGINS", "CORS_DEFAULT_ORIGIN", "REDIS_PORT", "EC_PUBLIC_KEY_PEM"):
        monkeypatch.delenv(name, raising=False)
    provider = EnvConfigProvider()

    api = provider.get_api_config()
    assert api.app_env == "production"
    assert api.is_production
    assert api.cors_default_origin == api.cors_origins[-1]
    assert provider.get_token_config().is_configured is False
    assert provider.get_storage_config().url == "redis://localhost:6379/0"
    assert provider.get_partner_config().source_name == "hubrise"


def test_env_provider_reads_overrides(monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test")
    monkeypatch.setenv("APP_URL", "https://app.test/")
    monkeypatch.setenv("REDIS_PORT", "tcp://10.0.0.5:6380")
    monkeypatch.setenv("EC_PUBLIC_KEY_PEM", "-----BEGIN PUBLIC KEY-----\\nAAAA\\n-----END PUBLIC KEY-----")
    provider = EnvConfigProvider()

    api = provider.get_api_config()
    assert api.is_production is False
    assert api.cors_origins == ["https://a.test", "https://b.test"]
    assert api.app_url == "https://app.test"
    assert provider.get_storage_config().port == 6380
    assert provider.get_token_config().public_key_pem.count("\n") == 2


def test_error_bodies():
    assert BadRequestError("Organization ID not found").to_dict() == {"error": "Organization ID not found"}
    assert ServerConfigError().to_dict() == {"error": "Server configuration error"}
    upstream = UpstreamError("Menu sync failed", details="bad catalog")
    assert upstream.status_code == 500
    assert upstream.to_dict() == {"error": "Menu sync failed", "details": "bad catalog"}


def test_health_check_filter():
    health_filter = HealthCheckFilter()

    def record(name, message):
        return logging.LogRecord(name, logging.INFO, __file__, 1, message, None, None)

    assert health_filter.filter(record("uvicorn.access", '127.0.0.1 - "GET /healthz HTTP/1.1" 200')) is False
    assert health_filter.filter(record("uvicorn.access", '127.0.0.1 - "GET /api/partner/status HTTP/1.1" 200'))
    assert health_filter.filter(record("servegate.main", "GET /healthz"))


def test_logging_level_override():
    config = get_logging_config("debug")

    assert config["loggers"]["servegate"]["level"] == "DEBUG"
    assert config["loggers"]["httpx"]["level"] == "WARNING"
