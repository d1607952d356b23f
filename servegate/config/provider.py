"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass, field
from typing import List, Optional, Protocol


@dataclass
class TokenConfig:
    """Bearer token verification configuration."""
    public_key_pem: Optional[str]
    issuer: Optional[str]
    audience: Optional[str]
    algorithm: str = "ES256"

    @property
    def is_configured(self) -> bool:
        """Check if a verification key is available."""
        return bool(self.public_key_pem)


@dataclass
class ChallengeConfig:
    """Bot-challenge (Turnstile) configuration."""
    verify_url: str
    secret: Optional[str]
    header_name: str = "turnstileToken"


@dataclass
class PartnerConfig:
    """OAuth partner (HubRise-compatible) configuration."""
    client_id: Optional[str]
    client_secret: Optional[str]
    redirect_uri: Optional[str]
    scope: str
    authorize_url: str
    token_url: str
    api_base_url: str
    source_name: str = "hubrise"
    callback_events: List[str] = field(default_factory=lambda: ["order.create", "order.update"])


@dataclass
class SecurityConfig:
    """Secrets used by the integration layer."""
    encryption_secret: Optional[str]
    webhook_secret: Optional[str]
    webhook_signature_header: str = "X-Partner-Hmac-SHA256"


@dataclass
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    app_env: str
    app_url: str
    api_endpoint: str
    cors_origins: List[str]
    cors_default_origin: str
    http_timeout: float = 10.0

    @property
    def is_production(self) -> bool:
        """Check if the deployment is production."""
        return self.app_env.lower() == "production"


@dataclass
class StorageConfig:
    """Redis storage configuration."""
    host: str
    port: int
    db: int
    password: Optional[str] = None

    @property
    def url(self) -> str:
        return f"redis://{self.host}:{self.port}/{self.db}"


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_token_config(self) -> TokenConfig:
        """Get token verification configuration."""
        ...

    def get_challenge_config(self) -> ChallengeConfig:
        """Get bot-challenge configuration."""
        ...

    def get_partner_config(self) -> PartnerConfig:
        """Get partner OAuth configuration."""
        ...

    def get_security_config(self) -> SecurityConfig:
        """Get integration secrets."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration."""
        ...


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_token_config(self) -> TokenConfig:
        """Get token verification configuration from environment variables."""
        pem = os.getenv("EC_PUBLIC_KEY_PEM")
        if pem:
            # Secrets managers often store PEMs on a single line
            pem = pem.replace("\\n", "\n")

        return TokenConfig(
            public_key_pem=pem,
            issuer=os.getenv("TOKEN_ISSUER"),
            audience=os.getenv("TOKEN_AUDIENCE"),
        )

    def get_challenge_config(self) -> ChallengeConfig:
        """Get Turnstile configuration from environment variables."""
        return ChallengeConfig(
            verify_url=os.getenv(
                "TURNSTILE_URL", "https://challenges.cloudflare.com/turnstile/v0/siteverify"
            ),
            secret=os.getenv("TURNSTILE_SECRET"),
        )

    def get_partner_config(self) -> PartnerConfig:
        """Get partner OAuth configuration from environment variables."""
        return PartnerConfig(
            client_id=os.getenv("PARTNER_CLIENT_ID"),
            client_secret=os.getenv("PARTNER_CLIENT_SECRET"),
            redirect_uri=os.getenv("PARTNER_REDIRECT_URI"),
            scope=os.getenv("PARTNER_SCOPE", "location[orders.write,catalog.write]"),
            authorize_url=os.getenv(
                "PARTNER_AUTHORIZE_URL", "https://manager.hubrise.com/oauth2/v1/authorize"
            ),
            token_url=os.getenv("PARTNER_TOKEN_URL", "https://manager.hubrise.com/oauth2/v1/token"),
            api_base_url=os.getenv("PARTNER_API_URL", "https://api.hubrise.com/v1"),
            source_name=os.getenv("PARTNER_SOURCE_NAME", "hubrise"),
        )

    def get_security_config(self) -> SecurityConfig:
        """Get integration secrets from environment variables."""
        return SecurityConfig(
            encryption_secret=os.getenv("ENCRYPTION_SECRET"),
            webhook_secret=os.getenv("PARTNER_WEBHOOK_SECRET"),
            webhook_signature_header=os.getenv(
                "PARTNER_WEBHOOK_SIGNATURE_HEADER", "X-Partner-Hmac-SHA256"
            ),
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        origins = _split_csv(
            os.getenv("CORS_ORIGINS", "http://localhost:3000,https://scantoserve.com")
        )
        return APIConfig(
            port=int(os.getenv("API_PORT", "8080")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=os.getenv("API_DEBUG", "false").lower() == "true",
            app_env=os.getenv("APP_ENV", "production"),
            app_url=os.getenv("APP_URL", "http://localhost:3000").rstrip("/"),
            api_endpoint=os.getenv("API_ENDPOINT", "http://localhost:8080").rstrip("/"),
            cors_origins=origins,
            cors_default_origin=os.getenv(
                "CORS_DEFAULT_ORIGIN", origins[-1] if origins else "http://localhost:3000"
            ),
            http_timeout=float(os.getenv("HTTP_TIMEOUT_SECONDS", "10")),
        )

    def get_storage_config(self) -> StorageConfig:
        """Get Redis configuration from environment variables."""
        # Parse Redis port (might be in tcp://host:port format from K8s)
        redis_port_env = os.getenv("REDIS_PORT", "6379")
        if redis_port_env.startswith("tcp://"):
            redis_port = int(redis_port_env.split(":")[-1])
        else:
            redis_port = int(redis_port_env)

        return StorageConfig(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=redis_port,
            db=int(os.getenv("REDIS_DB", "0")),
            password=os.getenv("REDIS_PASSWORD"),
        )
