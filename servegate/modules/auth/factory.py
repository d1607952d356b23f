"""
Authentication Factory following Black Box Design principles.

This factory:
- Constructs the authentication stack based on configuration
- Wires dependencies together
- Returns only the gate (hiding implementation)
"""

import logging
from typing import Any, Optional

import httpx

from ...config.provider import ConfigProvider
from .challenge import TurnstileVerifier
from .gate import AuthenticationGate
from .token_verifier import TokenVerifier

logger = logging.getLogger(__name__)


class AuthFactory:
    """
    Factory for building the authentication stack.

    This is the composition root that:
    - Creates all auth components
    - Wires them together via dependency injection
    - Returns only the public interface
    """

    @staticmethod
    def build(config_provider: ConfigProvider, http_client: httpx.AsyncClient) -> AuthenticationGate:
        """
        Build the complete authentication stack.

        Args:
            config_provider: Configuration provider
            http_client: Shared async HTTP client for challenge verification

        Returns:
            AuthenticationGate
        """
        token_config = config_provider.get_token_config()
        challenge_config = config_provider.get_challenge_config()
        api_config = config_provider.get_api_config()

        if not token_config.is_configured:
            logger.warning("Token public key not configured - token routes will answer 500")
        if not challenge_config.secret:
            logger.warning("Challenge secret not configured - challenge routes will answer 500")
        if not api_config.is_production:
            logger.info(f"APP_ENV={api_config.app_env}: Authorization header fallback enabled")

        return AuthenticationGate(
            token_validator=TokenVerifier(token_config),
            challenge_verifier=TurnstileVerifier(challenge_config, http_client),
            app_env=api_config.app_env,
            challenge_header=challenge_config.header_name,
        )

    @staticmethod
    def build_for_testing(
        mock_validator: Any,
        mock_challenge_verifier: Optional[Any] = None,
        app_env: str = "production",
    ) -> AuthenticationGate:
        """
        Build the gate with mock dependencies.

        Args:
            mock_validator: Mock token validator
            mock_challenge_verifier: Mock challenge verifier
            app_env: Deployment environment

        Returns:
            AuthenticationGate for testing
        """
        return AuthenticationGate(
            token_validator=mock_validator,
            challenge_verifier=mock_challenge_verifier,
            app_env=app_env,
        )
