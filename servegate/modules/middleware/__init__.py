"""
Authentication Middleware Module - Black Box Interface

Purpose: Run the authentication gate once per request, before any handler
Interface: AuthGateMiddleware, create_gate_middleware()
Hidden: Route-policy lookup, preflight handling, CORS merging

Completely independent and replaceable.
"""

import logging
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from ..api.cors import CorsPolicy
from ..api.models import RoutePolicy

logger = logging.getLogger(__name__)


class AuthGateMiddleware:
    """
    Route-policy driven authentication middleware for FastAPI applications.

    Every reachable path has exactly one policy; paths outside the table are
    answered with 404 before any authentication happens.
    """

    def __init__(
        self,
        route_policies: Dict[str, RoutePolicy],
        cors_policy: CorsPolicy,
        log_attempts: bool = True,
    ):
        """
        Initialize authentication middleware.

        Args:
            route_policies: Dict of {path: RoutePolicy}
            cors_policy: Builds CORS headers for each caller
            log_attempts: Whether to log denied requests
        """
        self.route_policies = dict(route_policies)
        self.cors_policy = cors_policy
        self.log_attempts = log_attempts

    def policy_for(self, request: Request) -> Optional[RoutePolicy]:
        """Look up the policy bound to the request path."""
        return self.route_policies.get(str(request.url.path))

    def json_error(self, request: Request, status_code: int, body: dict) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=body,
            headers=self.cors_policy.headers_for(request.headers),
        )

    async def __call__(self, request: Request, call_next):
        """Process the request through the authentication gate."""
        cors_headers = self.cors_policy.headers_for(request.headers)

        # Preflight is answered uniformly, whatever the path
        if request.method.upper() == "OPTIONS":
            return Response(status_code=204, headers=cors_headers)

        policy = self.policy_for(request)
        if policy is None:
            return self.json_error(request, 404, {"error": "Path not found"})

        gate = getattr(request.app.state, "auth_gate", None)
        if gate is None:
            return self.json_error(request, 503, {"error": "Service not initialized"})

        decision = await gate.authenticate(request.headers, policy)
        if not decision.ok:
            if self.log_attempts:
                logger.warning(
                    f"Denied {request.method} {request.url.path} with {decision.status_code}"
                )
            return self.json_error(request, decision.status_code, decision.error_body())

        # Store the decision for downstream use
        request.state.auth_data = decision.auth_data

        response = await call_next(request)
        for key, value in cors_headers.items():
            response.headers[key] = value
        return response


def create_gate_middleware(
    route_policies: Dict[str, RoutePolicy],
    cors_policy: CorsPolicy,
) -> AuthGateMiddleware:
    """
    Factory function to create the gate middleware.

    Args:
        route_policies: Paths and their policies {"/path": RoutePolicy.TOKEN}
        cors_policy: CORS header builder

    Returns:
        Configured AuthGateMiddleware instance
    """
    default_policies = {"/healthz": RoutePolicy.NONE}
    default_policies.update(route_policies)
    return AuthGateMiddleware(route_policies=default_policies, cors_policy=cors_policy)


# Module interface - what this module provides
__all__ = ["AuthGateMiddleware", "create_gate_middleware"]
