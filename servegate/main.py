#!/usr/bin/env python3
"""
ServeGate - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Binds every route to exactly one authentication policy
4. Runs the API server

All business logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

import httpx
import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from servegate.config.provider import ConfigProvider, EnvConfigProvider
from servegate.errors import BadRequestError, ServeGateError
from servegate.logging_config import get_logging_config, setup_logging
from servegate.modules.api import (
    ConnectionStatusResponse,
    ConnectResponse,
    CorsPolicy,
    ErrorResponse,
    OperationResponse,
    OrdersResponse,
    OrderStatusUpdateRequest,
    RoutePolicy,
    TokenClaims,
)
from servegate.modules.auth import AuthFactory
from servegate.modules.middleware import create_gate_middleware
from servegate.modules.partner import IntegrationManager, PartnerClient
from servegate.modules.storage import ConnectionStore, MenuStore, OrderStore, StorageModule

logger = logging.getLogger(__name__)

# Route table: every reachable path has exactly one policy
ROUTE_POLICIES: Dict[str, RoutePolicy] = {
    "/healthz": RoutePolicy.NONE,
    "/api/challenge/verify": RoutePolicy.BOT_CHALLENGE,
    "/api/partner/connect": RoutePolicy.TOKEN,
    "/api/partner/callback": RoutePolicy.NONE,
    "/api/partner/status": RoutePolicy.TOKEN,
    "/api/partner/disconnect": RoutePolicy.TOKEN,
    "/api/partner/sync-menu": RoutePolicy.TOKEN,
    "/api/partner/webhook": RoutePolicy.NONE,
    "/api/partner/update-order-status": RoutePolicy.TOKEN,
    "/api/partner/orders": RoutePolicy.TOKEN,
}

# Dependency injection helpers

def get_auth_data(request: Request) -> TokenClaims:
    """Claims stored by the gate; only reachable on token routes."""
    claims = getattr(request.state, "auth_data", None)
    if claims is None:
        raise ServeGateError("Authentication data unavailable")
    return claims

def get_organization_id(claims: TokenClaims = Depends(get_auth_data)) -> str:
    organization_id = claims.organization_id
    if not organization_id:
        raise BadRequestError("Organization ID not found")
    return organization_id

def get_manager(request: Request) -> IntegrationManager:
    manager = getattr(request.app.state, "integration_manager", None)
    if manager is None:
        raise ServeGateError("Service not initialized", status_code=503)
    return manager

def create_app(
    config_provider: Optional[ConfigProvider] = None,
    redis_client=None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config_provider: Configuration source (environment by default)
        redis_client: Optional pre-built async Redis client
        http_client: Optional pre-built async HTTP client

    Returns:
        Configured FastAPI application
    """
    config_provider = config_provider or EnvConfigProvider()
    api_config = config_provider.get_api_config()
    cors_policy = CorsPolicy(api_config.cors_origins, api_config.cors_default_origin)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle - initialize and cleanup resources."""
        logger.info("Starting ServeGate API...")

        storage: Optional[StorageModule] = None
        redis = redis_client
        if redis is None:
            storage_config = config_provider.get_storage_config()
            storage = StorageModule(storage_config.url, password=storage_config.password)
            redis = await storage.connect()

        http = http_client
        owns_http = http is None
        if owns_http:
            http = httpx.AsyncClient(timeout=api_config.http_timeout)

        # Build authentication stack via factory (dependency injection)
        app.state.auth_gate = AuthFactory.build(config_provider, http)
        app.state.integration_manager = IntegrationManager(
            partner_config=config_provider.get_partner_config(),
            security_config=config_provider.get_security_config(),
            api_config=api_config,
            client=PartnerClient(config_provider.get_partner_config(), http),
            connections=ConnectionStore(redis),
            orders=OrderStore(redis),
            menus=MenuStore(redis),
            redis_client=redis,
        )
        app.state.webhook_signature_header = config_provider.get_security_config().webhook_signature_header
        logger.info("ServeGate API started successfully")

        yield

        # Shutdown
        logger.info("Shutting down ServeGate API...")
        if owns_http:
            await http.aclose()
        if storage:
            await storage.disconnect()
        logger.info("ServeGate API shutdown complete")

    app = FastAPI(
        title="ServeGate API",
        description="Authenticating edge service for ordering partners",
        version="1.0.0",
        lifespan=lifespan,
        responses={
            status_code: {"model": ErrorResponse}
            for status_code in (400, 401, 403, 404, 500)
        },
    )

    gate_middleware = create_gate_middleware(ROUTE_POLICIES, cors_policy)

    @app.middleware("http")
    async def authenticate(request: Request, call_next):
        return await gate_middleware(request, call_next)

    # Error responses: JSON {error, details?} with the caller's CORS headers

    @app.exception_handler(ServeGateError)
    async def handle_servegate_error(request: Request, exc: ServeGateError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=cors_policy.headers_for(request.headers),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", [])[1:]), "message": err.get("msg")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": details},
            headers=cors_policy.headers_for(request.headers),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error in {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected server error occurred"},
            headers=cors_policy.headers_for(request.headers),
        )

    # Health

    @app.get("/healthz")
    async def healthz():
        """
        Minimal health check endpoint for readiness/liveness probes.

        Returns:
            200: Service is running
        """
        return {"status": "ok"}

    # Bot challenge

    @app.post("/api/challenge/verify")
    async def verify_challenge():
        """Reached only when the gate accepted the caller's challenge token."""
        return {"verified": True}

    # Partner integration

    @app.get("/api/partner/connect", response_model=ConnectResponse)
    async def partner_connect(
        organization_id: str = Depends(get_organization_id),
        manager: IntegrationManager = Depends(get_manager),
    ):
        """Get the partner authorization URL for the caller's organization."""
        return manager.connect(organization_id)

    @app.get("/api/partner/callback")
    async def partner_callback(
        code: Optional[str] = Query(None),
        state: Optional[str] = Query(None),
        error: Optional[str] = Query(None),
        manager: IntegrationManager = Depends(get_manager),
    ):
        """OAuth redirect target; always sends the browser back to the app."""
        redirect_url = await manager.handle_callback(code, state, error)
        return RedirectResponse(redirect_url, status_code=302)

    @app.get("/api/partner/status", response_model=ConnectionStatusResponse, response_model_exclude_none=True)
    async def partner_status(
        organization_id: str = Depends(get_organization_id),
        manager: IntegrationManager = Depends(get_manager),
    ):
        return await manager.get_status(organization_id)

    @app.post("/api/partner/disconnect", response_model=OperationResponse, response_model_exclude_none=True)
    async def partner_disconnect(
        organization_id: str = Depends(get_organization_id),
        manager: IntegrationManager = Depends(get_manager),
    ):
        return await manager.disconnect(organization_id)

    @app.post("/api/partner/sync-menu", response_model=OperationResponse, response_model_exclude_none=True)
    async def partner_sync_menu(
        organization_id: str = Depends(get_organization_id),
        manager: IntegrationManager = Depends(get_manager),
    ):
        return await manager.sync_menu(organization_id)

    @app.post("/api/partner/webhook")
    async def partner_webhook(request: Request, manager: IntegrationManager = Depends(get_manager)):
        """
        Partner webhook receiver.

        Returns:
            200: Delivery acknowledged (whatever the processing outcome)
            401: Signature check failed
        """
        raw_body = await request.body()
        signature = request.headers.get(request.app.state.webhook_signature_header)
        status = await manager.handle_webhook(raw_body, signature)
        if status == 401:
            return PlainTextResponse("Invalid signature", status_code=401)
        return PlainTextResponse("OK", status_code=200)

    @app.post("/api/partner/update-order-status", response_model=OperationResponse, response_model_exclude_none=True)
    async def partner_update_order_status(
        body: OrderStatusUpdateRequest,
        organization_id: str = Depends(get_organization_id),
        manager: IntegrationManager = Depends(get_manager),
    ):
        return await manager.update_order_status(
            organization_id, body.remote_order_id, body.status, body.expected_time
        )

    @app.get("/api/partner/orders", response_model=OrdersResponse)
    async def partner_orders(
        branch_code: Optional[str] = Query(None, alias="branchCode"),
        organization_id: str = Depends(get_organization_id),
        manager: IntegrationManager = Depends(get_manager),
    ):
        return await manager.list_orders(organization_id, branch_code)

    return app

app = create_app()

def run() -> None:
    """Console entry point."""
    provider = EnvConfigProvider()
    api_config = provider.get_api_config()
    setup_logging()
    uvicorn.run(
        "servegate.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_config=get_logging_config(),
    )

if __name__ == "__main__":
    run()
