"""
API Module - Black Box Interface

Purpose: Wire schema and HTTP-level collaborators
Interface: Pydantic models, RoutePolicy, CorsPolicy
Hidden: Field aliases of the identity authority's claim names
"""

from .cors import CorsPolicy
from .models import (
    ConnectionStatusResponse,
    ConnectResponse,
    ErrorResponse,
    OperationResponse,
    OrdersResponse,
    OrderStatusUpdateRequest,
    RoutePolicy,
    TokenClaims,
    UserClaims,
)

__all__ = [
    "ConnectionStatusResponse",
    "ConnectResponse",
    "CorsPolicy",
    "ErrorResponse",
    "OperationResponse",
    "OrdersResponse",
    "OrderStatusUpdateRequest",
    "RoutePolicy",
    "TokenClaims",
    "UserClaims",
]
