"""
ServeGate shared data models.

These models define the structure of token claims and of the JSON bodies
exchanged on the public API.
"""

import math
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Enums


class RoutePolicy(str, Enum):
    """Authentication policy bound to a route."""

    NONE = "none"
    BOT_CHALLENGE = "turnstile"
    TOKEN = "token"


# Token claims


class UserClaims(BaseModel):
    """Custom claims minted by the identity authority."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    licence_validity: Optional[float] = Field(
        None, alias="LicenceValidity", description="Licence expiry as Unix seconds"
    )
    organization_id: Optional[str] = Field(
        None, alias="MotelID", description="Organization the caller belongs to"
    )

    @field_validator("licence_validity", mode="before")
    @classmethod
    def coerce_licence_validity(cls, v):
        """Unusable expiry values count as no licence."""
        if v is None or isinstance(v, bool):
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            return None
        return value if math.isfinite(value) else None

    @field_validator("organization_id", mode="before")
    @classmethod
    def coerce_organization_id(cls, v):
        """Identity authorities may mint the id as a number."""
        if v is None or v == "":
            return None
        return str(v)


class TokenClaims(BaseModel):
    """Verified bearer token payload."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    iss: Optional[str] = None
    aud: Optional[Union[str, List[str]]] = None
    sub: Optional[str] = None
    exp: Optional[float] = None
    nbf: Optional[float] = None
    iat: Optional[float] = None
    user_claims: UserClaims = Field(default_factory=UserClaims, alias="userClaims")

    @field_validator("user_claims", mode="before")
    @classmethod
    def default_user_claims(cls, v):
        return {} if v is None else v

    @property
    def organization_id(self) -> Optional[str]:
        return self.user_claims.organization_id


# Request Models (API Input)


class OrderStatusUpdateRequest(BaseModel):
    """Request to push an order status change to the partner."""

    model_config = ConfigDict(populate_by_name=True)

    remote_order_id: str = Field(..., alias="remoteOrderId", min_length=1)
    status: str = Field(..., min_length=1)
    expected_time: Optional[str] = Field(None, alias="expectedTime")


# Response Models (API Output)


class ErrorResponse(BaseModel):
    """JSON error body returned by every failure path."""

    error: str
    details: Optional[Any] = None


class ConnectResponse(BaseModel):
    authUrl: str
    message: str


class ConnectionStatusResponse(BaseModel):
    """Connection metadata; never includes credentials."""

    connected: bool
    message: Optional[str] = None
    accountName: Optional[str] = None
    accountId: Optional[str] = None
    connectedAt: Optional[str] = None
    lastSyncedAt: Optional[str] = None


class OperationResponse(BaseModel):
    success: bool
    message: str
    itemsSynced: Optional[int] = None


class OrdersResponse(BaseModel):
    orders: List[Dict[str, Any]]
    count: int
