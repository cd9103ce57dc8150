"""
Pydantic models for request/response validation.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


STATES = frozenset({"NSW", "VIC", "QLD", "SA", "WA", "TAS", "ACT", "NT"})

POSTCODE_PATTERN = re.compile(r'^\d{3,4}$')


# ============================================================================
# Address Validation Models
# ============================================================================

class AddressQuery(BaseModel):
    """An Australian address to cross-check against AusPost."""

    postcode: str = Field(
        ...,
        description="3 or 4 digit postcode",
        examples=["3000"]
    )

    suburb: str = Field(
        ...,
        description="Suburb or locality name",
        examples=["Melbourne"]
    )

    state: str = Field(
        ...,
        description="State or territory abbreviation",
        examples=["VIC"]
    )

    @field_validator('postcode')
    @classmethod
    def validate_postcode(cls, v: str) -> str:
        v = v.strip()
        if not POSTCODE_PATTERN.match(v):
            raise ValueError('Invalid postcode format')
        return v

    @field_validator('suburb')
    @classmethod
    def validate_suburb(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Invalid suburb')
        return v

    @field_validator('state')
    @classmethod
    def validate_state(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in STATES:
            raise ValueError('Invalid state')
        return v


class ValidationResult(BaseModel):
    """Outcome of an address validation."""

    success: bool
    message: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# ============================================================================
# Verify Log Models
# ============================================================================

class VerifyLog(BaseModel):
    """A single validation attempt, as written to the log."""

    user_id: str
    postcode: str
    suburb: str
    state: str
    success: bool
    error: Optional[str] = None
    ts: datetime
    lat: Optional[float] = None
    lng: Optional[float] = None


class VerifyLogEntry(VerifyLog):
    """A stored validation attempt."""

    id: int


class VerifyLogPage(BaseModel):
    """A page of a user's validation history."""

    logs: List[VerifyLogEntry]
    count: int
    limit: int
    offset: int


# ============================================================================
# Account Models
# ============================================================================

class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class LogoutResponse(BaseModel):
    """Logout acknowledgement; clients should also drop local state."""

    ok: bool = True
    clearStorage: bool = True


class MeResponse(BaseModel):
    """The username behind the current session."""

    username: str


# ============================================================================
# Health Check Models
# ============================================================================

class HealthStatus(BaseModel):
    """Health check response."""

    status: str = Field(..., examples=["healthy", "unhealthy"])
    version: str
    database: str = Field(..., examples=["connected", "disconnected"])
    auspost: str = Field(..., examples=["configured", "not configured"])
    uptime_seconds: float
    timestamp: datetime
