"""
healthgate/schemas/health.py
Response bodies for the probe and work endpoints
"""

from pydantic import Field
from typing import Literal, Optional
from .base import BaseModel


# ============================================================================
# Health
# ============================================================================

class HealthPayload(BaseModel):
    """Per-service status text reported by ``/health``"""
    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall verdict")
    dbStatus: str = Field(..., description="Relational store probe detail")
    redisStatus: str = Field(..., description="Cache probe detail")
    mongoStatus: str = Field(..., description="Document store probe detail")
    kafkaStatus: str = Field(..., description="Message broker probe detail")


# ============================================================================
# Work endpoints
# ============================================================================

class MessageResponse(BaseModel):
    message: str


class InsertResponse(BaseModel):
    message: str
    id: str


class InsertRequest(BaseModel):
    """Optional body for ``/insert-mongo``; a default document is used when omitted"""
    name: Optional[str] = Field(None, max_length=200)
    value: Optional[str] = Field(None, max_length=10_000)


class ErrorResponse(BaseModel):
    error: str


__all__ = [
    "HealthPayload",
    "MessageResponse",
    "InsertResponse",
    "InsertRequest",
    "ErrorResponse",
]
