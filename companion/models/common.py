"""
Shared response models.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health endpoints."""
    status: str = Field(..., description="Service status", examples=["healthy"])
    version: str = Field(..., description="API version", examples=["1.0.0"])
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Current server time")
    database: Optional[str] = Field(default=None, description="Database connectivity (readiness only)")


class ErrorResponse(BaseModel):
    """Body of every error response."""
    error: str = Field(..., description="Error code", examples=["not_found"])
    message: str = Field(..., description="Human-readable message")
    details: Optional[str] = Field(default=None, description="Additional details")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
