"""Models for the streaming numbers API."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime


MAX_NUMBERS = 10_000_000


class BagSummary(BaseModel):
    """Accounting of one LazyBag after its response was written."""
    requested: int = Field(..., description="Numbers requested", ge=0)
    delivered: int = Field(..., description="Numbers handed out by the bag", ge=0)
    known_not_empty: bool = Field(..., description="Whether the bag ever yielded an element")
    closed: bool = Field(..., description="Whether the bag's source was released")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the stream finished")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "requested": 1000,
                "delivered": 1000,
                "known_not_empty": True,
                "closed": True,
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    )


class StatsResponse(BaseModel):
    """Recent stream summaries."""
    ok: bool = Field(True, description="Request success status")
    streams: List[BagSummary] = Field(default_factory=list, description="Most recent first")
    count: int = Field(..., description="Number of summaries returned", ge=0)


class ErrorResponse(BaseModel):
    """Standard error envelope."""
    ok: bool = Field(False, description="Request success status")
    error: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Error details")
    timestamp: str = Field(
        ...,
        description="Error timestamp in ISO format"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": False,
                "error": "Only supports a single iteration",
                "error_code": "SINGLE_PASS",
                "details": None,
                "timestamp": "2024-01-01T12:00:00Z"
            }
        }
    )


class HealthCheckResponse(BaseModel):
    """Health check result."""
    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    memory: Dict[str, float] = Field(
        ...,
        description="Process and system memory figures"
    )
    response_time_ms: float = Field(
        ...,
        description="Health check response time in milliseconds",
        ge=0
    )
