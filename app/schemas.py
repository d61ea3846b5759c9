"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class StreamName(str, Enum):
    """Sample streams that can be rendered as a trace."""

    depth = "depth"
    heart_rate = "heart_rate"
    water_temperature = "water_temperature"


class DiveAccepted(BaseModel):
    """Immediate response after a dive payload has been reconciled into history."""

    id: str = Field(..., description="Identifier of the stored dive.")
    status_message: str


class DiveListResponse(BaseModel):
    dives: List[Dict[str, Any]] = Field(
        default_factory=list, description="Dive records in wire format."
    )
    available_locations: List[str] = Field(default_factory=list)


class TimelinePointResponse(BaseModel):
    """Every stream's value at one instant; ``None`` marks a stream with no data."""

    seconds: float = Field(..., ge=0)
    duration_seconds: float = Field(..., ge=0)
    depth_meters: Optional[float] = None
    heart_rate: Optional[int] = None
    water_temperature_celsius: Optional[float] = None


class TracePoint(BaseModel):
    seconds: float
    value: float


class TraceResponse(BaseModel):
    stream: StreamName
    step_seconds: float
    points: List[TracePoint] = Field(default_factory=list)


class ReceiverStatus(BaseModel):
    status_message: str
    weather_error: Optional[str] = None
    history_size: int = Field(..., ge=0)
    last_dive_id: Optional[str] = None
