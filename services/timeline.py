"""Scrubber queries that read all three streams of a dive at one instant."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from models.records import DiveSummary
from services.interpolation import sample_at, sort_stream


@dataclass(frozen=True)
class TimelinePoint:
    """Values at one instant; a stream with no samples reports ``None``."""

    seconds: float
    depth_meters: Optional[float] = None
    heart_rate: Optional[int] = None
    water_temperature_celsius: Optional[float] = None


def timeline_duration(summary: DiveSummary) -> float:
    """Length of the scrubbable domain, never shorter than one second."""
    stream_ends = [
        max((sample.seconds for sample in stream), default=0.0)
        for stream in (summary.profile, summary.heart_rate_samples, summary.water_temp_samples)
    ]
    return max(summary.duration_seconds, *stream_ends, 1.0)


def timeline_at(summary: DiveSummary, seconds: float) -> TimelinePoint:
    if math.isnan(seconds):
        raise ValueError("seconds must be a number, not NaN.")
    position = min(max(seconds, 0.0), timeline_duration(summary))

    depth = sample_at(sort_stream(summary.profile), position)
    heart = sample_at(sort_stream(summary.heart_rate_samples), position)
    water = sample_at(sort_stream(summary.water_temp_samples), position)

    return TimelinePoint(
        seconds=position,
        depth_meters=depth.depth_meters if depth is not None else None,
        heart_rate=heart.bpm if heart is not None else None,
        water_temperature_celsius=water.celsius if water is not None else None,
    )
