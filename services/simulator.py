"""Scripted dives for demos and for exercising the viewer without a recorder."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from models.records import (
    DepthSample,
    DiveSummary,
    HeartRateSample,
    WaterTempSample,
    round_half_away_from_zero,
)

Keyframes = Sequence[Tuple[float, float]]

# duration (s), max depth (m), ending bpm, base water temp (C), temp swing (C)
_MOCK_CONFIGS: Sequence[Tuple[float, float, int, float, float]] = (
    (320, 24, 92, 24.6, 1.1),
    (240, 18, 88, 25.0, 0.8),
    (420, 30, 96, 24.2, 1.4),
)

# location, weather summary, air temp (C), latitude, longitude
_MOCK_META: Sequence[Tuple[str, str, float, float, float]] = (
    ("Toronto Pan Am Sports Centre, Toronto", "Indoor pool • calm", 29.0, 43.7810, -79.2342),
    ("Alex Duff Memorial Pool, Toronto", "Outdoor pool • light breeze", 27.5, 43.6657, -79.4186),
    ("Donald D. Summerville Pool, Toronto", "Lake breeze • partly cloudy", 22.0, 43.6685, -79.2958),
)


def keyframe_value(progress: float, keyframes: Keyframes) -> float:
    """Piecewise-linear value at ``progress`` in [0, 1] across ``keyframes``."""
    clamped = max(0.0, min(progress, 1.0))
    for index, (position, value) in enumerate(keyframes):
        if position < clamped:
            continue
        if index == 0:
            return value
        lower_pos, lower_value = keyframes[index - 1]
        span = position - lower_pos
        ratio = (clamped - lower_pos) / span if span > 0 else 0.0
        return lower_value + (value - lower_value) * ratio
    return keyframes[-1][1] if keyframes else 0.0


def _timestamps(duration: float, step: float) -> List[float]:
    count = int(duration / step) + 1
    return [index * step for index in range(count)]


def simulated_profile(duration: float, max_depth: float, step: float = 0.5) -> List[DepthSample]:
    # quick drop, long bottom, controlled ascent
    keyframes = (
        (0.0, 0.0),
        (0.08, max_depth * 0.45),
        (0.18, max_depth),
        (0.55, max_depth),
        (0.70, max_depth * 0.75),
        (0.85, max_depth * 0.25),
        (1.0, 0.0),
    )
    return [
        DepthSample(seconds=t, depth_meters=keyframe_value(t / duration, keyframes))
        for t in _timestamps(duration, step)
    ]


def simulated_heart_rates(duration: float, step: float = 0.5) -> List[HeartRateSample]:
    # dive reflex bradycardia, recovering on ascent
    keyframes = ((0.0, 92), (0.10, 78), (0.30, 72), (0.60, 76), (0.80, 84), (1.0, 88))
    return [
        HeartRateSample(
            seconds=t, bpm=round_half_away_from_zero(keyframe_value(t / duration, keyframes))
        )
        for t in _timestamps(duration, step)
    ]


def simulated_water_temps(
    duration: float, base: float, swing: float, step: float = 0.5
) -> List[WaterTempSample]:
    keyframes = (
        (0.0, base),
        (0.25, base - swing),
        (0.55, base - swing * 0.7),
        (0.8, base - swing * 0.3),
        (1.0, base - swing * 0.1),
    )
    return [
        WaterTempSample(seconds=t, celsius=keyframe_value(t / duration, keyframes))
        for t in _timestamps(duration, step)
    ]


def simulated_dives(
    now: Optional[datetime] = None, count: int = 3, step: float = 0.5
) -> List[DiveSummary]:
    """Fully enriched dives ending 30 minutes apart, newest first."""
    end_anchor = now or datetime.now(timezone.utc)
    dives: List[DiveSummary] = []
    for index in range(count):
        duration, max_depth, ending_hr, base_temp, swing = _MOCK_CONFIGS[index % len(_MOCK_CONFIGS)]
        location, weather, air_temp, latitude, longitude = _MOCK_META[index % len(_MOCK_META)]
        end = end_anchor - timedelta(seconds=index * 1800)
        start = end - timedelta(seconds=duration)

        dive = DiveSummary.finalize(
            start_date=start,
            end_date=end,
            max_depth_meters=max_depth,
            duration_seconds=duration,
            ending_heart_rate=ending_hr,
            water_temperature_celsius=base_temp,
            profile=simulated_profile(duration, max_depth, step),
            heart_rate_samples=simulated_heart_rates(duration, step),
            water_temp_samples=simulated_water_temps(duration, base_temp, swing, step),
        )
        dives.append(
            dive.with_location_description(location)
            .with_weather(weather, air_temp)
            .with_coordinates(latitude, longitude)
        )
    return dives
