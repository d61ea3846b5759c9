"""Point queries against a single sample stream."""

from __future__ import annotations

import math
from bisect import bisect_left
from typing import Iterable, List, Optional, Sequence, TypeVar

from models.records import Sample, round_half_away_from_zero

S = TypeVar("S", bound=Sample)


class EmptyStreamError(ValueError):
    """Raised when a value is requested from a stream with no samples."""


def sort_stream(samples: Iterable[S]) -> List[S]:
    """Return the samples ordered by time; insertion order is never trusted."""
    return sorted(samples, key=lambda sample: sample.seconds)


def interpolate(samples: Sequence[Sample], query_seconds: float) -> float:
    """Linearly interpolated value at ``query_seconds`` for a time-sorted stream.

    Queries before the first or after the last sample clamp to that sample's
    value. Integer streams (heart rate) are rounded half away from zero.
    """
    if not samples:
        raise EmptyStreamError("Cannot interpolate an empty sample stream.")
    if math.isnan(query_seconds):
        raise ValueError("query_seconds must be a number, not NaN.")

    first = samples[0]
    last = samples[-1]
    if query_seconds <= first.seconds:
        return first.value
    if query_seconds >= last.seconds:
        return last.value

    times = [sample.seconds for sample in samples]
    upper_index = bisect_left(times, query_seconds)
    upper = samples[upper_index]
    if upper.seconds == query_seconds:
        return upper.value

    lower = samples[upper_index - 1]
    span = upper.seconds - lower.seconds
    ratio = (query_seconds - lower.seconds) / span if span > 0 else 0.0
    value = lower.value + (upper.value - lower.value) * ratio
    if lower.integral:
        return round_half_away_from_zero(value)
    return value


def sample_at(samples: Sequence[S], query_seconds: float) -> Optional[S]:
    """Synthetic sample at the clamped query time, or ``None`` when there is no data."""
    if not samples:
        return None
    if math.isnan(query_seconds):
        raise ValueError("query_seconds must be a number, not NaN.")
    clamped = min(max(query_seconds, 0.0), samples[-1].seconds)
    value = interpolate(samples, clamped)
    return type(samples[0]).at(clamped, value)  # type: ignore[return-value]
