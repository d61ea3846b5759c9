"""Regular-grid resampling of sparse streams for rendering."""

from __future__ import annotations

import math
from typing import List, Sequence, Type, TypeVar

from models.records import DepthSample, DiveSummary, Sample
from services.interpolation import interpolate, sort_stream

S = TypeVar("S", bound=Sample)

# Grid points this close to the end are treated as landing on it.
_END_TOLERANCE = 1e-9

MAX_TRACE_POINTS = 100_000


def densify(
    samples: Sequence[S],
    step_seconds: float,
    target_end_seconds: float,
    *,
    zero_fill: bool = False,
    sample_type: Type[Sample] = DepthSample,
    max_points: int = MAX_TRACE_POINTS,
) -> List[S]:
    """Resample ``samples`` at ``0, step, 2*step, ...`` through the end of the dive.

    The last real value is held flat out to ``target_end_seconds`` so traces
    span the full dive. An empty stream stays empty unless ``zero_fill`` is set,
    in which case a flat two-point stream at zero of ``sample_type`` is returned.
    """
    if not math.isfinite(step_seconds) or step_seconds <= 0:
        raise ValueError("step_seconds must be a positive finite number.")
    if not math.isfinite(target_end_seconds):
        raise ValueError("target_end_seconds must be finite.")

    ordered = sort_stream(samples)
    if not ordered:
        if zero_fill and target_end_seconds > 0:
            return [
                sample_type.at(0.0, 0.0),
                sample_type.at(target_end_seconds, 0.0),
            ]  # type: ignore[list-item]
        return []

    kind = type(ordered[0])
    last = ordered[-1]
    end = max(target_end_seconds, last.seconds)
    if last.seconds < end:
        ordered.append(kind.at(end, last.value))

    count = int(math.floor(end / step_seconds + _END_TOLERANCE)) + 1
    if count > max_points:
        raise ValueError(
            f"A step of {step_seconds}s would produce {count} points; the limit is {max_points}."
        )
    dense: List[S] = []
    for index in range(count):
        seconds = min(index * step_seconds, end)
        dense.append(kind.at(seconds, interpolate(ordered, seconds)))  # type: ignore[arg-type]

    if dense[-1].seconds != end:
        dense.append(kind.at(end, interpolate(ordered, end)))  # type: ignore[arg-type]
    return dense


def pad_stream(samples: Sequence[S], duration_seconds: float) -> List[S]:
    """Hold the first value back to ``t=0`` and the last value out to ``duration_seconds``."""
    padded = sort_stream(samples)
    if not padded:
        return padded

    kind = type(padded[0])
    first = padded[0]
    if first.seconds > 0:
        padded.insert(0, kind.at(0.0, first.value))  # type: ignore[arg-type]
    last = padded[-1]
    if last.seconds < duration_seconds:
        padded.append(kind.at(duration_seconds, last.value))  # type: ignore[arg-type]
    return padded


def trace_depth(summary: DiveSummary, step_seconds: float = 5.0) -> List[DepthSample]:
    """Depth trace covering the whole dive, flat at zero when no profile was recorded."""
    profile_end = max((sample.seconds for sample in summary.profile), default=0.0)
    effective_end = max(profile_end, summary.duration_seconds, 1.0)
    return densify(summary.profile, step_seconds, effective_end, zero_fill=True)


def trace_stream(
    samples: Sequence[S], duration_seconds: float, step_seconds: float = 2.0
) -> List[S]:
    """Padded and densified trace for heart-rate or temperature streams."""
    padded = pad_stream(samples, duration_seconds)
    if not padded:
        return []
    return densify(padded, step_seconds, duration_seconds)
