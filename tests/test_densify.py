from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.records import DepthSample, DiveSummary, HeartRateSample
from services.densify import densify, pad_stream, trace_depth, trace_stream


def test_densify_extends_last_value_to_target_end() -> None:
    samples = [
        DepthSample(seconds=0, depth_meters=0.0),
        DepthSample(seconds=100, depth_meters=10.0),
        DepthSample(seconds=200, depth_meters=4.0),
    ]

    dense = densify(samples, 5.0, 317.0)

    times = [sample.seconds for sample in dense]
    assert times[0] == 0
    assert times[-1] == 317.0
    assert times[-2] == 315.0
    assert all(b > a for a, b in zip(times, times[1:]))
    assert dense[10].depth_meters == pytest.approx(5.0)
    assert all(sample.depth_meters == 4.0 for sample in dense if sample.seconds >= 200)


def test_densify_does_not_duplicate_end_on_grid() -> None:
    samples = [DepthSample(seconds=0, depth_meters=0.0), DepthSample(seconds=10, depth_meters=2.0)]

    dense = densify(samples, 5.0, 10.0)

    assert [sample.seconds for sample in dense] == [0, 5, 10]


def test_densify_uses_stream_end_when_target_is_shorter() -> None:
    samples = [DepthSample(seconds=0, depth_meters=0.0), DepthSample(seconds=12, depth_meters=3.0)]

    dense = densify(samples, 5.0, 4.0)

    assert dense[-1].seconds == 12
    assert dense[-1].depth_meters == 3.0


def test_densify_zero_fill_for_empty_depth() -> None:
    dense = densify([], 5.0, 30.0, zero_fill=True)

    assert [(s.seconds, s.depth_meters) for s in dense] == [(0.0, 0.0), (30.0, 0.0)]


def test_densify_empty_stream_without_zero_fill() -> None:
    assert densify([], 2.0, 30.0) == []


@pytest.mark.parametrize("step", [0.0, -1.0, float("inf"), float("nan")])
def test_densify_rejects_invalid_step(step: float) -> None:
    with pytest.raises(ValueError):
        densify([DepthSample(seconds=0, depth_meters=1.0)], step, 10.0)


def test_pad_stream_holds_values_to_both_ends() -> None:
    samples = [HeartRateSample(seconds=4, bpm=80), HeartRateSample(seconds=8, bpm=72)]

    padded = pad_stream(samples, 20.0)

    assert [(s.seconds, s.bpm) for s in padded] == [(0.0, 80), (4, 80), (8, 72), (20.0, 72)]


def test_trace_stream_for_missing_samples_is_empty() -> None:
    assert trace_stream([], 60.0) == []


def test_trace_depth_spans_dive_duration() -> None:
    start = datetime(2024, 7, 1, tzinfo=timezone.utc)
    summary = DiveSummary.finalize(
        start_date=start,
        end_date=start + timedelta(seconds=42),
        max_depth_meters=6.0,
        duration_seconds=42.0,
        profile=[DepthSample(seconds=0, depth_meters=0.0), DepthSample(seconds=20, depth_meters=6.0)],
    )

    trace = trace_depth(summary)

    assert trace[-1].seconds == 42.0
    assert trace[-1].depth_meters == 6.0


def test_trace_depth_without_profile_is_flat_zero() -> None:
    start = datetime(2024, 7, 1, tzinfo=timezone.utc)
    summary = DiveSummary.finalize(
        start_date=start,
        end_date=start,
        max_depth_meters=0.0,
        duration_seconds=0.0,
    )

    trace = trace_depth(summary)

    assert [(s.seconds, s.depth_meters) for s in trace] == [(0.0, 0.0), (1.0, 0.0)]


def test_densify_rejects_non_finite_end() -> None:
    with pytest.raises(ValueError):
        densify([DepthSample(seconds=0, depth_meters=1.0)], 1.0, float("inf"))


def test_densify_refuses_oversized_grid() -> None:
    samples = [DepthSample(seconds=0, depth_meters=0.0), DepthSample(seconds=300, depth_meters=2.0)]

    with pytest.raises(ValueError, match="limit"):
        densify(samples, 1e-9, 300.0)


def test_densify_point_limit_is_configurable() -> None:
    samples = [DepthSample(seconds=0, depth_meters=0.0), DepthSample(seconds=10, depth_meters=2.0)]

    assert len(densify(samples, 1.0, 10.0, max_points=11)) == 11
    with pytest.raises(ValueError):
        densify(samples, 1.0, 10.0, max_points=5)
