from __future__ import annotations

import pytest

from models.records import DepthSample, HeartRateSample
from services.interpolation import EmptyStreamError, interpolate, sample_at, sort_stream


def _depths(*points: tuple[float, float]) -> list[DepthSample]:
    return [DepthSample(seconds=t, depth_meters=d) for t, d in points]


def test_interpolate_clamps_and_blends() -> None:
    samples = _depths((0, 10), (10, 20))

    assert interpolate(samples, -5) == 10
    assert interpolate(samples, 15) == 20
    assert interpolate(samples, 5) == pytest.approx(15)


def test_interpolate_returns_exact_values_at_sample_times() -> None:
    samples = _depths((0, 1.0), (2, 3.3), (7, 9.9))

    for sample in samples:
        assert interpolate(samples, sample.seconds) == sample.depth_meters


def test_interpolate_handles_coincident_timestamps() -> None:
    samples = _depths((0, 1.0), (5, 2.0), (5, 4.0), (10, 6.0))

    assert interpolate(samples, 5) in (2.0, 4.0)
    assert interpolate(samples, 7.5) == pytest.approx(5.0)


def test_interpolate_rounds_heart_rate_half_away_from_zero() -> None:
    samples = [HeartRateSample(seconds=0, bpm=80), HeartRateSample(seconds=10, bpm=81)]

    assert interpolate(samples, 5) == 81
    assert interpolate(samples, 4) == 80


def test_interpolate_empty_stream_raises() -> None:
    with pytest.raises(EmptyStreamError):
        interpolate([], 1.0)


def test_sort_stream_orders_by_time() -> None:
    samples = _depths((5, 1.0), (0, 0.0), (2, 0.5))

    assert [sample.seconds for sample in sort_stream(samples)] == [0, 2, 5]


def test_sample_at_clamps_query_into_stream_range() -> None:
    samples = _depths((0, 0.0), (10, 5.0))

    before = sample_at(samples, -3)
    after = sample_at(samples, 30)
    middle = sample_at(samples, 4)

    assert before is not None and before.seconds == 0 and before.depth_meters == 0.0
    assert after is not None and after.seconds == 10 and after.depth_meters == 5.0
    assert middle is not None and middle.depth_meters == pytest.approx(2.0)
    assert isinstance(middle, DepthSample)


def test_sample_at_empty_stream_is_none() -> None:
    assert sample_at([], 3.0) is None


def test_nan_query_is_rejected() -> None:
    samples = _depths((0, 0.0), (10, 5.0))

    with pytest.raises(ValueError):
        interpolate(samples, float("nan"))
    with pytest.raises(ValueError):
        sample_at(samples, float("nan"))


def test_sample_at_infinite_query_clamps_to_last_sample() -> None:
    samples = _depths((0, 0.0), (10, 5.0))

    late = sample_at(samples, float("inf"))
    early = sample_at(samples, float("-inf"))

    assert late is not None and late.seconds == 10 and late.depth_meters == 5.0
    assert early is not None and early.seconds == 0 and early.depth_meters == 0.0
