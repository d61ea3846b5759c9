"""Live dive recording with adaptive, threshold-based sampling."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Lock
from typing import Callable, List, Optional, Tuple

from models.records import DepthSample, DiveSummary, HeartRateSample, WaterTempSample
from settings import get_settings

logger = logging.getLogger(__name__)

_WATER_TEMP_EPSILON = 0.1


@dataclass(frozen=True)
class DepthPolicy:
    """Append a depth sample when enough time has passed or depth moved enough."""

    interval: float = 1.5
    delta: float = 0.4

    def should_append(
        self,
        last: Optional[DepthSample],
        elapsed: float,
        depth: float,
        force: bool = False,
    ) -> bool:
        if force or last is None:
            return True
        return (
            elapsed - last.seconds >= self.interval
            or abs(depth - last.depth_meters) >= self.delta
        )


@dataclass(frozen=True)
class HeartRatePolicy:
    """Append a heart-rate sample on a time interval or a large enough bpm change."""

    interval: float = 5.0
    delta: int = 3

    def should_append(self, last: Optional[HeartRateSample], elapsed: float, bpm: int) -> bool:
        if bpm <= 0:
            return False
        if last is None:
            return True
        return elapsed - last.seconds >= self.interval or abs(bpm - last.bpm) >= self.delta


class SessionState(str, Enum):
    idle = "idle"
    recording = "recording"


@dataclass(frozen=True)
class LiveSnapshot:
    """Copy of the in-progress streams, safe to read from another thread."""

    state: SessionState
    elapsed_seconds: float
    max_depth_meters: float
    profile: Tuple[DepthSample, ...]
    heart_rate_samples: Tuple[HeartRateSample, ...]
    water_temp_samples: Tuple[WaterTempSample, ...]


class DiveSession:
    """Single-writer recorder for one dive at a time.

    Sensor callbacks may arrive from any thread; every append, and the final
    snapshot taken by :meth:`stop`, goes through one lock so the three streams
    are always consistent with each other.
    """

    def __init__(
        self,
        depth_policy: Optional[DepthPolicy] = None,
        heart_rate_policy: Optional[HeartRatePolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        auto_start_depth: float = 0.0,
        water_temp_interval: Optional[float] = None,
    ) -> None:
        self.depth_policy = depth_policy or DepthPolicy()
        self.heart_rate_policy = heart_rate_policy or HeartRatePolicy()
        self.auto_start_depth = auto_start_depth
        self.water_temp_interval = water_temp_interval
        self._clock = clock
        self._now = now
        self._lock = Lock()

        self._state = SessionState.idle
        self._start_clock = 0.0
        self._start_date: Optional[datetime] = None
        self._max_depth = 0.0
        self._current_depth = 0.0
        self._heart_rate: Optional[int] = None
        self._water_temperature: Optional[float] = None
        self._profile: List[DepthSample] = []
        self._heart_rates: List[HeartRateSample] = []
        self._water_temps: List[WaterTempSample] = []

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.recording

    def start(self, initial_depth: Optional[float] = None) -> bool:
        """Enter recording with empty streams. Returns ``False`` if already recording."""
        with self._lock:
            if self._state is SessionState.recording:
                return False
            self._reset_streams()
            self._state = SessionState.recording
            self._start_clock = self._clock()
            self._start_date = self._now()
            starting_depth = max(0.0, initial_depth or 0.0)
            self._current_depth = starting_depth
            self._max_depth = starting_depth
            if initial_depth is not None:
                self._append_depth(starting_depth, force=True)
        logger.info("Dive recording started", extra={"status": SessionState.recording.value})
        return True

    def handle_depth(self, depth: float) -> None:
        """Sensor entry point: records while diving, auto-starts when submerged."""
        if not self.is_recording:
            if depth > self.auto_start_depth:
                self.start(initial_depth=depth)
            else:
                with self._lock:
                    self._current_depth = max(0.0, depth)
            return
        self.record_depth(depth)

    def handle_submersion(
        self, submerged: bool, depth: Optional[float] = None
    ) -> Optional[DiveSummary]:
        """Water-lock transitions: going under starts a dive, surfacing ends it.

        Returns the finished summary on surfacing, otherwise ``None``.
        """
        if not submerged:
            return self.stop()
        if not self.is_recording:
            with self._lock:
                current = self._current_depth
            self.start(initial_depth=max(current, depth or 0.0))
        return None

    def record_depth(self, depth: float, force: bool = False) -> bool:
        with self._lock:
            if self._state is not SessionState.recording:
                return False
            clamped = max(0.0, depth)
            self._current_depth = clamped
            if clamped > self._max_depth:
                self._max_depth = clamped
            return self._append_depth(clamped, force=force)

    def record_heart_rate(self, bpm: int) -> bool:
        with self._lock:
            if self._state is not SessionState.recording or bpm <= 0:
                return False
            self._heart_rate = bpm
            elapsed = self._elapsed()
            last = self._heart_rates[-1] if self._heart_rates else None
            if not self.heart_rate_policy.should_append(last, elapsed, bpm):
                return False
            self._heart_rates.append(HeartRateSample(seconds=elapsed, bpm=bpm))
            return True

    def update_water_temperature(self, celsius: Optional[float]) -> None:
        """Keep the latest water temperature.

        Only a snapshot is kept unless ``water_temp_interval`` is set, in which
        case a sample is also appended at most once per interval while diving.
        """
        with self._lock:
            current = self._water_temperature
            if current is not None and celsius is not None:
                if abs(current - celsius) < _WATER_TEMP_EPSILON:
                    return
            self._water_temperature = celsius

            if (
                celsius is None
                or self.water_temp_interval is None
                or self._state is not SessionState.recording
            ):
                return
            elapsed = self._elapsed()
            last = self._water_temps[-1] if self._water_temps else None
            if last is None or elapsed - last.seconds >= self.water_temp_interval:
                self._water_temps.append(WaterTempSample(seconds=elapsed, celsius=celsius))

    def snapshot(self) -> LiveSnapshot:
        with self._lock:
            recording = self._state is SessionState.recording
            return LiveSnapshot(
                state=self._state,
                elapsed_seconds=self._elapsed() if recording else 0.0,
                max_depth_meters=self._max_depth,
                profile=tuple(self._profile),
                heart_rate_samples=tuple(self._heart_rates),
                water_temp_samples=tuple(self._water_temps),
            )

    def stop(self) -> Optional[DiveSummary]:
        """Finish the dive and return its summary; ``None`` when nothing was recording."""
        with self._lock:
            if self._state is not SessionState.recording or self._start_date is None:
                return None

            self._append_depth(self._current_depth, force=True)
            elapsed = self._elapsed()
            summary = DiveSummary.finalize(
                start_date=self._start_date,
                end_date=self._start_date + timedelta(seconds=elapsed),
                max_depth_meters=self._max_depth,
                duration_seconds=elapsed,
                ending_heart_rate=self._heart_rate,
                water_temperature_celsius=self._water_temperature,
                profile=self._profile,
                heart_rate_samples=self._heart_rates,
                water_temp_samples=self._water_temps,
            )
            self._state = SessionState.idle
            self._start_date = None
            self._reset_streams()

        logger.info(
            "Dive recording finished",
            extra={
                "dive_id": summary.id,
                "status": SessionState.idle.value,
                "sample_count": len(summary.profile) + len(summary.heart_rate_samples),
            },
        )
        return summary

    def _elapsed(self) -> float:
        return max(0.0, self._clock() - self._start_clock)

    def _append_depth(self, depth: float, force: bool) -> bool:
        elapsed = self._elapsed()
        last = self._profile[-1] if self._profile else None
        if not self.depth_policy.should_append(last, elapsed, depth, force=force):
            return False
        self._profile.append(DepthSample(seconds=elapsed, depth_meters=depth))
        return True

    def _reset_streams(self) -> None:
        self._profile = []
        self._heart_rates = []
        self._water_temps = []
        self._max_depth = 0.0
        self._current_depth = 0.0
        self._heart_rate = None


def build_default_session() -> DiveSession:
    """Session wired with the sampling thresholds from the environment."""
    settings = get_settings()
    return DiveSession(
        depth_policy=DepthPolicy(
            interval=settings.depth_interval, delta=settings.depth_delta
        ),
        heart_rate_policy=HeartRatePolicy(
            interval=settings.heart_rate_interval, delta=settings.heart_rate_delta
        ),
    )
