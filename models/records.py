"""Domain models shared across services.

The models double as the wire and storage schema: field aliases are the
camelCase keys exchanged between the recorder and the viewer.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_serializer,
    field_validator,
)

logger = logging.getLogger(__name__)


def round_half_away_from_zero(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    magnitude = math.floor(abs(value) + 0.5)
    return int(math.copysign(magnitude, value)) if magnitude else 0


def _coerce_uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            pass
    return uuid4()


class Sample(BaseModel):
    """A single timestamped observation, ``seconds`` from the start of the dive."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    value_field: ClassVar[str] = ""
    integral: ClassVar[bool] = False

    id: UUID = Field(default_factory=uuid4)
    seconds: float = Field(..., ge=0, allow_inf_nan=False)

    @field_validator("id", mode="before")
    @classmethod
    def _synthesize_missing_id(cls, value: Any) -> UUID:
        return _coerce_uuid(value)

    @property
    def value(self) -> float:
        return getattr(self, self.value_field)

    @classmethod
    def at(cls, seconds: float, value: float) -> "Sample":
        """Build a fresh sample of this kind (new id) at ``seconds``."""
        if cls.integral:
            value = round_half_away_from_zero(value)
        return cls(**{"seconds": seconds, cls.value_field: value})


class DepthSample(Sample):
    value_field: ClassVar[str] = "depth_meters"

    depth_meters: float = Field(..., alias="depthMeters", allow_inf_nan=False)


class HeartRateSample(Sample):
    value_field: ClassVar[str] = "bpm"
    integral: ClassVar[bool] = True

    bpm: int


class WaterTempSample(Sample):
    value_field: ClassVar[str] = "celsius"

    celsius: float = Field(..., allow_inf_nan=False)


_STREAM_FIELDS: Dict[str, Type[Sample]] = {
    "profile": DepthSample,
    "heart_rate_samples": HeartRateSample,
    "water_temp_samples": WaterTempSample,
}

_STREAM_ALIASES = ("profile", "heartRateSamples", "waterTempSamples")


class SortMode(str, Enum):
    """Orderings offered for the dive history list."""

    date_desc = "dateDesc"
    date_asc = "dateAsc"
    location_az = "locationAZ"
    location_za = "locationZA"

    @property
    def label(self) -> str:
        return {
            SortMode.date_desc: "Date (newest)",
            SortMode.date_asc: "Date (oldest)",
            SortMode.location_az: "Location A-Z",
            SortMode.location_za: "Location Z-A",
        }[self]


class DiveSummary(BaseModel):
    """Immutable record of one finished dive and its three sample streams."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")
    max_depth_meters: float = Field(..., alias="maxDepthMeters", ge=0, allow_inf_nan=False)
    duration_seconds: float = Field(..., alias="durationSeconds", ge=0, allow_inf_nan=False)
    ending_heart_rate: Optional[int] = Field(default=None, alias="endingHeartRate")
    water_temperature_celsius: Optional[float] = Field(
        default=None, alias="waterTemperatureCelsius"
    )
    location_description: Optional[str] = Field(default=None, alias="locationDescription")
    weather_summary: Optional[str] = Field(default=None, alias="weatherSummary")
    weather_air_temp_celsius: Optional[float] = Field(
        default=None, alias="weatherAirTempCelsius"
    )
    location_latitude: Optional[float] = Field(default=None, alias="locationLatitude")
    location_longitude: Optional[float] = Field(default=None, alias="locationLongitude")
    profile: Tuple[DepthSample, ...] = ()
    heart_rate_samples: Tuple[HeartRateSample, ...] = Field(
        default=(), alias="heartRateSamples"
    )
    water_temp_samples: Tuple[WaterTempSample, ...] = Field(
        default=(), alias="waterTempSamples"
    )

    @field_validator("id", mode="before")
    @classmethod
    def _synthesize_missing_id(cls, value: Any) -> UUID:
        return _coerce_uuid(value)

    @field_validator("start_date", "end_date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @field_validator("profile", "heart_rate_samples", "water_temp_samples", mode="before")
    @classmethod
    def _drop_malformed_samples(cls, value: Any, info: ValidationInfo) -> Tuple[Sample, ...]:
        if value is None or not isinstance(value, (list, tuple)):
            return ()

        sample_type = _STREAM_FIELDS[info.field_name]
        kept: list[Sample] = []
        dropped = 0
        for entry in value:
            if isinstance(entry, sample_type):
                kept.append(entry)
                continue
            try:
                kept.append(sample_type.model_validate(entry))
            except ValidationError:
                dropped += 1

        if dropped:
            logger.debug(
                "Dropped malformed samples",
                extra={"stream": info.field_name, "dropped_count": dropped},
            )
        return tuple(kept)

    @field_serializer("start_date", "end_date", when_used="json")
    def _epoch_seconds(self, value: datetime) -> float:
        return value.timestamp()

    @classmethod
    def finalize(
        cls,
        start_date: datetime,
        end_date: datetime,
        max_depth_meters: float,
        duration_seconds: float,
        ending_heart_rate: Optional[int] = None,
        water_temperature_celsius: Optional[float] = None,
        profile: Tuple[DepthSample, ...] | list[DepthSample] = (),
        heart_rate_samples: Tuple[HeartRateSample, ...] | list[HeartRateSample] = (),
        water_temp_samples: Tuple[WaterTempSample, ...] | list[WaterTempSample] = (),
    ) -> "DiveSummary":
        """Create the record for a dive that has just ended, under a new id."""
        return cls(
            id=uuid4(),
            start_date=start_date,
            end_date=end_date,
            max_depth_meters=max_depth_meters,
            duration_seconds=duration_seconds,
            ending_heart_rate=ending_heart_rate,
            water_temperature_celsius=water_temperature_celsius,
            profile=tuple(profile),
            heart_rate_samples=tuple(heart_rate_samples),
            water_temp_samples=tuple(water_temp_samples),
        )

    def with_location_description(self, text: str) -> "DiveSummary":
        return self.model_copy(update={"location_description": text})

    def with_weather(self, summary: str, air_temp_celsius: Optional[float]) -> "DiveSummary":
        return self.model_copy(
            update={"weather_summary": summary, "weather_air_temp_celsius": air_temp_celsius}
        )

    def with_coordinates(self, latitude: float, longitude: float) -> "DiveSummary":
        return self.model_copy(
            update={"location_latitude": latitude, "location_longitude": longitude}
        )

    def to_payload(self) -> Dict[str, Any]:
        """Encode for transport or storage; absent fields and empty streams are omitted."""
        payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        for key in _STREAM_ALIASES:
            if not payload.get(key):
                payload.pop(key, None)
        return payload

    @classmethod
    def from_payload(cls, payload: Any) -> Optional["DiveSummary"]:
        """Decode a wire record, or return ``None`` when a required field is unusable."""
        if not isinstance(payload, Mapping):
            logger.warning("Rejected dive payload", extra={"reason": "not a mapping"})
            return None
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
            logger.warning(
                "Rejected dive payload",
                extra={"reason": f"invalid fields: {', '.join(fields)}"},
            )
            return None

    @property
    def average_heart_rate(self) -> Optional[int]:
        if self.heart_rate_samples:
            total = sum(sample.bpm for sample in self.heart_rate_samples)
            return round_half_away_from_zero(total / len(self.heart_rate_samples))
        return self.ending_heart_rate

    @property
    def city(self) -> Optional[str]:
        if not self.location_description:
            return None
        first = self.location_description.split(",", 1)[0].strip()
        return first or None

    @property
    def duration_text(self) -> str:
        total = int(self.duration_seconds)
        return f"{total // 60:02d}:{total % 60:02d}"

    @property
    def depth_text(self) -> str:
        return f"{self.max_depth_meters:.1f} m"

    @property
    def profile_max_depth(self) -> Optional[float]:
        """Deepest profile sample; a display fallback, not a substitute for ``max_depth_meters``."""
        if not self.profile:
            return None
        return max(sample.depth_meters for sample in self.profile)
