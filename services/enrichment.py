"""Location and weather lookups that decorate a dive after it has been stored."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class WeatherUnavailable(RuntimeError):
    """The weather service could not produce a current reading."""


class Geocoder(Protocol):
    def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        """Return a short place name such as ``"Toronto, Ontario"``, if one is known."""
        ...


@dataclass(frozen=True)
class WeatherSnapshot:
    temperature_c: float
    wind_speed_kmh: float
    condition: str
    timestamp: datetime
    latitude: float
    longitude: float


class _CurrentWeather(BaseModel):
    temperature: float
    windspeed: float
    weathercode: int
    time: Optional[datetime] = None


class _OpenMeteoResponse(BaseModel):
    current_weather: Optional[_CurrentWeather] = Field(default=None)


def format_coordinate_label(latitude: float, longitude: float) -> str:
    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if longitude >= 0 else "W"
    return f"{abs(latitude):.4f}°{lat_dir}, {abs(longitude):.4f}°{lon_dir}"


def weather_description(code: int) -> str:
    """Human readable condition for a WMO weather code."""
    if code == 0:
        return "Clear sky"
    if code in (1, 2, 3):
        return "Partly cloudy"
    if code in (45, 48):
        return "Foggy"
    if code in (51, 53, 55):
        return "Drizzle"
    if code in (61, 63, 65):
        return "Rain"
    if code in (71, 73, 75):
        return "Snow"
    if code in (80, 81, 82):
        return "Showers"
    if code in (95, 96, 99):
        return "Thunderstorm"
    return "Weather update"


class WeatherClient:
    """Current conditions from an Open-Meteo compatible forecast endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = base_url
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def current(self, latitude: float, longitude: float) -> WeatherSnapshot:
        try:
            response = self._client.get(
                self._url,
                params={
                    "latitude": latitude,
                    "longitude": longitude,
                    "current_weather": "true",
                },
            )
            response.raise_for_status()
            decoded = _OpenMeteoResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            raise WeatherUnavailable(str(exc)) from exc

        current = decoded.current_weather
        if current is None:
            raise WeatherUnavailable("Weather unavailable.")

        return WeatherSnapshot(
            temperature_c=current.temperature,
            wind_speed_kmh=current.windspeed,
            condition=weather_description(current.weathercode),
            timestamp=current.time or datetime.now(timezone.utc),
            latitude=latitude,
            longitude=longitude,
        )
