from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from uuid import uuid4

import pytest

from datastore.history_store import HistoryStore
from models.records import DepthSample, DiveSummary
from services.enrichment import WeatherSnapshot, WeatherUnavailable
from services.receiver import UNDECODABLE_STATUS, DiveReceiver
from services.reconciler import HistoryReconciler
from services.sync import DiveSyncManager
from services.transport import LoopbackTransport

END = datetime(2024, 7, 1, 14, 5, tzinfo=timezone.utc)


class StubGeocoder:
    def __init__(self, name: Optional[str] = "Toronto, Ontario", error: Exception | None = None) -> None:
        self.name = name
        self.error = error
        self.calls: List[Tuple[float, float]] = []

    def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        self.calls.append((latitude, longitude))
        if self.error is not None:
            raise self.error
        return self.name


class StubWeatherClient:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.closed = False
        self.calls: List[Tuple[float, float]] = []

    def current(self, latitude: float, longitude: float) -> WeatherSnapshot:
        self.calls.append((latitude, longitude))
        if self.fail:
            raise WeatherUnavailable("Weather unavailable.")
        return WeatherSnapshot(
            temperature_c=23.5,
            wind_speed_kmh=8.0,
            condition="Clear sky",
            timestamp=END,
            latitude=latitude,
            longitude=longitude,
        )

    def close(self) -> None:
        self.closed = True


def _dive(**overrides) -> DiveSummary:
    summary = DiveSummary.finalize(
        start_date=END - timedelta(seconds=75),
        end_date=END,
        max_depth_meters=9.5,
        duration_seconds=75.0,
        profile=[DepthSample(seconds=0, depth_meters=0.0), DepthSample(seconds=40, depth_meters=9.5)],
    )
    return summary.model_copy(update=overrides) if overrides else summary


@pytest.fixture
def store(tmp_path: Path) -> HistoryStore:
    return HistoryStore(name="dives", persistence_path=tmp_path / "history.json")


@pytest.fixture
def receiver_factory(store: HistoryStore) -> Iterator:
    created: List[DiveReceiver] = []

    def factory(**kwargs) -> DiveReceiver:
        receiver = DiveReceiver(
            reconciler=HistoryReconciler(limit=kwargs.pop("limit", 50)),
            store=store,
            workers=1,
            **kwargs,
        )
        created.append(receiver)
        return receiver

    yield factory

    for receiver in created:
        receiver.shutdown()


def test_handle_payload_stores_and_persists(receiver_factory, store: HistoryStore) -> None:
    receiver = receiver_factory()
    dive = _dive()

    stored = receiver.handle_payload(dive.to_payload())

    assert stored == dive
    assert receiver.last_dive == dive
    assert receiver.status_message == "Latest dive synced at 14:05."
    assert store.load() == [dive]


def test_handle_payload_rejects_undecodable(receiver_factory) -> None:
    receiver = receiver_factory()

    assert receiver.handle_payload({"maxDepthMeters": 3}) is None
    assert receiver.status_message == UNDECODABLE_STATUS
    assert len(receiver.reconciler) == 0


def test_coordinates_become_placeholder_location(receiver_factory) -> None:
    receiver = receiver_factory()
    dive = _dive(location_latitude=43.781, location_longitude=-79.2342)

    stored = receiver.handle_payload(dive.to_payload())

    assert stored is not None
    assert stored.location_description == "43.7810°N, 79.2342°W"


def test_enrichment_updates_location_and_weather(receiver_factory, store: HistoryStore) -> None:
    geocoder = StubGeocoder()
    weather = StubWeatherClient()
    receiver = receiver_factory(geocoder=geocoder, weather_client=weather)
    dive = _dive(location_latitude=43.65, location_longitude=-79.38)

    receiver.handle_payload(dive.to_payload())
    receiver.wait_for_enrichment(timeout=5)

    enriched = receiver.fetch_dive(dive.id)
    assert geocoder.calls == [(43.65, -79.38)]
    assert enriched.location_description == "Toronto, Ontario"
    assert enriched.weather_summary == "Clear sky"
    assert enriched.weather_air_temp_celsius == 23.5
    assert receiver.current_weather is not None
    assert receiver.weather_error is None
    assert receiver.status_message == "Location updated for latest dive."
    assert store.load()[0].weather_summary == "Clear sky"


def test_enrichment_failures_leave_dive_untouched(receiver_factory) -> None:
    receiver = receiver_factory(
        geocoder=StubGeocoder(error=RuntimeError("geocoder offline")),
        weather_client=StubWeatherClient(fail=True),
    )
    dive = _dive(location_latitude=43.65, location_longitude=-79.38)

    receiver.handle_payload(dive.to_payload())
    receiver.wait_for_enrichment(timeout=5)

    stored = receiver.fetch_dive(dive.id)
    assert stored.location_description == "43.6500°N, 79.3800°W"
    assert stored.weather_summary is None
    assert receiver.weather_error == "Weather unavailable."


def test_dives_without_coordinates_are_not_enriched(receiver_factory) -> None:
    geocoder = StubGeocoder()
    receiver = receiver_factory(geocoder=geocoder)

    receiver.handle_payload(_dive().to_payload())
    receiver.wait_for_enrichment(timeout=5)

    assert geocoder.calls == []


def test_fetch_unknown_dive_raises(receiver_factory) -> None:
    receiver = receiver_factory()

    with pytest.raises(KeyError):
        receiver.fetch_dive(_dive().id)


def test_activate_restores_saved_history(receiver_factory, store: HistoryStore) -> None:
    older = _dive()
    newer = _dive(id=uuid4(), end_date=END + timedelta(minutes=30))
    store.save([newer, older])
    receiver = receiver_factory()

    receiver.activate()

    assert receiver.reconciler.history() == [newer, older]
    assert receiver.status_message == "Loaded last saved dive."


def test_duplicate_delivery_over_loopback(receiver_factory) -> None:
    receiver = receiver_factory()
    transport = LoopbackTransport(duplicate=True)
    receiver.bind(transport)
    sync = DiveSyncManager(transport)
    dive = _dive()

    assert sync.send(dive) is True

    assert receiver.reconciler.history() == [dive]
    assert sync.last_sent_summary == dive
    assert sync.last_error_message is None


def test_shutdown_closes_weather_client(store: HistoryStore) -> None:
    weather = StubWeatherClient()
    receiver = DiveReceiver(
        reconciler=HistoryReconciler(), store=store, weather_client=weather, workers=1
    )

    receiver.shutdown()

    assert weather.closed is True


def test_export_history(receiver_factory, tmp_path: Path) -> None:
    receiver = receiver_factory()
    dive = _dive()
    receiver.handle_payload(dive.to_payload())

    exported = receiver.export_history(tmp_path / "exports")

    assert exported.exists()
    assert str(dive.id) in exported.read_text()


def test_enrichment_needs_both_coordinates(receiver_factory) -> None:
    geocoder = StubGeocoder()
    weather = StubWeatherClient()
    receiver = receiver_factory(geocoder=geocoder, weather_client=weather)
    dive = _dive(location_latitude=43.65)
    receiver.reconciler.insert(dive)

    receiver._enrich(dive)

    assert geocoder.calls == []
    assert weather.calls == []
    assert receiver.fetch_dive(dive.id) == dive
