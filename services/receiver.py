"""Viewer-side pipeline: decode, reconcile, persist and enrich incoming dives."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Optional, Set
from uuid import UUID

from datastore.history_store import HistoryStore, build_default_store
from models.records import DiveSummary
from services.enrichment import (
    Geocoder,
    WeatherClient,
    WeatherSnapshot,
    WeatherUnavailable,
    format_coordinate_label,
)
from services.reconciler import HistoryReconciler
from services.transport import Transport
from settings import get_settings

logger = logging.getLogger(__name__)

UNDECODABLE_STATUS = "Received data but could not decode a dive."


class DiveReceiver:
    """Feeds every inbound payload through the reconciler, then enriches it off-thread."""

    def __init__(
        self,
        reconciler: HistoryReconciler,
        store: HistoryStore,
        weather_client: Optional[WeatherClient] = None,
        geocoder: Optional[Geocoder] = None,
        workers: int = 2,
    ) -> None:
        self.reconciler = reconciler
        self.store = store
        self.weather_client = weather_client
        self.geocoder = geocoder
        self.executor = ThreadPoolExecutor(max_workers=workers)
        self.status_message = "Waiting for the recorder to finish a dive..."
        self.current_weather: Optional[WeatherSnapshot] = None
        self.weather_error: Optional[str] = None
        self._futures: Set[Future[None]] = set()
        self._futures_lock = Lock()
        self._persist_lock = Lock()

    @property
    def last_dive(self) -> Optional[DiveSummary]:
        return self.reconciler.latest()

    def activate(self) -> None:
        """Restore the persisted history."""
        saved = self.store.load()
        if not saved:
            return
        self.reconciler.replace_all(saved)
        self.status_message = "Loaded last saved dive."
        latest = self.reconciler.latest()
        if latest is not None and latest.weather_summary is None:
            self._schedule_enrichment(latest)

    def bind(self, transport: Transport) -> None:
        transport.on_receive(self.handle_payload)

    def handle_payload(self, payload: Any) -> Optional[DiveSummary]:
        summary = DiveSummary.from_payload(payload)
        if summary is None:
            self.status_message = UNDECODABLE_STATUS
            return None

        if (
            summary.location_description is None
            and summary.location_latitude is not None
            and summary.location_longitude is not None
        ):
            summary = summary.with_location_description(
                format_coordinate_label(summary.location_latitude, summary.location_longitude)
            )

        self.reconciler.insert(summary)
        self._persist()
        self.status_message = f"Latest dive synced at {summary.end_date:%H:%M}."
        logger.info(
            "Dive received",
            extra={"dive_id": summary.id, "history_size": len(self.reconciler)},
        )
        self._schedule_enrichment(summary)
        return summary

    def fetch_dive(self, dive_id: UUID) -> DiveSummary:
        summary = self.reconciler.get(dive_id)
        if summary is None:
            raise KeyError(f"Dive {dive_id} not found.")
        return summary

    def export_history(self, directory: Path) -> Path:
        return self.store.export(directory, self.reconciler.history())

    def wait_for_enrichment(self, timeout: Optional[float] = None) -> None:
        with self._futures_lock:
            pending = set(self._futures)
        if pending:
            wait(pending, timeout=timeout)

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)
        if self.weather_client is not None:
            self.weather_client.close()

    def _schedule_enrichment(self, summary: DiveSummary) -> None:
        if summary.location_latitude is None or summary.location_longitude is None:
            return
        if self.geocoder is None and self.weather_client is None:
            return

        future = self.executor.submit(self._enrich, summary)
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._clear_future)

    def _clear_future(self, future: Future[None]) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    def _persist(self) -> None:
        with self._persist_lock:
            self.store.save(self.reconciler.history())

    def _enrich(self, summary: DiveSummary) -> None:
        latitude = summary.location_latitude
        longitude = summary.location_longitude
        if latitude is None or longitude is None:
            return

        if self.geocoder is not None:
            self._apply_place_name(self.geocoder, summary, latitude, longitude)
        if self.weather_client is not None:
            self._apply_weather(self.weather_client, summary, latitude, longitude)

    def _apply_place_name(
        self, geocoder: Geocoder, summary: DiveSummary, latitude: float, longitude: float
    ) -> None:
        try:
            name = geocoder.reverse(latitude, longitude)
        except Exception as exc:  # noqa: BLE001 - geocoders are third-party collaborators
            logger.warning(
                "Reverse geocoding failed",
                extra={"dive_id": summary.id, "reason": str(exc)},
            )
            return
        if not name:
            return

        updated = self.reconciler.update(
            summary.id, lambda dive: dive.with_location_description(name)
        )
        if updated is None:
            return
        self._persist()
        self.status_message = "Location updated for latest dive."

    def _apply_weather(
        self,
        weather_client: WeatherClient,
        summary: DiveSummary,
        latitude: float,
        longitude: float,
    ) -> None:
        try:
            snapshot = weather_client.current(latitude, longitude)
        except WeatherUnavailable as exc:
            self.weather_error = str(exc)
            logger.warning(
                "Weather lookup failed",
                extra={"dive_id": summary.id, "reason": str(exc)},
            )
            return

        self.current_weather = snapshot
        self.weather_error = None
        updated = self.reconciler.update(
            summary.id,
            lambda dive: dive.with_weather(snapshot.condition, snapshot.temperature_c),
        )
        if updated is not None:
            self._persist()


@lru_cache
def build_default_receiver(workers: Optional[int] = None) -> DiveReceiver:
    """Factory that wires the receiver from environment settings."""
    settings = get_settings()
    weather_client = (
        WeatherClient(settings.weather_api_url) if settings.weather_enabled else None
    )
    return DiveReceiver(
        reconciler=HistoryReconciler(limit=settings.history_limit),
        store=build_default_store(),
        weather_client=weather_client,
        workers=workers or settings.enrichment_workers,
    )
