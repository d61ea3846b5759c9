"""Bounded, deduplicated history of received dives."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from models.records import DiveSummary, SortMode

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryReconciler:
    """Merge summaries by id into a newest-first history capped at ``limit`` entries.

    A summary whose id is already known replaces the stored one wholesale, so a
    later delivery carrying enrichment fields wins over an earlier bare one.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit <= 0:
            raise ValueError("History limit must be positive.")
        self.limit = limit
        self._history: List[DiveSummary] = []
        self._lock = Lock()

    def insert(self, summary: DiveSummary) -> None:
        with self._lock:
            self._insert_locked(summary)

    def update(
        self, dive_id: UUID, transform: Callable[[DiveSummary], DiveSummary]
    ) -> Optional[DiveSummary]:
        """Apply ``transform`` to the stored dive and store the result atomically.

        Returns the updated summary, or ``None`` when the id has been evicted.
        """
        with self._lock:
            current = self._find_locked(dive_id)
            if current is None:
                return None
            updated = transform(current)
            self._insert_locked(updated)
            return updated

    def get(self, dive_id: UUID) -> Optional[DiveSummary]:
        with self._lock:
            return self._find_locked(dive_id)

    def latest(self) -> Optional[DiveSummary]:
        with self._lock:
            return self._history[0] if self._history else None

    def history(self) -> List[DiveSummary]:
        with self._lock:
            return list(self._history)

    def replace_all(self, summaries: Iterable[DiveSummary]) -> None:
        with self._lock:
            self._history = []
            for summary in summaries:
                self._insert_locked(summary)

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def _find_locked(self, dive_id: UUID) -> Optional[DiveSummary]:
        for summary in self._history:
            if summary.id == dive_id:
                return summary
        return None

    def _insert_locked(self, summary: DiveSummary) -> None:
        for index, existing in enumerate(self._history):
            if existing.id == summary.id:
                self._history[index] = summary
                break
        else:
            self._history.append(summary)

        ordered = sorted(self._history, key=lambda dive: dive.end_date, reverse=True)
        evicted = len(ordered) - self.limit
        self._history = ordered[: self.limit]
        if evicted > 0:
            logger.info(
                "Evicted oldest dives from history",
                extra={"evicted_count": evicted, "history_size": len(self._history)},
            )


def _location_key(summary: DiveSummary) -> str:
    return (summary.location_description or "").casefold()


def deduped_sorted(
    history: Iterable[DiveSummary], sort_mode: SortMode = SortMode.date_desc
) -> List[DiveSummary]:
    """One entry per id (first one seen wins), ordered by ``sort_mode``."""
    unique: Dict[UUID, DiveSummary] = {}
    for summary in history:
        unique.setdefault(summary.id, summary)
    dives = list(unique.values())

    if sort_mode is SortMode.date_asc:
        return sorted(dives, key=lambda dive: dive.end_date)
    if sort_mode is SortMode.location_az:
        return sorted(dives, key=_location_key)
    if sort_mode is SortMode.location_za:
        return sorted(dives, key=_location_key, reverse=True)
    return sorted(dives, key=lambda dive: dive.end_date, reverse=True)


def available_locations(dives: Iterable[DiveSummary]) -> List[str]:
    """Distinct city names, case-insensitively ordered."""
    cities = {dive.city for dive in dives if dive.city}
    return sorted(cities, key=str.casefold)


def filtered_dives(
    dives: Iterable[DiveSummary],
    duration_range: Optional[Tuple[float, float]] = None,
    location: Optional[str] = None,
    min_duration: float = 0.0,
) -> List[DiveSummary]:
    result: List[DiveSummary] = []
    for dive in dives:
        if duration_range is not None:
            lower, upper = duration_range
            if not lower <= dive.duration_seconds <= upper:
                continue
        if location is not None and dive.city != location:
            continue
        if dive.duration_seconds < min_duration:
            continue
        result.append(dive)
    return result
