from __future__ import annotations
import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Iterable, List, Optional

from models.records import DiveSummary
from settings import get_settings

logger = logging.getLogger(__name__)


class HistoryStore:
    """Saves and loads the whole dive history as one JSON document of wire payloads."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self.persistence_path = persistence_path
        self._payloads: List[dict] = []
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)

    def save(self, history: Iterable[DiveSummary]) -> None:
        payloads = [summary.to_payload() for summary in history]
        with self._lock:
            self._payloads = payloads
            self._persist()

    def load(self) -> List[DiveSummary]:
        with self._lock:
            payloads = self._read_from_disk() if self.persistence_path else list(self._payloads)

        summaries: List[DiveSummary] = []
        for payload in payloads:
            summary = DiveSummary.from_payload(payload)
            if summary is not None:
                summaries.append(summary)

        dropped = len(payloads) - len(summaries)
        if dropped:
            logger.warning(
                "Skipped undecodable dives in saved history",
                extra={"dropped_count": dropped, "history_size": len(summaries)},
            )
        return summaries

    def export(self, directory: Path, history: Iterable[DiveSummary]) -> Path:
        """Write a readable copy of ``history`` into ``directory`` and return its path."""
        directory.mkdir(parents=True, exist_ok=True)
        filename = f"DiveHistory-{datetime.now().strftime('%Y-%m-%d-%H%M%S')}.json"
        path = directory / filename
        payloads = [summary.to_payload() for summary in history]
        path.write_text(json.dumps(payloads, indent=2, sort_keys=True))
        logger.info("Exported dive history", extra={"history_size": len(payloads)})
        return path

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        self.persistence_path.write_text(json.dumps(self._payloads, indent=2, sort_keys=True))

    def _read_from_disk(self) -> List[dict]:
        if not self.persistence_path or not self.persistence_path.exists():
            return []

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Saved dive history is unreadable", extra={"reason": str(exc)})
            return []

        if not isinstance(data, list):
            logger.warning("Saved dive history is unreadable", extra={"reason": "not a list"})
            return []
        return data


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> HistoryStore:
    settings = get_settings()
    store_path = settings.history_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return HistoryStore(name=name or "savedDiveSummaries", persistence_path=persistence)
