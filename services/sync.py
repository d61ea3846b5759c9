"""Recorder-side hand-off of finished dives to the transport."""

from __future__ import annotations

import logging
from typing import Optional

from models.records import DiveSummary
from services.transport import Transport, TransportError

logger = logging.getLogger(__name__)


class DiveSyncManager:
    """Sends finished dives; delivery problems become a status message, never an exception."""

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self.last_sent_summary: Optional[DiveSummary] = None
        self.last_error_message: Optional[str] = None

    def send(self, summary: DiveSummary) -> bool:
        self.last_error_message = None
        self.last_sent_summary = summary
        try:
            self.transport.send(summary.to_payload())
        except TransportError as exc:
            self.last_error_message = str(exc)
            logger.warning(
                "Dive delivery failed",
                extra={"dive_id": summary.id, "reason": str(exc)},
            )
            return False
        logger.info("Dive sent", extra={"dive_id": summary.id, "status": "sent"})
        return True
