"""Delivery channels between the recorder and the viewer.

Delivery is at-least-once and unordered: receivers must tolerate the same
payload arriving more than once.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Protocol

import httpx

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]
ReceiveCallback = Callable[[Payload], Any]


class TransportError(RuntimeError):
    """The peer could not be reached or refused the payload."""


class Transport(Protocol):
    def send(self, payload: Payload) -> None: ...

    def on_receive(self, callback: ReceiveCallback) -> None: ...


class LoopbackTransport:
    """In-process channel that hands each payload to every subscriber.

    With ``duplicate`` set every send is delivered twice, the way a queued
    background transfer and a live message can both reach the viewer.
    """

    def __init__(self, duplicate: bool = False, reachable: bool = True) -> None:
        self.duplicate = duplicate
        self.reachable = reachable
        self._callbacks: List[ReceiveCallback] = []
        self._lock = Lock()

    def on_receive(self, callback: ReceiveCallback) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def send(self, payload: Payload) -> None:
        if not self.reachable:
            raise TransportError("Paired viewer is unavailable.")
        with self._lock:
            callbacks = list(self._callbacks)
        deliveries = 2 if self.duplicate else 1
        for _ in range(deliveries):
            for callback in callbacks:
                callback(dict(payload))


class HttpTransport:
    """Posts payloads to the viewer service's ``/dives`` endpoint.

    Send-only: the viewer service is the receiving end, so subscribing is refused.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self._client = client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def on_receive(self, callback: ReceiveCallback) -> None:
        raise TransportError("HTTP delivery is send-only; the viewer service receives.")

    def send(self, payload: Payload) -> None:
        try:
            response = self._client.post("/dives", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text.strip() or "no detail provided"
            raise TransportError(
                f"Viewer rejected dive with status {exc.response.status_code}: {detail}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Viewer unreachable: {exc}") from exc
