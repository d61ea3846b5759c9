from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the dive timeline service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def send_dive(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/dives", json=payload)

    def list_dives(self, sort: str, location: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"sort": sort}
        if location:
            params["location"] = location
        return self._request("GET", "/dives", params=params)

    def get_dive(self, dive_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/dives/{dive_id}", not_found=f"Dive {dive_id} was not found.")

    def get_timeline(self, dive_id: str, at: float) -> Dict[str, Any]:
        return self._request(
            "GET",
            f"/dives/{dive_id}/timeline",
            params={"at": at},
            not_found=f"Dive {dive_id} was not found.",
        )

    def _request(
        self,
        method: str,
        path: str,
        not_found: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            if not_found is not None and response.status_code == 404:
                raise typer.BadParameter(not_found)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
