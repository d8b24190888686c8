from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig

_PENDING_STATUSES = {"queued", "running"}


class ApiClient:
    """HTTP client for the fleet run endpoints."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def submit_run(
        self,
        device_ids: List[str],
        cycles: Optional[int] = None,
        strategy: Optional[str] = None,
        cooldown: Optional[float] = None,
        seed: Optional[int] = None,
    ) -> str:
        body: Dict[str, Any] = {"device_ids": device_ids}
        optional = {"cycles": cycles, "strategy": strategy, "cooldown": cooldown, "seed": seed}
        body.update({key: value for key, value in optional.items() if value is not None})
        try:
            response = self._client.post("/runs", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        payload = response.json()
        run_id = payload.get("run_id")
        if not isinstance(run_id, str):
            raise typer.BadParameter("Unexpected response payload when submitting a run.")
        return run_id

    def get_run(self, run_id: str) -> Dict[str, Any]:
        try:
            response = self._client.get(f"/runs/{run_id}")
            if response.status_code == 404:
                raise typer.BadParameter(f"Run {run_id} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def list_runs(
        self, status: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        optional = {"status": status, "limit": limit}
        params = {key: value for key, value in optional.items() if value is not None}
        try:
            response = self._client.get("/runs", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def cancel_run(self, run_id: str) -> Dict[str, Any]:
        try:
            response = self._client.delete(f"/runs/{run_id}")
            if response.status_code == 404:
                raise typer.BadParameter(f"Run {run_id} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def poll_run(self, run_id: str, interval: float, timeout: float) -> Dict[str, Any]:
        deadline = time.monotonic() + timeout
        last_payload: Dict[str, Any] | None = None
        while time.monotonic() <= deadline:
            last_payload = self.get_run(run_id)
            if last_payload.get("status") not in _PENDING_STATUSES:
                return last_payload
            time.sleep(interval)
        typer.secho(
            (
                f"Timed out waiting for run {run_id}. "
                f"Last status: {last_payload.get('status') if last_payload else 'unknown'}"
            ),
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: Any = None
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
