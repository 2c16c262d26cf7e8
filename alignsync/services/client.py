"""HTTP client for the remote alignment job API."""
import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from alignsync.config import (
    get_api_base,
    get_asset_manifest_location,
    get_http_timeout,
    get_list_limit,
    get_task_model,
)

_logger = logging.getLogger("alignsync")

API_KEY_HEADER = "x-api-key"


class ApiError(Exception):
    """Non-success response from a remote endpoint."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MissingApiKeyError(Exception):
    """An operation needs the API credential and none is configured."""


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return json.dumps(body)


def _raise_for_status(response: httpx.Response, prefix: str) -> None:
    if response.is_success:
        return
    raise ApiError(
        f"{prefix}: {response.status_code} {response.reason_phrase} - {_error_detail(response)}",
        status_code=response.status_code,
    )


def _read_json_file(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class AlignmentApiClient:
    """
    Thin async wrapper over the job API.

    The API key can change while the client is alive (saved from the UI), so
    it is read on every request rather than baked into default headers.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        manifest_location: Optional[str] = None,
        model: Optional[str] = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or get_api_base()).rstrip("/")
        self.manifest_location = manifest_location or get_asset_manifest_location()
        self.model = model or get_task_model()
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(get_http_timeout()))

    async def aclose(self) -> None:
        await self._http.aclose()

    def _auth_headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise MissingApiKeyError("Authorize first: no API key configured.")
        return {API_KEY_HEADER: self.api_key}

    async def create_task(self, audio_url: str) -> Dict[str, Any]:
        """Submit a new alignment job for ``audio_url``."""
        _logger.info("Creating task url=%s", audio_url)
        response = await self._http.post(
            f"{self.base_url}/tasks",
            headers=self._auth_headers(),
            json={"url": audio_url, "targets": [{"model": self.model, "formats": ["json"]}]},
        )
        _logger.info("Create task response status=%d", response.status_code)
        _raise_for_status(response, "API Error")
        data = response.json()
        _logger.info("Created task task_id=%s status=%s", data.get("id"), data.get("status"))
        return data

    async def get_task(self, task_id: str) -> Dict[str, Any]:
        _logger.debug("Fetching task task_id=%s", task_id)
        response = await self._http.get(f"{self.base_url}/tasks/{task_id}", headers=self._auth_headers())
        _raise_for_status(response, f"Failed to fetch task {task_id}")
        data = response.json()
        _logger.debug("Fetched task task_id=%s status=%s", task_id, data.get("status") if isinstance(data, dict) else None)
        return data

    async def list_tasks(self, limit: Optional[int] = None) -> Any:
        """Recent tasks; the array sits under ``tasks``, ``data``, ``results`` or is the payload."""
        limit = limit or get_list_limit()
        start = time.monotonic()
        response = await self._http.get(
            f"{self.base_url}/tasks",
            params={"limit": limit},
            headers=self._auth_headers(),
        )
        _raise_for_status(response, "Failed to list tasks")
        data = response.json()
        _logger.info(
            "Listed tasks limit=%d keys=%s elapsed_ms=%d",
            limit,
            sorted(data) if isinstance(data, dict) else "list",
            int((time.monotonic() - start) * 1000),
        )
        return data

    async def fetch_json(self, url: str) -> Any:
        """Fetch an alignment result document. Result links are pre-signed, so no API key."""
        response = await self._http.get(url)
        _raise_for_status(response, "Fetch failed")
        return response.json()

    async def fetch_demo_asset_manifest(self) -> Any:
        """Load the demo asset manifest from a URL or a local JSON file."""
        location = self.manifest_location
        if location.startswith(("http://", "https://")):
            response = await self._http.get(location, headers={"Cache-Control": "no-store"})
            _raise_for_status(response, "Failed to load demo asset manifest")
            return response.json()
        return await asyncio.to_thread(_read_json_file, Path(location))
