"""HTTP client for the experience data API, used as the editor's remote store."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import httpx

from app.schema.experience import PlaylistState

logger = logging.getLogger(__name__)


class ExperienceClientError(RuntimeError):
    """Raised when the experience data API rejects or fails a request."""


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        detail = payload.get("detail") or payload.get("error")
        if isinstance(detail, str) and detail:
            return detail
    return fallback


class ExperienceDataClient:
    """Talk to ``/experience-data`` on behalf of the current viewer."""

    def __init__(
        self,
        base_url: str,
        *,
        headers: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self._client = client
        self._timeout = timeout

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def _send(self, method: str, path: str, experience_id: str, **kwargs: Any) -> httpx.Response:
        async with self._session() as client:
            return await client.request(
                method,
                f"{self.base_url}{path}",
                params={"experienceId": experience_id},
                headers=self.headers,
                **kwargs,
            )

    async def get_document(self, experience_id: str) -> dict[str, Any] | None:
        """Load the playlist document; failures are logged and reported as ``None``."""

        try:
            response = await self._send("GET", "/experience-data", experience_id)
        except httpx.HTTPError:
            logger.exception("Error loading experience data", extra={"experience_id": experience_id})
            return None

        if response.status_code == httpx.codes.FORBIDDEN:
            logger.warning("Access denied when loading experience data", extra={"experience_id": experience_id})
            return None
        if not response.is_success:
            logger.error(
                "Failed to load experience data",
                extra={"experience_id": experience_id, "status_code": response.status_code},
            )
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.error("Experience data response is not JSON", extra={"experience_id": experience_id})
            return None
        return payload if isinstance(payload, dict) else None

    async def put_document(self, experience_id: str, state: PlaylistState) -> None:
        try:
            response = await self._send("PUT", "/experience-data", experience_id, json=state.to_document())
        except httpx.HTTPError as exc:
            raise ExperienceClientError("Network error while saving") from exc
        if not response.is_success:
            raise ExperienceClientError(_error_message(response, "Failed to save data"))

    async def delete_document(self, experience_id: str) -> None:
        try:
            response = await self._send("DELETE", "/experience-data/admin", experience_id)
        except httpx.HTTPError as exc:
            raise ExperienceClientError("Network error while deleting") from exc
        if not response.is_success:
            raise ExperienceClientError(_error_message(response, "Failed to delete data"))

    async def list_documents(self, experience_id: str) -> list[str]:
        try:
            response = await self._send("GET", "/experience-data/admin", experience_id)
        except httpx.HTTPError as exc:
            raise ExperienceClientError("Network error while listing files") from exc
        if not response.is_success:
            raise ExperienceClientError(_error_message(response, "Failed to list files"))
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExperienceClientError("Invalid response while listing files") from exc
        files = payload.get("files") if isinstance(payload, dict) else None
        if not isinstance(files, list):
            raise ExperienceClientError("Invalid response while listing files")
        return [str(name) for name in files]
