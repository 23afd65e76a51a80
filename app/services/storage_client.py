"""Client for the hosted object-storage bucket that holds experience documents."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.config import Settings
from app.schema.experience import PlaylistState

logger = logging.getLogger(__name__)


class StorageNotConfiguredError(RuntimeError):
    """Raised when no storage credential is available."""

    def __init__(self) -> None:
        super().__init__("Storage not configured")


class StorageError(RuntimeError):
    """Raised when a storage request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class StorageConfig:
    """Connection details for the storage bucket."""

    base_url: str
    bucket_id: str
    api_key: str | None = None
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "StorageConfig":
        return cls(
            base_url=settings.storage_base_url.rstrip("/"),
            bucket_id=settings.storage_bucket_id,
            api_key=settings.storage_api_key,
            timeout=settings.storage_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


def document_name(experience_id: str) -> str:
    """Return the bucket file name used for an experience."""

    return f"experience-{experience_id}.json"


class ExperienceStorage:
    """Full-document GET/PUT/DELETE/LIST operations keyed by experience id."""

    def __init__(self, config: StorageConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._client = client

    @property
    def _bucket_url(self) -> str:
        return f"{self.config.base_url}/buckets/{self.config.bucket_id}"

    def _headers(self) -> dict[str, str]:
        if not self.config.configured:
            raise StorageNotConfiguredError()
        return {"Authorization": f"Bearer {self.config.api_key}"}

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            yield client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = self._headers()
        headers.update(kwargs.pop("headers", {}))
        try:
            async with self._session() as client:
                return await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise StorageError(f"Unable to contact storage API: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise StorageError(
            f"Failed to {action}: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
        )

    async def ensure_bucket(self) -> None:
        """Create the bucket if needed; existing buckets and failures are tolerated."""

        try:
            response = await self._request(
                "POST",
                f"{self.config.base_url}/buckets",
                json={"bucket_id": self.config.bucket_id},
            )
        except StorageError as exc:
            logger.warning("Unable to ensure storage bucket: %s", exc)
            return
        if not response.is_success and response.status_code != httpx.codes.CONFLICT:
            logger.warning(
                "Bucket creation rejected",
                extra={"bucket_id": self.config.bucket_id, "status_code": response.status_code},
            )

    async def get_document(self, experience_id: str) -> dict[str, Any] | None:
        """Fetch the raw stored document, or ``None`` when nothing is stored yet."""

        response = await self._request(
            "GET",
            f"{self._bucket_url}/files/{document_name(experience_id)}",
            headers={"Accept": "application/json"},
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        self._raise_for_status(response, "retrieve data")

        try:
            payload = response.json()
            if isinstance(payload, dict) and isinstance(payload.get("content"), str):
                payload = json.loads(payload["content"])
        except ValueError as exc:
            raise StorageError("Stored document is not valid JSON") from exc

        if not isinstance(payload, dict):
            raise StorageError("Stored document is not a JSON object")
        return payload

    async def put_document(self, experience_id: str, state: PlaylistState) -> None:
        """Replace the stored document for an experience."""

        await self.ensure_bucket()
        file_name = document_name(experience_id)
        response = await self._request(
            "PUT",
            f"{self._bucket_url}/upload",
            json={
                "file_name": file_name,
                "content": json.dumps(state.to_document(), indent=2),
                "content_type": "application/json",
            },
        )
        self._raise_for_status(response, "save data")
        logger.info("Stored experience document", extra={"file_name": file_name})

    async def delete_document(self, experience_id: str) -> None:
        file_name = document_name(experience_id)
        response = await self._request("DELETE", f"{self._bucket_url}/files/{file_name}")
        self._raise_for_status(response, "delete data")
        logger.info("Deleted experience document", extra={"file_name": file_name})

    async def list_documents(self) -> list[str]:
        """Return the names of all stored experience documents."""

        response = await self._request("GET", f"{self._bucket_url}/files")
        self._raise_for_status(response, "list files")
        try:
            payload = response.json()
        except ValueError as exc:
            raise StorageError("Invalid response from storage API") from exc
        files = payload.get("files") if isinstance(payload, dict) else None
        return [item["name"] for item in files or [] if isinstance(item, dict) and item.get("name")]


def build_storage(settings: Settings) -> ExperienceStorage:
    return ExperienceStorage(StorageConfig.from_settings(settings))
