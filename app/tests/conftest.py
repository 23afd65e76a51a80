"""Shared fixtures: an in-memory stand-in for the storage bucket."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from app.schema.experience import PlaylistState
from app.services.storage_client import StorageError, StorageNotConfiguredError, document_name


class InMemoryStorage:
    """Mimics ExperienceStorage: raw documents keyed by experience id."""

    def __init__(self) -> None:
        self.documents: dict[str, Any] = {}
        self.writes: list[dict[str, Any]] = []
        self.configured = True
        self.fail_reads: Exception | None = None
        self.fail_writes: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    def _check(self) -> None:
        if not self.configured:
            raise StorageNotConfiguredError()

    async def get_document(self, experience_id: str) -> Any:
        self._check()
        if self.fail_reads is not None:
            raise self.fail_reads
        return self.documents.get(experience_id)

    async def put_document(self, experience_id: str, state: PlaylistState) -> None:
        self._check()
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            document = state.to_document()
            self.writes.append(document)
            if self.fail_writes is not None:
                raise self.fail_writes
            self.documents[experience_id] = document
        finally:
            self.in_flight -= 1

    async def delete_document(self, experience_id: str) -> None:
        self._check()
        if experience_id not in self.documents:
            raise StorageError("Failed to delete data: 404 Not Found", status_code=404)
        del self.documents[experience_id]

    async def list_documents(self) -> list[str]:
        self._check()
        return [document_name(experience_id) for experience_id in self.documents]


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()
