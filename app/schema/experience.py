"""Pydantic models for experience playlist documents and API envelopes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.url_normalizer import is_embed_url


class VideoEntry(BaseModel):
    """A single video in an experience playlist."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str
    url: str = Field(..., description="Canonical embeddable URL")
    duration: str
    created_at: datetime = Field(..., alias="createdAt")

    @field_validator("url")
    @classmethod
    def _embeddable(cls, value: str) -> str:
        if not is_embed_url(value):
            raise ValueError("url must be a YouTube or Loom embed URL")
        return value


class PlaylistState(BaseModel):
    """Title, subtitle and ordered videos stored for one experience."""

    title: str
    subtitle: str
    videos: list[VideoEntry] = Field(default_factory=list)

    @field_validator("videos")
    @classmethod
    def _unique_ids(cls, value: list[VideoEntry]) -> list[VideoEntry]:
        seen: set[str] = set()
        for video in value:
            if video.id in seen:
                raise ValueError(f"Duplicate video id: {video.id}")
            seen.add(video.id)
        return value

    def to_document(self) -> dict:
        """Return the JSON-ready document with camelCase keys."""

        return self.model_dump(mode="json", by_alias=True)


class SaveResponse(BaseModel):
    success: bool = True
    data: PlaylistState


class StoredFilesResponse(BaseModel):
    success: bool = True
    files: list[str]
    message: str


class DeleteResponse(BaseModel):
    success: bool = True
    message: str
