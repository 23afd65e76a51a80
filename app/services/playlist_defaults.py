"""Default playlist content and validation of stored documents."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from app.schema.experience import PlaylistState, VideoEntry

logger = logging.getLogger(__name__)


class PlaylistFormatError(ValueError):
    """Raised when a stored document exists but does not have the playlist shape."""

    def __init__(self, experience_id: str) -> None:
        super().__init__(f"Stored playlist for experience {experience_id} is malformed")
        self.experience_id = experience_id


DEFAULT_TITLE = "Welcome to Your Video Experience"
DEFAULT_SUBTITLE = "Share, react, and engage with videos like never before"

_SEED_VIDEOS = (
    ("1", "Introduction to Whop", "https://www.youtube.com/embed/dQw4w9WgXcQ", "3:32", (2024, 1, 15)),
    ("2", "Getting Started with Next.js", "https://www.youtube.com/embed/DGQwd1_Apzc", "10:45", (2024, 2, 20)),
    ("3", "Tailwind CSS Basics", "https://www.youtube.com/embed/pfaSUYaSgRo", "7:18", (2024, 3, 1)),
)


def default_playlist() -> PlaylistState:
    """Return a fresh copy of the seed playlist."""

    videos = [
        VideoEntry(
            id=video_id,
            title=title,
            url=url,
            duration=duration,
            created_at=datetime(*ymd, tzinfo=timezone.utc),
        )
        for video_id, title, url, duration, ymd in _SEED_VIDEOS
    ]
    return PlaylistState(title=DEFAULT_TITLE, subtitle=DEFAULT_SUBTITLE, videos=videos)


def parse_playlist(raw: Any) -> PlaylistState | None:
    """Validate an untrusted document; return ``None`` when its shape is wrong."""

    if isinstance(raw, PlaylistState):
        return raw
    if not isinstance(raw, Mapping):
        return None
    try:
        return PlaylistState.model_validate(dict(raw))
    except ValidationError as exc:
        logger.warning("Stored playlist failed validation", extra={"errors": exc.error_count()})
        return None


def coerce_playlist(raw: Any) -> PlaylistState:
    """Return the validated document, or the defaults when missing or malformed."""

    playlist = parse_playlist(raw)
    if playlist is None:
        return default_playlist()
    return playlist
