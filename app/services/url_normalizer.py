"""Utilities for normalising YouTube and Loom links into embeddable URLs."""

from __future__ import annotations

import re

YOUTUBE_EMBED_BASE = "https://www.youtube.com/embed/"
YOUTUBE_WATCH_BASE = "https://www.youtube.com/watch?v="
LOOM_EMBED_BASE = "https://www.loom.com/embed/"
LOOM_SHARE_BASE = "https://www.loom.com/share/"

INVALID_URL_MESSAGE = "Please enter a valid YouTube or Loom video URL"

_YOUTUBE_EMBED_RE = re.compile(r"youtube\.com/embed/([^/?&#]+)")
_LOOM_EMBED_RE = re.compile(r"loom\.com/embed/([^/?&#]+)")
_VIDEO_ID_RE = re.compile(r"[A-Za-z0-9_-]+")
_CANONICAL_EMBED_RE = re.compile(r"https://www\.(?:youtube\.com|loom\.com)/embed/[A-Za-z0-9_-]+")


class InvalidVideoUrlError(ValueError):
    """Raised when a link is neither a YouTube nor a Loom video URL."""

    def __init__(self, raw: str) -> None:
        super().__init__(INVALID_URL_MESSAGE)
        self.raw = raw


def _segment_after(url: str, marker: str, terminators: str) -> str | None:
    """Return the text following ``marker`` up to the first terminator character."""

    index = url.find(marker)
    if index == -1:
        return None
    segment = url[index + len(marker):]
    for char in terminators:
        segment = segment.split(char, 1)[0]
    if not _VIDEO_ID_RE.fullmatch(segment):
        return None
    return segment


def _youtube_id(url: str) -> str | None:
    if "youtube.com/watch" in url:
        query_index = url.find("?")
        if query_index == -1:
            return None
        query = url[query_index:]
        for marker in ("?v=", "&v="):
            video_id = _segment_after(query, marker, "&?#")
            if video_id:
                return video_id
        return None
    if "youtu.be/" in url:
        return _segment_after(url, "youtu.be/", "?&#/")
    return None


def _loom_id(url: str) -> str | None:
    if "loom.com/share/" not in url:
        return None
    return _segment_after(url, "loom.com/share/", "?#/")


def to_embed_url(raw: str) -> str | None:
    """Convert a YouTube watch/short link or Loom share link into an embeddable URL.

    Supports:
      * ``youtube.com/watch?v=<id>`` with any trailing query parameters
      * ``youtu.be/<id>`` short links
      * ``loom.com/share/<id>`` share links

    Returns ``None`` for anything else, including links missing the id segment.
    """

    url = (raw or "").strip()
    if not url:
        return None

    video_id = _youtube_id(url)
    if video_id:
        return f"{YOUTUBE_EMBED_BASE}{video_id}"

    video_id = _loom_id(url)
    if video_id:
        return f"{LOOM_EMBED_BASE}{video_id}"

    return None


def require_embed_url(raw: str) -> str:
    """Like :func:`to_embed_url` but raise :class:`InvalidVideoUrlError` on no match."""

    embed_url = to_embed_url(raw)
    if embed_url is None:
        raise InvalidVideoUrlError(raw)
    return embed_url


def to_original_url(embed_url: str) -> str:
    """Map an embeddable URL back to its watch/share form; unknown input is returned as-is."""

    match = _YOUTUBE_EMBED_RE.search(embed_url)
    if match:
        return f"{YOUTUBE_WATCH_BASE}{match.group(1)}"

    match = _LOOM_EMBED_RE.search(embed_url)
    if match:
        return f"{LOOM_SHARE_BASE}{match.group(1)}"

    return embed_url


def is_embed_url(url: str) -> bool:
    """Return True only for canonical ``https://www.{youtube,loom}.com/embed/<id>`` URLs."""

    return bool(_CANONICAL_EMBED_RE.fullmatch(url))
