"""Client-side playlist editor that coalesces edits into debounced saves."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from app.core.config import settings
from app.schema.experience import PlaylistState, VideoEntry
from app.services.access import AccessDeniedError
from app.services.playlist_defaults import (
    PlaylistFormatError,
    coerce_playlist,
    default_playlist,
    parse_playlist,
)
from app.services.url_normalizer import require_embed_url

logger = logging.getLogger(__name__)

NEW_VIDEO_TITLE = "New Video"
NEW_VIDEO_DURATION = "0:00"


class VideoNotFoundError(KeyError):
    """Raised when an operation references a video id that is not in the playlist."""


class PlaylistStore(Protocol):
    async def get_document(self, experience_id: str) -> Any:
        ...

    async def put_document(self, experience_id: str, state: PlaylistState) -> None:
        ...


class SaveState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SAVING = "saving"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class SaveStatus:
    state: SaveState
    deadline: float | None = None
    message: str | None = None

    @classmethod
    def idle(cls) -> "SaveStatus":
        return cls(SaveState.IDLE)

    @classmethod
    def pending(cls, deadline: float) -> "SaveStatus":
        return cls(SaveState.PENDING, deadline=deadline)

    @classmethod
    def saving(cls) -> "SaveStatus":
        return cls(SaveState.SAVING)

    @classmethod
    def error(cls, message: str) -> "SaveStatus":
        return cls(SaveState.ERROR, message=message)


StatusListener = Callable[[SaveStatus], None]


class PlaylistEditor:
    """Working copy of one experience's playlist plus its persistence status.

    Every mutation is applied in memory immediately and (re)arms a single
    trailing-edge timer; when the timer fires the latest state is written with
    a full-replace ``put_document``. Saves run one at a time on the event loop.
    """

    def __init__(
        self,
        store: PlaylistStore,
        experience_id: str,
        *,
        is_admin: bool = False,
        debounce_seconds: float | None = None,
    ) -> None:
        self.store = store
        self.experience_id = experience_id
        self.is_admin = is_admin
        self.debounce_seconds = settings.save_debounce_seconds if debounce_seconds is None else debounce_seconds
        self.state: PlaylistState = default_playlist()
        self.selected_id: str | None = None
        self.admin_mode = False
        self._status = SaveStatus.idle()
        self._listeners: list[StatusListener] = []
        self._timer: asyncio.TimerHandle | None = None
        self._save_task: asyncio.Task | None = None
        self._settled = asyncio.Event()
        self._settled.set()

    # -- status -----------------------------------------------------------

    @property
    def status(self) -> SaveStatus:
        return self._status

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener; returns a callable that removes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_status(self, status: SaveStatus) -> None:
        self._status = status
        for listener in list(self._listeners):
            listener(status)

    # -- view state -------------------------------------------------------

    @property
    def can_edit(self) -> bool:
        return self.is_admin and self.admin_mode

    @property
    def current_video(self) -> VideoEntry | None:
        if self.selected_id is None:
            return None
        return self._find(self.selected_id)

    def set_admin_mode(self, enabled: bool) -> None:
        if enabled and not self.is_admin:
            raise AccessDeniedError("Admin access required")
        self.admin_mode = enabled

    def select_video(self, video_id: str | None) -> None:
        if video_id is not None and self._find(video_id) is None:
            raise VideoNotFoundError(video_id)
        self.selected_id = video_id

    def _find(self, video_id: str) -> VideoEntry | None:
        for video in self.state.videos:
            if video.id == video_id:
                return video
        return None

    def _require_video(self, video_id: str) -> VideoEntry:
        video = self._find(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        return video

    def _require_editable(self) -> None:
        if not self.can_edit:
            raise AccessDeniedError("Admin mode is required to edit the playlist")

    # -- loading ----------------------------------------------------------

    async def load(self, *, strict: bool = False) -> PlaylistState:
        """Fetch the stored playlist, falling back to the defaults on any problem.

        With ``strict`` set, store errors propagate and a malformed document raises
        :class:`PlaylistFormatError`; only a missing document yields the defaults.
        Callers that write back without user review should load strictly.
        """

        if strict:
            raw = await self.store.get_document(self.experience_id)
            if raw is not None and parse_playlist(raw) is None:
                raise PlaylistFormatError(self.experience_id)
            return self._adopt(raw)

        try:
            raw = await self.store.get_document(self.experience_id)
        except Exception as exc:  # noqa: BLE001 - read path never fails the view
            logger.warning(
                "Failed to load playlist; using defaults",
                extra={"experience_id": self.experience_id, "error": str(exc)},
            )
            raw = None
        return self._adopt(raw)

    def _adopt(self, raw: Any) -> PlaylistState:
        self.state = coerce_playlist(raw)
        self.selected_id = self.state.videos[0].id if self.state.videos else None
        return self.state

    # -- mutations --------------------------------------------------------

    def set_title(self, text: str) -> None:
        self._require_editable()
        self.state.title = text
        self._schedule_save()

    def set_subtitle(self, text: str) -> None:
        self._require_editable()
        self.state.subtitle = text
        self._schedule_save()

    def add_video(
        self,
        raw_url: str,
        *,
        title: str = NEW_VIDEO_TITLE,
        duration: str = NEW_VIDEO_DURATION,
    ) -> VideoEntry:
        self._require_editable()
        embed_url = require_embed_url(raw_url)
        video = VideoEntry(
            id=uuid.uuid4().hex,
            title=title,
            url=embed_url,
            duration=duration,
            created_at=datetime.now(timezone.utc),
        )
        self.state.videos.append(video)
        self.selected_id = video.id
        self._schedule_save()
        return video

    def rename_video(self, video_id: str, title: str) -> None:
        self._require_editable()
        self._require_video(video_id).title = title
        self._schedule_save()

    def edit_video_url(self, video_id: str, raw_url: str) -> None:
        self._require_editable()
        embed_url = require_embed_url(raw_url)
        self._require_video(video_id).url = embed_url
        self._schedule_save()

    def delete_video(self, video_id: str) -> bool:
        """Remove a video; returns ``False`` (and saves nothing) when the id is unknown."""

        self._require_editable()
        video = self._find(video_id)
        if video is None:
            return False
        self.state.videos.remove(video)
        if self.selected_id == video_id:
            self.selected_id = None
        self._schedule_save()
        return True

    # -- persistence ------------------------------------------------------

    def _schedule_save(self) -> None:
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)
        self._settled.clear()
        self._set_status(SaveStatus.pending(self._timer.when()))

    def _on_timer(self) -> None:
        self._timer = None
        self._start_save()

    def _start_save(self) -> asyncio.Task:
        self._settled.clear()
        previous = self._save_task
        self._save_task = asyncio.get_running_loop().create_task(self._run_save(previous))
        return self._save_task

    async def _run_save(self, previous: asyncio.Task | None) -> None:
        if previous is not None and not previous.done():
            await previous

        if self._timer is None:
            self._set_status(SaveStatus.saving())
        snapshot = self.state.model_copy(deep=True)
        try:
            await self.store.put_document(self.experience_id, snapshot)
        except Exception as exc:  # noqa: BLE001 - surfaced through the save status
            logger.warning(
                "Failed to save playlist",
                extra={"experience_id": self.experience_id, "error": str(exc)},
            )
            outcome = SaveStatus.error(str(exc) or exc.__class__.__name__)
        else:
            logger.info(
                "Saved playlist",
                extra={"experience_id": self.experience_id, "videos": len(snapshot.videos)},
            )
            outcome = SaveStatus.idle()

        if self._timer is not None:
            self._set_status(SaveStatus.pending(self._timer.when()))
            return
        if self._save_task is asyncio.current_task():
            self._set_status(outcome)
            self._settled.set()

    async def flush(self) -> SaveStatus:
        """Cancel any pending timer and write the current state right away."""

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        await self._start_save()
        return await self.wait_settled()

    async def wait_settled(self) -> SaveStatus:
        """Wait until no timer is armed and no save is in flight."""

        await self._settled.wait()
        return self._status

    async def aclose(self) -> None:
        """Persist any pending edits and wait for outstanding saves."""

        if self._timer is not None:
            await self.flush()
        elif self._save_task is not None and not self._save_task.done():
            await self._save_task


__all__ = [
    "PlaylistEditor",
    "PlaylistStore",
    "SaveState",
    "SaveStatus",
    "VideoNotFoundError",
]
