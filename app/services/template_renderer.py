"""Viewer page rendering utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.schema.experience import PlaylistState, VideoEntry
from app.services.access import AccessDecision
from app.services.url_normalizer import to_original_url

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(enabled_extensions=("html", "html.jinja")),
)
_env.filters["original_url"] = to_original_url


@dataclass(slots=True)
class RenderedPage:
    """Represents a rendered viewer page."""

    title: str
    body: str


def select_current_video(state: PlaylistState, video_id: str | None) -> VideoEntry | None:
    """Return the requested video, falling back to the first one in the playlist."""

    if video_id:
        for video in state.videos:
            if video.id == video_id:
                return video
    return state.videos[0] if state.videos else None


def render_experience_page(
    *,
    experience_id: str,
    state: PlaylistState,
    access: AccessDecision,
    video_id: str | None = None,
) -> RenderedPage:
    """Render the playlist viewer for a given experience."""

    template = _env.get_template("experience.html.jinja")
    body = template.render(
        experience_id=experience_id,
        playlist=state,
        current=select_current_video(state, video_id),
        is_admin=access.is_admin,
    )
    return RenderedPage(title=state.title, body=body)
