"""Server-rendered viewer page for an experience playlist."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from app.routers.experience_data import authorize, get_access_resolver, get_storage, load_playlist
from app.services.access import AccessResolver
from app.services.storage_client import ExperienceStorage
from app.services.template_renderer import render_experience_page

router = APIRouter(prefix="/experiences", tags=["experiences"])


@router.get("/{experience_id}", response_class=HTMLResponse)
async def experience_page(
    experience_id: str,
    request: Request,
    video: str | None = Query(None),
    storage: ExperienceStorage = Depends(get_storage),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> HTMLResponse:
    decision = await authorize(request, resolver, experience_id)
    state = await load_playlist(storage, experience_id)
    page = render_experience_page(experience_id=experience_id, state=state, access=decision, video_id=video)
    return HTMLResponse(content=page.body)
