"""API endpoints for reading and writing experience playlists."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from app.core.config import settings
from app.schema.experience import DeleteResponse, PlaylistState, SaveResponse, StoredFilesResponse
from app.services.access import AccessDecision, AccessResolutionError, AccessResolver, build_access_resolver
from app.services.playlist_defaults import coerce_playlist
from app.services.storage_client import (
    ExperienceStorage,
    StorageError,
    StorageNotConfiguredError,
    build_storage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/experience-data", tags=["experience-data"])


def get_storage() -> ExperienceStorage:
    return build_storage(settings)


def get_access_resolver() -> AccessResolver:
    return build_access_resolver(settings)


def require_experience_id(experience_id: str | None) -> str:
    if not experience_id or not experience_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Experience ID is required")
    return experience_id.strip()


async def authorize(
    request: Request,
    resolver: AccessResolver,
    experience_id: str,
    *,
    admin: bool = False,
) -> AccessDecision:
    """Resolve the caller's access and reject callers below the required level."""

    try:
        decision = await resolver.resolve(request.headers, experience_id)
    except AccessResolutionError as exc:
        logger.warning("Access resolution failed", extra={"experience_id": experience_id, "error": str(exc)})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied") from exc

    if admin and not decision.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    if not decision.has_access:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return decision


async def load_playlist(storage: ExperienceStorage, experience_id: str) -> PlaylistState:
    """Fetch the stored playlist; any storage problem yields the defaults."""

    try:
        raw = await storage.get_document(experience_id)
    except StorageNotConfiguredError:
        logger.info("Storage not configured; serving default playlist", extra={"experience_id": experience_id})
        raw = None
    except StorageError as exc:
        logger.warning(
            "Failed to retrieve experience data; serving defaults",
            extra={"experience_id": experience_id, "error": str(exc)},
        )
        raw = None
    return coerce_playlist(raw)


def _storage_not_configured(exc: StorageNotConfiguredError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("", response_model=PlaylistState)
async def get_experience_data(
    request: Request,
    experience_id: str | None = Query(None, alias="experienceId"),
    storage: ExperienceStorage = Depends(get_storage),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> PlaylistState:
    experience_id = require_experience_id(experience_id)
    await authorize(request, resolver, experience_id)
    return await load_playlist(storage, experience_id)


@router.put("", response_model=SaveResponse)
async def save_experience_data(
    request: Request,
    payload: PlaylistState,
    experience_id: str | None = Query(None, alias="experienceId"),
    storage: ExperienceStorage = Depends(get_storage),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> SaveResponse:
    """Replace the stored playlist for an experience (admins only)."""

    experience_id = require_experience_id(experience_id)
    decision = await authorize(request, resolver, experience_id, admin=True)

    try:
        await storage.put_document(experience_id, payload)
    except StorageNotConfiguredError as exc:
        raise _storage_not_configured(exc) from exc
    except StorageError as exc:
        logger.exception("Failed to save experience data", extra={"experience_id": experience_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save data",
        ) from exc

    logger.info(
        "Saved experience data",
        extra={"experience_id": experience_id, "user_id": decision.user_id, "videos": len(payload.videos)},
    )
    return SaveResponse(data=payload)


@router.get("/admin", response_model=StoredFilesResponse)
async def list_experience_files(
    request: Request,
    experience_id: str | None = Query(None, alias="experienceId"),
    storage: ExperienceStorage = Depends(get_storage),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> StoredFilesResponse:
    """List every stored experience document (admins only, diagnostic)."""

    experience_id = require_experience_id(experience_id)
    await authorize(request, resolver, experience_id, admin=True)

    try:
        files = await storage.list_documents()
    except StorageNotConfiguredError as exc:
        raise _storage_not_configured(exc) from exc
    except StorageError as exc:
        logger.exception("Failed to list experience files")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list files",
        ) from exc

    return StoredFilesResponse(files=files, message=f"Found {len(files)} stored experience files")


@router.delete("/admin", response_model=DeleteResponse)
async def delete_experience_data(
    request: Request,
    experience_id: str | None = Query(None, alias="experienceId"),
    storage: ExperienceStorage = Depends(get_storage),
    resolver: AccessResolver = Depends(get_access_resolver),
) -> DeleteResponse:
    experience_id = require_experience_id(experience_id)
    await authorize(request, resolver, experience_id, admin=True)

    try:
        await storage.delete_document(experience_id)
    except StorageNotConfiguredError as exc:
        raise _storage_not_configured(exc) from exc
    except StorageError as exc:
        logger.warning("Failed to delete experience data", extra={"experience_id": experience_id, "error": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete stored data",
        ) from exc

    return DeleteResponse(message=f"Deleted stored data for experience: {experience_id}")
