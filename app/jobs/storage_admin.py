"""Maintenance commands for stored experience playlists."""

from __future__ import annotations

import argparse
import asyncio

from app.core.config import settings
from app.services.playlist_defaults import PlaylistFormatError
from app.services.playlist_editor import PlaylistEditor, SaveState
from app.services.storage_client import ExperienceStorage, StorageError, build_storage
from app.services.url_normalizer import InvalidVideoUrlError


async def list_documents(storage: ExperienceStorage) -> None:
    files = await storage.list_documents()
    for name in files:
        print(name)
    print(f"Found {len(files)} stored experience files.")


async def delete_document(storage: ExperienceStorage, experience_id: str) -> None:
    await storage.delete_document(experience_id)
    print(f"Deleted stored data for experience {experience_id}.")


async def add_video(storage: ExperienceStorage, experience_id: str, url: str, title: str | None) -> int:
    editor = PlaylistEditor(storage, experience_id, is_admin=True)
    try:
        await editor.load(strict=True)
    except (StorageError, PlaylistFormatError) as exc:
        print(f"Not modifying experience {experience_id}: {exc}")
        return 1
    editor.set_admin_mode(True)
    try:
        video = editor.add_video(url)
    except InvalidVideoUrlError as exc:
        print(exc)
        return 1
    if title:
        editor.rename_video(video.id, title)
    status = await editor.flush()
    if status.state is SaveState.ERROR:
        print(f"Failed to save experience {experience_id}: {status.message}")
        return 1
    print(f"Added {video.url} to experience {experience_id} ({len(editor.state.videos)} videos).")
    return 0


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m app.jobs.storage_admin")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="List stored experience documents")
    delete = commands.add_parser("delete", help="Delete the document for an experience")
    delete.add_argument("experience_id")
    add = commands.add_parser("add", help="Append a YouTube or Loom video to an experience")
    add.add_argument("experience_id")
    add.add_argument("url")
    add.add_argument("--title")
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    if not settings.storage_api_key:
        print("Storage not configured: set APP_STORAGE_API_KEY.")
        return 1

    storage = build_storage(settings)
    if args.command == "list":
        await list_documents(storage)
    elif args.command == "delete":
        await delete_document(storage, args.experience_id)
    else:
        return await add_video(storage, args.experience_id, args.url, args.title)
    return 0


if __name__ == "__main__":
    import sys

    sys.exit(asyncio.run(main()))
