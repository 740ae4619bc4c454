import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.api.v1.params import parse_folder_filter
from app.core.cache import ResponseCache, get_cache
from app.core.database import get_db, get_session_factory
from app.core.security import caller_id, get_optional_user
from app.models.folder import Folder
from app.models.note import Note
from app.models.user import User
from app.schemas.folder import FolderResponse
from app.schemas.note import NoteListItem
from app.schemas.search import AppliedLimits, ExploreMeta, ExploreResponse
from app.services.access import visible_to
from app.services.bookmarks import bookmarked_note_ids
from app.services.folders import child_counts
from app.services.projection import folder_list, note_list

logger = logging.getLogger(__name__)

router = APIRouter()


async def fetch_public_notes(db: AsyncSession, viewer: Optional[int], limit: Optional[int]) -> List[NoteListItem]:
    query = (
        select(Note)
        .options(selectinload(Note.author))
        .where(visible_to(Note, None))
        .order_by(Note.updated_at.desc(), Note.id.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    notes = result.scalars().all()

    bookmarked = await bookmarked_note_ids(db, viewer, [n.id for n in notes])
    return note_list(notes, bookmarked, include_content=True)


async def fetch_public_folders(db: AsyncSession, limit: Optional[int]) -> List[FolderResponse]:
    query = (
        select(Folder)
        .options(selectinload(Folder.author))
        .where(visible_to(Folder, None))
        .order_by(Folder.updated_at.desc(), Folder.id.desc())
    )
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    folders = result.scalars().all()

    counts = await child_counts(db, [f.id for f in folders], public_only=True)
    return folder_list(folders, counts, include_author=True)


@router.get("/public-notes", response_model=List[NoteListItem])
async def get_public_notes(
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get public notes, newest first; isBookmarked is false for anonymous callers"""
    return await fetch_public_notes(db, caller_id(current_user), limit)


@router.get("/public/folders", response_model=List[FolderResponse])
async def get_public_folders(
    parent_id: Optional[str] = Query(None, alias="parentId"),
    db: AsyncSession = Depends(get_db)
):
    """Get public folders at one level of the hierarchy"""
    parent, _ = parse_folder_filter(parent_id, field="parentId")

    result = await db.execute(
        select(Folder)
        .options(selectinload(Folder.author))
        .where(visible_to(Folder, None))
        .where(Folder.parent_id.is_(None) if parent is None else Folder.parent_id == parent)
        .order_by(Folder.updated_at.desc(), Folder.id.desc())
    )
    folders = result.scalars().all()

    counts = await child_counts(db, [f.id for f in folders], public_only=True)
    return folder_list(folders, counts, include_author=True)


@router.get("/public/explore", response_model=ExploreResponse)
async def explore(
    limit: Optional[int] = Query(None, ge=1, le=100),
    notes_limit: int = Query(50, alias="notesLimit", ge=1, le=100),
    folders_limit: int = Query(50, alias="foldersLimit", ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    cache: ResponseCache = Depends(get_cache)
):
    """Combined feed of public folders and notes, cached briefly per viewer"""
    viewer = caller_id(current_user)

    cached = await cache.get_explore(viewer)
    if cached is not None:
        try:
            return ExploreResponse.model_validate(cached)
        except ValueError as e:
            logger.warning(f"Ignoring malformed cached explore feed: {e}")

    final_notes_limit = limit or notes_limit
    final_folders_limit = limit or folders_limit

    # Independent reads, one session each
    async with session_factory() as folder_db, session_factory() as note_db:
        folders, notes = await asyncio.gather(
            fetch_public_folders(folder_db, final_folders_limit),
            fetch_public_notes(note_db, viewer, final_notes_limit),
        )

    response = ExploreResponse(
        folders=folders,
        notes=notes,
        meta=ExploreMeta(
            total_folders=len(folders),
            total_notes=len(notes),
            applied_limits=AppliedLimits(folders=final_folders_limit, notes=final_notes_limit),
            timestamp=datetime.now(timezone.utc),
        ),
    )

    await cache.set_explore(viewer, response.model_dump(mode="json", by_alias=True))
    return response
