import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import TypeAdapter
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.v1.params import parse_folder_filter
from app.core.cache import ResponseCache, get_cache
from app.core.database import get_db
from app.core.errors import ValidationFailure
from app.core.security import caller_id, get_current_user, get_optional_user
from app.models.bookmark import Bookmark
from app.models.note import Note
from app.models.user import User
from app.schemas.folder import DeleteResponse
from app.schemas.note import NoteCreate, NoteListItem, NoteMutationResponse, NoteUpdate, NoteView
from app.services.access import Operation, authorize, require_owned_folder
from app.services.bookmarks import bookmarked_note_ids, is_bookmarked
from app.services.projection import note_list, project_note

logger = logging.getLogger(__name__)

router = APIRouter()

note_view_adapter = TypeAdapter(NoteView)


def require_text(value: Optional[str], field: str, message: str) -> str:
    if value is None or not value.strip():
        raise ValidationFailure(message, field=field)
    return value


@router.post("/", response_model=NoteMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a new note, optionally inside a folder the caller owns"""
    title = require_text(note.title, "title", "Title and content are required")
    content = require_text(note.content, "content", "Title and content are required")

    if note.folder_id is not None:
        await require_owned_folder(db, note.folder_id, current_user.id, "target")

    db_note = Note(
        title=title.strip(),
        content=content,
        is_public=note.is_public,
        author_id=current_user.id,
        folder_id=note.folder_id,
    )
    db.add(db_note)
    await db.commit()
    await db.refresh(db_note)

    return db_note


@router.get("/", response_model=List[NoteListItem])
async def get_notes(
    folder_id: Optional[str] = Query(None, alias="folderId", description="Folder id, or 'null' for root notes"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's own notes, newest first"""
    folder_filter, filtered = parse_folder_filter(folder_id)

    query = (
        select(Note)
        .options(selectinload(Note.author))
        .where(Note.author_id == current_user.id)
        .order_by(Note.updated_at.desc(), Note.id.desc())
    )
    if filtered:
        query = query.where(Note.folder_id.is_(None) if folder_filter is None else Note.folder_id == folder_filter)

    result = await db.execute(query)
    notes = result.scalars().all()

    bookmarked = await bookmarked_note_ids(db, current_user.id, [n.id for n in notes])
    return note_list(notes, bookmarked)


@router.get("/{note_id}", response_model=NoteView)
async def get_note(
    note_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_cache)
):
    """Get a note by ID; public notes are readable by anyone"""
    viewer = caller_id(current_user)

    cached = await cache.get_note_view(note_id, viewer)
    if cached is not None:
        try:
            return note_view_adapter.validate_python(cached)
        except ValueError as e:
            logger.warning(f"Ignoring malformed cached note {note_id}: {e}")

    note, view = await authorize(
        db, Note, note_id, viewer, Operation.READ, options=(selectinload(Note.author),)
    )
    bookmarked = await is_bookmarked(db, viewer, note.id)
    response = project_note(note, view, bookmarked)

    await cache.set_note_view(note_id, viewer, response.model_dump(mode="json", by_alias=True))
    return response


@router.put("/{note_id}", response_model=NoteMutationResponse)
async def update_note(
    note_id: int,
    note_update: NoteUpdate,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_cache)
):
    """Update a note (only owner)"""
    note, _ = await authorize(db, Note, note_id, caller_id(current_user), Operation.MUTATE)

    update_data = note_update.model_dump(exclude_unset=True)

    if "title" in update_data:
        note.title = require_text(update_data["title"], "title", "Title cannot be empty").strip()
    if "content" in update_data:
        note.content = require_text(update_data["content"], "content", "Content cannot be empty")
    if update_data.get("is_public") is not None:
        note.is_public = update_data["is_public"]
    if "folder_id" in update_data and update_data["folder_id"] != note.folder_id:
        if update_data["folder_id"] is not None:
            await require_owned_folder(db, update_data["folder_id"], current_user.id, "target")
        note.folder_id = update_data["folder_id"]

    await db.commit()
    await db.refresh(note)

    await cache.invalidate_note(note.id, note.author_id)
    return note


@router.delete("/{note_id}", response_model=DeleteResponse)
async def delete_note(
    note_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_cache)
):
    """Delete a note (only owner); its bookmarks go with it"""
    note, _ = await authorize(db, Note, note_id, caller_id(current_user), Operation.MUTATE)
    author_id = note.author_id

    await db.execute(delete(Bookmark).where(Bookmark.note_id == note_id))
    await db.delete(note)
    await db.commit()

    await cache.invalidate_note(note_id, author_id)
    return DeleteResponse(message="Note deleted successfully")
