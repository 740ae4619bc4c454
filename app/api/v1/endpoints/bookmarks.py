from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import ResponseCache, get_cache
from app.core.database import get_db
from app.core.security import caller_id, get_current_user, get_optional_user
from app.models.user import User
from app.schemas.bookmark import BookmarkToggleResponse
from app.schemas.note import NoteListItem
from app.services.bookmarks import list_bookmarked_notes, toggle_bookmark
from app.services.projection import note_list

router = APIRouter()


@router.get("/", response_model=List[NoteListItem])
async def get_bookmarks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's bookmarked notes, most recently bookmarked first"""
    notes = await list_bookmarked_notes(db, current_user.id)
    return note_list(notes, {n.id for n in notes}, include_content=True)


@router.post("/{note_id}", response_model=BookmarkToggleResponse)
async def toggle_note_bookmark(
    note_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_cache)
):
    """Bookmark a note, or remove the bookmark if it already exists"""
    viewer = caller_id(current_user)
    bookmarked = await toggle_bookmark(db, note_id, viewer)
    await cache.invalidate_viewer(note_id, viewer)
    return BookmarkToggleResponse(is_bookmarked=bookmarked)
