from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import ValidationFailure
from app.core.security import caller_id, get_optional_user
from app.models.folder import Folder
from app.models.note import Note
from app.models.user import User
from app.schemas.search import SearchResults
from app.services.access import visible_to
from app.services.bookmarks import bookmarked_note_ids
from app.services.folders import child_counts
from app.services.projection import folder_list, note_list

router = APIRouter()

SEARCH_TYPES = ("all", "notes", "folders")


def escape_like_pattern(value: str) -> str:
    """Escape LIKE wildcards so the query matches as a literal substring."""
    escape_table = str.maketrans({
        "\\": "\\\\",
        "%": "\\%",
        "_": "\\_",
    })
    return value.translate(escape_table)


@router.get("/", response_model=SearchResults)
async def search(
    q: Optional[str] = Query(None, description="Text to match in titles, content and author names"),
    search_type: str = Query("all", alias="type", description="'notes', 'folders' or 'all'"),
    limit: int = Query(50, ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Search public notes and folders"""
    query = (q or "").strip()
    if len(query) < settings.SEARCH_MIN_QUERY_LENGTH:
        raise ValidationFailure(
            f"Search query must be at least {settings.SEARCH_MIN_QUERY_LENGTH} characters long",
            field="q",
        )
    if search_type not in SEARCH_TYPES:
        raise ValidationFailure("type must be one of 'all', 'notes' or 'folders'", field="type")

    viewer = caller_id(current_user)
    search_term = f"%{escape_like_pattern(query)}%"
    results = SearchResults()

    if search_type in ("all", "notes"):
        result = await db.execute(
            select(Note)
            .join(User, User.id == Note.author_id)
            .options(selectinload(Note.author))
            .where(
                and_(
                    visible_to(Note, None),
                    or_(
                        Note.title.ilike(search_term, escape="\\"),
                        Note.content.ilike(search_term, escape="\\"),
                        User.name.ilike(search_term, escape="\\"),
                    ),
                )
            )
            .order_by(Note.title.asc(), Note.updated_at.desc())
            .limit(limit)
        )
        notes = result.scalars().all()
        bookmarked = await bookmarked_note_ids(db, viewer, [n.id for n in notes])
        results.notes = note_list(notes, bookmarked, include_content=True)

    if search_type in ("all", "folders"):
        result = await db.execute(
            select(Folder)
            .where(and_(visible_to(Folder, None), Folder.name.ilike(search_term, escape="\\")))
            .order_by(Folder.name.asc(), Folder.updated_at.desc())
            .limit(limit)
        )
        folders = result.scalars().all()
        counts = await child_counts(db, [f.id for f in folders], public_only=True)
        results.folders = folder_list(folders, counts)

    results.total_results = len(results.notes) + len(results.folders)
    return results
