"""Per-viewer bookmark state.

``isBookmarked`` is never stored on a note; it is computed at read time
from the caller's Bookmark rows, with one batched query per listing.
"""
import logging
from typing import Iterable, List, Optional, Set

from sqlalchemy import and_, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.bookmark import Bookmark
from app.models.note import Note
from app.core.errors import NotFoundError, UnauthenticatedError
from app.services.access import Operation, enforce, resolve, visible_to

logger = logging.getLogger(__name__)


async def bookmarked_note_ids(db: AsyncSession, caller_id: Optional[int], note_ids: Iterable[int]) -> Set[int]:
    """Return the subset of ``note_ids`` the caller has bookmarked."""
    note_ids = list(note_ids)
    if caller_id is None or not note_ids:
        return set()
    result = await db.execute(
        select(Bookmark.note_id).where(
            and_(Bookmark.user_id == caller_id, Bookmark.note_id.in_(note_ids))
        )
    )
    return set(result.scalars().all())


async def find_bookmark(db: AsyncSession, caller_id: Optional[int], note_id: int) -> Optional[Bookmark]:
    if caller_id is None:
        return None
    result = await db.execute(
        select(Bookmark).where(and_(Bookmark.user_id == caller_id, Bookmark.note_id == note_id))
    )
    return result.scalar_one_or_none()


async def is_bookmarked(db: AsyncSession, caller_id: Optional[int], note_id: int) -> bool:
    return await find_bookmark(db, caller_id, note_id) is not None


async def toggle_bookmark(db: AsyncSession, note_id: int, caller_id: Optional[int]) -> bool:
    """Flip the caller's bookmark on a note and return the new state.

    The note must exist and be readable by the caller. Removal is tried
    first; if nothing was removed a row is inserted, and a unique-constraint
    violation from a concurrent insert counts as already bookmarked.
    """
    result = await db.execute(select(Note).where(Note.id == note_id))
    note = result.scalar_one_or_none()
    if note is None:
        raise NotFoundError("note", note_id)
    if caller_id is None:
        raise UnauthenticatedError("You must be signed in to bookmark notes")
    enforce(resolve(note, caller_id, Operation.READ), "note", note_id, Operation.READ)

    result = await db.execute(
        delete(Bookmark).where(and_(Bookmark.user_id == caller_id, Bookmark.note_id == note_id))
    )
    if result.rowcount:
        await db.commit()
        return False

    db.add(Bookmark(user_id=caller_id, note_id=note_id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Concurrent bookmark insert for user {caller_id} note {note_id}, keeping existing row")
    return True


async def list_bookmarked_notes(db: AsyncSession, caller_id: int) -> List[Note]:
    """The caller's bookmarked notes they can still read, newest bookmark first."""
    result = await db.execute(
        select(Note)
        .join(Bookmark, Bookmark.note_id == Note.id)
        .options(selectinload(Note.author))
        .where(and_(Bookmark.user_id == caller_id, visible_to(Note, caller_id)))
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
    )
    return list(result.scalars().all())
