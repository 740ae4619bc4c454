from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import get_db
from app.core.errors import NotFoundError
from app.core.security import caller_id, get_current_user, get_optional_user
from app.models.folder import Folder
from app.models.note import Note
from app.models.user import User
from app.schemas.user import OwnProfile, PublicProfile, UserContent, UserProfile, UserResponse
from app.services.access import authored_listing
from app.services.bookmarks import bookmarked_note_ids, list_bookmarked_notes
from app.services.folders import child_counts
from app.services.projection import folder_list, note_list

router = APIRouter()

PROFILE_RECENT_LIMIT = 5


async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("user", user_id)
    return user


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information"""
    return current_user


@router.get("/{user_id}", response_model=UserProfile)
async def get_user_profile(
    user_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a user's profile; email and private content only on one's own profile"""
    user = await get_user_or_404(db, user_id)
    viewer = caller_id(current_user)
    is_own_profile = viewer == user.id

    note_filter = authored_listing(Note, user.id, viewer)
    folder_filter = authored_listing(Folder, user.id, viewer)

    total_notes = await db.scalar(select(func.count(Note.id)).where(note_filter))
    total_folders = await db.scalar(select(func.count(Folder.id)).where(folder_filter))

    result = await db.execute(
        select(Note)
        .options(selectinload(Note.author))
        .where(note_filter)
        .order_by(Note.updated_at.desc(), Note.id.desc())
        .limit(PROFILE_RECENT_LIMIT)
    )
    notes = result.scalars().all()

    result = await db.execute(
        select(Folder)
        .where(and_(folder_filter, Folder.parent_id.is_(None)))
        .order_by(Folder.updated_at.desc(), Folder.id.desc())
        .limit(PROFILE_RECENT_LIMIT)
    )
    folders = result.scalars().all()

    bookmarked = await bookmarked_note_ids(db, viewer, [n.id for n in notes])
    counts = await child_counts(db, [f.id for f in folders], viewer)

    fields = dict(
        id=user.id,
        name=user.name,
        image=user.image,
        total_notes=total_notes or 0,
        total_folders=total_folders or 0,
        notes=note_list(notes, bookmarked),
        folders=folder_list(folders, counts),
        created_at=user.created_at,
    )
    if is_own_profile:
        return OwnProfile(email=user.email, **fields)
    return PublicProfile(**fields)


@router.get("/{user_id}/notes", response_model=UserContent)
async def get_user_content(
    user_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a user's notes and folders; the owner also gets their bookmarks"""
    user = await get_user_or_404(db, user_id)
    viewer = caller_id(current_user)

    result = await db.execute(
        select(Note)
        .options(selectinload(Note.author))
        .where(authored_listing(Note, user.id, viewer))
        .order_by(Note.updated_at.desc(), Note.id.desc())
    )
    notes = result.scalars().all()

    result = await db.execute(
        select(Folder)
        .where(authored_listing(Folder, user.id, viewer))
        .order_by(Folder.name.asc(), Folder.id.asc())
    )
    folders = result.scalars().all()

    bookmarked = await bookmarked_note_ids(db, viewer, [n.id for n in notes])
    counts = await child_counts(db, [f.id for f in folders], viewer)

    bookmarks = None
    if viewer == user.id:
        bookmarked_notes = await list_bookmarked_notes(db, user.id)
        bookmarks = note_list(bookmarked_notes, {n.id for n in bookmarked_notes})

    return UserContent(
        notes=note_list(notes, bookmarked),
        folders=folder_list(folders, counts),
        bookmarks=bookmarks,
    )
