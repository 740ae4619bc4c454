from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.params import parse_folder_filter
from app.core.cache import ResponseCache, get_cache
from app.core.config import settings
from app.core.database import get_db
from app.core.security import caller_id, get_current_user, get_optional_user
from app.models.folder import Folder
from app.models.note import Note
from app.models.user import User
from app.schemas.folder import DeleteResponse, FolderContents, FolderCreate, FolderResponse, FolderUpdate
from app.services import folders as folder_service
from app.services.access import Operation, View, authorize, visible_to
from app.services.bookmarks import bookmarked_note_ids
from app.services.projection import folder_list, folder_response, note_list

router = APIRouter()


@router.post("/", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Create a folder, optionally under a parent the caller owns"""
    db_folder = await folder_service.create_folder(
        db,
        current_user.id,
        name=folder.name,
        is_public=folder.is_public,
        parent_id=folder.parent_id,
        max_depth=settings.FOLDER_MAX_DEPTH,
    )
    return folder_response(db_folder, {})


@router.get("/", response_model=List[FolderResponse])
async def get_folders(
    parent_id: Optional[str] = Query(None, alias="parentId", description="Parent folder id, or 'null' for root"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's folders at one level of the hierarchy"""
    parent, _ = parse_folder_filter(parent_id, field="parentId")

    query = (
        select(Folder)
        .where(Folder.author_id == current_user.id)
        .where(Folder.parent_id.is_(None) if parent is None else Folder.parent_id == parent)
        .order_by(Folder.name.asc(), Folder.id.asc())
    )
    result = await db.execute(query)
    folders = result.scalars().all()

    counts = await folder_service.child_counts(db, [f.id for f in folders], current_user.id)
    return folder_list(folders, counts)


@router.get("/{folder_id}", response_model=FolderContents)
async def get_folder(
    folder_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a folder with its visible subfolders, notes and breadcrumbs"""
    viewer = caller_id(current_user)
    folder, view = await authorize(db, Folder, folder_id, viewer, Operation.READ)

    result = await db.execute(
        select(Folder)
        .where(and_(Folder.parent_id == folder_id, visible_to(Folder, viewer)))
        .order_by(Folder.name.asc(), Folder.id.asc())
    )
    subfolders = result.scalars().all()

    result = await db.execute(
        select(Note)
        .where(and_(Note.folder_id == folder_id, visible_to(Note, viewer)))
        .order_by(Note.title.asc(), Note.id.asc())
    )
    notes = result.scalars().all()

    counts = await folder_service.child_counts(db, [folder_id] + [f.id for f in subfolders], viewer)
    bookmarked = await bookmarked_note_ids(db, viewer, [n.id for n in notes])
    crumbs = await folder_service.breadcrumbs(db, folder, settings.FOLDER_MAX_DEPTH)

    return FolderContents(
        folder=folder_response(folder, counts),
        subfolders=folder_list(subfolders, counts),
        notes=note_list(notes, bookmarked, include_author=False),
        breadcrumbs=crumbs,
        is_owner=view is View.OWNER,
    )


@router.patch("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: int,
    folder_update: FolderUpdate,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Rename, change visibility of, or move a folder (only owner)"""
    folder = await folder_service.update_folder(
        db,
        folder_id,
        caller_id(current_user),
        folder_update.model_dump(exclude_unset=True),
        settings.FOLDER_MAX_DEPTH,
    )
    counts = await folder_service.child_counts(db, [folder.id], folder.author_id)
    return folder_response(folder, counts)


@router.delete("/{folder_id}", response_model=DeleteResponse)
async def delete_folder(
    folder_id: int,
    keep_contents: bool = Query(False, alias="keepContents"),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_cache)
):
    """Delete a folder (only owner), moving its contents up or removing them"""
    viewer = caller_id(current_user)
    stale_notes = await folder_service.delete_folder(
        db, folder_id, viewer, keep_contents, settings.FOLDER_MAX_DEPTH
    )
    await cache.invalidate_notes(stale_notes, viewer)

    message = "Folder deleted, contents moved up" if keep_contents else "Folder and contents deleted"
    return DeleteResponse(message=message)
