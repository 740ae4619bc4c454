from datetime import datetime
from typing import List, Optional

from .base import CamelModel
from .note import AuthorSummary, NoteListItem


class FolderCreate(CamelModel):
    name: Optional[str] = None
    is_public: bool = True
    parent_id: Optional[int] = None


class FolderUpdate(CamelModel):
    name: Optional[str] = None
    is_public: Optional[bool] = None
    parent_id: Optional[int] = None


class FolderResponse(CamelModel):
    id: int
    name: str
    is_public: bool
    author_id: int
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    note_count: int = 0
    subfolder_count: int = 0
    author: Optional[AuthorSummary] = None


class Breadcrumb(CamelModel):
    id: int
    name: str


class FolderContents(CamelModel):
    folder: FolderResponse
    subfolders: List[FolderResponse]
    notes: List[NoteListItem]
    breadcrumbs: List[Breadcrumb]
    is_owner: bool


class DeleteResponse(CamelModel):
    success: bool = True
    message: str
