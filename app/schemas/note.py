from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from .base import CamelModel


class AuthorSummary(CamelModel):
    id: int
    name: str
    image: Optional[str] = None


class NoteCreate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    is_public: bool = True
    folder_id: Optional[int] = None


class NoteUpdate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    is_public: Optional[bool] = None
    folder_id: Optional[int] = None


class NoteMutationResponse(CamelModel):
    id: int
    title: str
    is_public: bool
    folder_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NoteListItem(CamelModel):
    id: int
    title: str
    content: Optional[str] = None
    is_public: bool
    author_id: int
    folder_id: Optional[int] = None
    author: Optional[AuthorSummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_bookmarked: bool = False


class NoteViewBase(CamelModel):
    id: int
    title: str
    content: str
    is_public: bool
    author_id: int
    author: AuthorSummary
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_bookmarked: bool = False
    is_owner: bool = False


class OwnerNoteView(NoteViewBase):
    view: Literal["owner"] = "owner"
    folder_id: Optional[int] = None


class PublicNoteView(NoteViewBase):
    view: Literal["public"] = "public"


class AnonymousNoteView(NoteViewBase):
    view: Literal["anonymous"] = "anonymous"


NoteView = Annotated[
    Union[OwnerNoteView, PublicNoteView, AnonymousNoteView],
    Field(discriminator="view"),
]
