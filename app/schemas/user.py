from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from .base import CamelModel
from .folder import FolderResponse
from .note import NoteListItem


class UserCreate(CamelModel):
    # Presence is checked by the endpoint so a missing field is a 400
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(CamelModel):
    id: int
    name: str
    email: Optional[str] = None
    image: Optional[str] = None


class UserProfileBase(CamelModel):
    id: int
    name: str
    image: Optional[str] = None
    total_notes: int
    total_folders: int
    notes: List[NoteListItem] = []
    folders: List[FolderResponse] = []
    created_at: Optional[datetime] = None


class OwnProfile(UserProfileBase):
    view: Literal["owner"] = "owner"
    email: Optional[str] = None


class PublicProfile(UserProfileBase):
    view: Literal["public"] = "public"


UserProfile = Annotated[Union[OwnProfile, PublicProfile], Field(discriminator="view")]


class UserContent(CamelModel):
    notes: List[NoteListItem]
    folders: List[FolderResponse]
    # Only present when the caller is the profile owner
    bookmarks: Optional[List[NoteListItem]] = None
