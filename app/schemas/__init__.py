from .user import UserCreate, UserResponse, OwnProfile, PublicProfile, UserProfile, UserContent
from .note import (
    NoteCreate, NoteUpdate, NoteMutationResponse, NoteListItem,
    OwnerNoteView, PublicNoteView, AnonymousNoteView, NoteView,
)
from .folder import FolderCreate, FolderUpdate, FolderResponse, FolderContents, Breadcrumb, DeleteResponse
from .bookmark import BookmarkToggleResponse
from .search import SearchResults, ExploreResponse
from .auth import Token

__all__ = [
    "UserCreate", "UserResponse", "OwnProfile", "PublicProfile", "UserProfile", "UserContent",
    "NoteCreate", "NoteUpdate", "NoteMutationResponse", "NoteListItem",
    "OwnerNoteView", "PublicNoteView", "AnonymousNoteView", "NoteView",
    "FolderCreate", "FolderUpdate", "FolderResponse", "FolderContents", "Breadcrumb", "DeleteResponse",
    "BookmarkToggleResponse",
    "SearchResults", "ExploreResponse",
    "Token",
]
