from .user import User
from .note import Note
from .folder import Folder
from .bookmark import Bookmark

__all__ = ["User", "Note", "Folder", "Bookmark"]
