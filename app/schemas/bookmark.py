from .base import CamelModel


class BookmarkToggleResponse(CamelModel):
    is_bookmarked: bool
