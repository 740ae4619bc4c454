from datetime import datetime
from typing import List

from .base import CamelModel
from .folder import FolderResponse
from .note import NoteListItem


class SearchResults(CamelModel):
    notes: List[NoteListItem] = []
    folders: List[FolderResponse] = []
    total_results: int = 0


class AppliedLimits(CamelModel):
    folders: int
    notes: int


class ExploreMeta(CamelModel):
    total_folders: int
    total_notes: int
    applied_limits: AppliedLimits
    timestamp: datetime


class ExploreResponse(CamelModel):
    folders: List[FolderResponse]
    notes: List[NoteListItem]
    meta: ExploreMeta
