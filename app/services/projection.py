"""Mapping from stored rows to the response variants a caller may see."""
from typing import Dict, Iterable, List, Optional, Set, Tuple

from app.models.folder import Folder
from app.models.note import Note
from app.schemas.folder import FolderResponse
from app.schemas.note import (
    AnonymousNoteView,
    AuthorSummary,
    NoteListItem,
    OwnerNoteView,
    PublicNoteView,
)
from app.services.access import View

_NOTE_VIEWS = {
    View.OWNER: OwnerNoteView,
    View.PUBLIC: PublicNoteView,
    View.ANONYMOUS: AnonymousNoteView,
}


def author_summary(user) -> Optional[AuthorSummary]:
    if user is None:
        return None
    return AuthorSummary(id=user.id, name=user.name, image=user.image)


def project_note(note: Note, view: View, bookmarked: bool):
    """Build the single-note response for ``view``.

    Only the owner variant carries ``folderId``; the anonymous variant is
    never bookmarked.
    """
    fields = dict(
        id=note.id,
        title=note.title,
        content=note.content,
        is_public=note.is_public,
        author_id=note.author_id,
        author=author_summary(note.author),
        created_at=note.created_at,
        updated_at=note.updated_at,
        is_bookmarked=bookmarked and view is not View.ANONYMOUS,
        is_owner=view is View.OWNER,
    )
    if view is View.OWNER:
        fields["folder_id"] = note.folder_id
    return _NOTE_VIEWS[view](**fields)


def note_list_item(
    note: Note,
    bookmarked_ids: Set[int],
    include_content: bool = False,
    include_author: bool = True,
) -> NoteListItem:
    return NoteListItem(
        id=note.id,
        title=note.title,
        content=note.content if include_content else None,
        is_public=note.is_public,
        author_id=note.author_id,
        folder_id=note.folder_id,
        author=author_summary(note.author) if include_author else None,
        created_at=note.created_at,
        updated_at=note.updated_at,
        is_bookmarked=note.id in bookmarked_ids,
    )


def note_list(notes: Iterable[Note], bookmarked_ids: Set[int], **kwargs) -> List[NoteListItem]:
    return [note_list_item(note, bookmarked_ids, **kwargs) for note in notes]


def folder_response(
    folder: Folder,
    counts: Dict[int, Tuple[int, int]],
    include_author: bool = False,
) -> FolderResponse:
    note_count, subfolder_count = counts.get(folder.id, (0, 0))
    return FolderResponse(
        id=folder.id,
        name=folder.name,
        is_public=folder.is_public,
        author_id=folder.author_id,
        parent_id=folder.parent_id,
        created_at=folder.created_at,
        updated_at=folder.updated_at,
        note_count=note_count,
        subfolder_count=subfolder_count,
        author=author_summary(folder.author) if include_author else None,
    )


def folder_list(folders: Iterable[Folder], counts, include_author: bool = False) -> List[FolderResponse]:
    return [folder_response(folder, counts, include_author) for folder in folders]
