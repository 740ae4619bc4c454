"""Folder hierarchy: ancestry walks, child counts, moves and deletion cascades."""
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import IntegrityHazard, ValidationFailure
from app.models.bookmark import Bookmark
from app.models.folder import Folder
from app.models.note import Note
from app.schemas.folder import Breadcrumb
from app.services.access import Operation, authorize, require_owned_folder, visible_to

logger = logging.getLogger(__name__)


class AncestryError(IntegrityHazard):
    """The parent chain of a folder loops or exceeds the depth bound.

    ``chain`` holds the breadcrumbs collected before the walk stopped,
    ordered root-most first and ending with the starting folder.
    """

    def __init__(self, folder_id: int, message: str, chain: List[Breadcrumb]):
        super().__init__(message, details={"folder_id": folder_id, "depth": len(chain)})
        self.folder_id = folder_id
        self.chain = chain


async def _parent_link(db: AsyncSession, folder_id: int) -> Optional[Tuple[int, str, Optional[int]]]:
    result = await db.execute(
        select(Folder.id, Folder.name, Folder.parent_id).where(Folder.id == folder_id)
    )
    row = result.first()
    return tuple(row) if row is not None else None


async def walk_ancestry(db: AsyncSession, folder: Folder, max_depth: int) -> List[Breadcrumb]:
    """Walk ``parent_id`` links from ``folder`` up to its root.

    Returns breadcrumbs from the root ancestor down to ``folder`` inclusive.
    Raises AncestryError if a folder repeats or the chain is longer than
    ``max_depth``.
    """
    chain = [Breadcrumb(id=folder.id, name=folder.name)]
    seen = {folder.id}
    parent_id = folder.parent_id

    while parent_id is not None:
        if parent_id in seen:
            raise AncestryError(folder.id, f"Cyclic parent chain at folder {parent_id}", chain)
        if len(chain) >= max_depth:
            raise AncestryError(folder.id, f"Folder ancestry deeper than {max_depth}", chain)

        link = await _parent_link(db, parent_id)
        if link is None:
            # Dangling parent reference; treat the last folder found as the root
            logger.warning(f"Folder {chain[0].id} references missing parent {parent_id}")
            break
        ancestor_id, name, parent_id = link
        seen.add(ancestor_id)
        chain.insert(0, Breadcrumb(id=ancestor_id, name=name))

    return chain


async def breadcrumbs(db: AsyncSession, folder: Folder, max_depth: int) -> List[Breadcrumb]:
    """Ancestry for display; a broken chain is logged and truncated instead of failing."""
    try:
        return await walk_ancestry(db, folder, max_depth)
    except AncestryError as e:
        logger.error(f"Truncating breadcrumbs for folder {folder.id}: {e}")
        return e.chain


async def child_counts(
    db: AsyncSession,
    folder_ids: Sequence[int],
    caller_id: Optional[int] = None,
    public_only: bool = False,
) -> Dict[int, Tuple[int, int]]:
    """Direct note and subfolder counts per folder, limited to what the viewer may see.

    Two grouped queries regardless of how many folders are asked about.
    """
    folder_ids = list(folder_ids)
    if not folder_ids:
        return {}
    viewer = None if public_only else caller_id

    note_rows = await db.execute(
        select(Note.folder_id, func.count(Note.id))
        .where(and_(Note.folder_id.in_(folder_ids), visible_to(Note, viewer)))
        .group_by(Note.folder_id)
    )
    folder_rows = await db.execute(
        select(Folder.parent_id, func.count(Folder.id))
        .where(and_(Folder.parent_id.in_(folder_ids), visible_to(Folder, viewer)))
        .group_by(Folder.parent_id)
    )
    note_counts = dict(note_rows.all())
    subfolder_counts = dict(folder_rows.all())
    return {
        folder_id: (note_counts.get(folder_id, 0), subfolder_counts.get(folder_id, 0))
        for folder_id in folder_ids
    }


def _check_nesting(parent_depth: int, subtree_height: int, max_depth: int) -> None:
    if parent_depth + 1 + subtree_height > max_depth:
        raise ValidationFailure(
            f"Folders cannot be nested more than {max_depth} levels deep", field="parentId"
        )


async def create_folder(
    db: AsyncSession,
    caller_id: int,
    name: Optional[str],
    is_public: bool = True,
    parent_id: Optional[int] = None,
    max_depth: int = 64,
) -> Folder:
    name = (name or "").strip()
    if not name:
        raise ValidationFailure("Folder name is required", field="name")
    if parent_id is not None:
        parent = await require_owned_folder(db, parent_id, caller_id, "parent")
        chain = await walk_ancestry(db, parent, max_depth)
        _check_nesting(len(chain), 0, max_depth)

    folder = Folder(name=name, is_public=is_public, author_id=caller_id, parent_id=parent_id)
    db.add(folder)
    await db.commit()
    await db.refresh(folder)
    return folder


async def validate_move(db: AsyncSession, folder: Folder, new_parent_id: Optional[int], max_depth: int) -> None:
    """Reject a move that would put ``folder`` under itself or a descendant,
    or push the deepest folder below it past ``max_depth``.
    """
    if new_parent_id is None:
        return
    if new_parent_id == folder.id:
        raise ValidationFailure("A folder cannot be its own parent", field="parentId")

    parent = await require_owned_folder(db, new_parent_id, folder.author_id, "parent")
    chain = await walk_ancestry(db, parent, max_depth)
    if any(crumb.id == folder.id for crumb in chain):
        raise ValidationFailure(
            "Cannot move a folder into one of its own subfolders", field="parentId"
        )
    _check_nesting(len(chain), await subtree_height(db, folder.id, max_depth), max_depth)


async def update_folder(
    db: AsyncSession,
    folder_id: int,
    caller_id: Optional[int],
    changes: dict,
    max_depth: int,
) -> Folder:
    folder, _ = await authorize(db, Folder, folder_id, caller_id, Operation.MUTATE)

    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationFailure("Folder name is required", field="name")
        folder.name = name
    if changes.get("is_public") is not None:
        folder.is_public = changes["is_public"]
    if "parent_id" in changes and changes["parent_id"] != folder.parent_id:
        await validate_move(db, folder, changes["parent_id"], max_depth)
        folder.parent_id = changes["parent_id"]

    await db.commit()
    await db.refresh(folder)
    return folder


async def _descend(db: AsyncSession, folder_id: int, max_depth: int) -> Tuple[Set[int], int]:
    """Breadth-first walk below ``folder_id``, one query per level.

    Returns the ids found (``folder_id`` included) and the number of levels
    below it.
    """
    found = {folder_id}
    frontier = [folder_id]
    depth = 0
    while frontier:
        result = await db.execute(select(Folder.id).where(Folder.parent_id.in_(frontier)))
        frontier = [child for child in result.scalars().all() if child not in found]
        found.update(frontier)
        if frontier:
            depth += 1
            if depth > max_depth:
                raise IntegrityHazard(
                    f"Folder subtree deeper than {max_depth}", details={"folder_id": folder_id}
                )
    return found, depth


async def subtree_ids(db: AsyncSession, folder_id: int, max_depth: int) -> Set[int]:
    """Ids of ``folder_id`` and every folder below it."""
    found, _ = await _descend(db, folder_id, max_depth)
    return found


async def subtree_height(db: AsyncSession, folder_id: int, max_depth: int) -> int:
    _, height = await _descend(db, folder_id, max_depth)
    return height


async def delete_folder(
    db: AsyncSession,
    folder_id: int,
    caller_id: Optional[int],
    keep_contents: bool,
    max_depth: int,
) -> List[int]:
    """Delete a folder owned by the caller.

    With ``keep_contents`` the direct child notes and folders move to the
    deleted folder's parent (root when it has none); otherwise the whole
    subtree is removed with its notes and their bookmarks. Everything is
    committed in one transaction. Returns the ids of notes whose cached
    views are now stale.
    """
    folder, _ = await authorize(db, Folder, folder_id, caller_id, Operation.MUTATE)
    parent_id = folder.parent_id

    if keep_contents:
        result = await db.execute(select(Note.id).where(Note.folder_id == folder_id))
        affected = list(result.scalars().all())
        await db.execute(
            update(Note).where(Note.folder_id == folder_id).values(folder_id=parent_id)
        )
        await db.execute(
            update(Folder).where(Folder.parent_id == folder_id).values(parent_id=parent_id)
        )
        await db.execute(delete(Folder).where(Folder.id == folder_id))
    else:
        folder_ids = await subtree_ids(db, folder_id, max_depth)
        result = await db.execute(select(Note.id).where(Note.folder_id.in_(folder_ids)))
        affected = list(result.scalars().all())
        if affected:
            await db.execute(delete(Bookmark).where(Bookmark.note_id.in_(affected)))
            await db.execute(delete(Note).where(Note.id.in_(affected)))
        await db.execute(delete(Folder).where(Folder.id.in_(folder_ids)))

    await db.commit()
    logger.info(
        f"Deleted folder {folder_id} ({'kept' if keep_contents else 'removed'} {len(affected)} notes)"
    )
    return affected
