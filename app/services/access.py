"""Access and visibility resolution for notes and folders.

``resolve`` is a pure decision over an already-loaded row (or None) and the
caller identity. The rules are identical for both resource types:

* a missing row is NotFound, before identity is looked at;
* Read/List is allowed on public rows, and on private rows for the author;
* Mutate is allowed for the author only; an anonymous caller is
  Unauthenticated, any other caller is Forbidden.

Listing filters are expressed as SQL clauses (``visible_to``) so private
rows never leave the database for a non-owner.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type, Union

from sqlalchemy import or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, NotFoundError, UnauthenticatedError
from app.models.folder import Folder
from app.models.note import Note


class Operation(str, Enum):
    READ = "read"
    LIST = "list"
    MUTATE = "mutate"


class View(str, Enum):
    """Which projection of a resource the caller is entitled to."""

    OWNER = "owner"
    PUBLIC = "public"
    ANONYMOUS = "anonymous"


class DenialReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Allowed:
    view: View


@dataclass(frozen=True)
class Denied:
    reason: DenialReason


@dataclass(frozen=True)
class Missing:
    pass


Decision = Union[Allowed, Denied, Missing]

Resource = Union[Note, Folder]

_RESOURCE_NAMES = {Note: "note", Folder: "folder"}


def view_for(resource: Resource, caller_id: Optional[int]) -> View:
    if caller_id is None:
        return View.ANONYMOUS
    if resource.author_id == caller_id:
        return View.OWNER
    return View.PUBLIC


def resolve(resource: Optional[Resource], caller_id: Optional[int], operation: Operation) -> Decision:
    if resource is None:
        return Missing()

    is_owner = caller_id is not None and resource.author_id == caller_id

    if operation is Operation.MUTATE:
        if caller_id is None:
            return Denied(DenialReason.UNAUTHENTICATED)
        if not is_owner:
            return Denied(DenialReason.FORBIDDEN)
        return Allowed(View.OWNER)

    if resource.is_public or is_owner:
        return Allowed(view_for(resource, caller_id))
    return Denied(DenialReason.FORBIDDEN)


_DENIAL_MESSAGES = {
    (Operation.READ, DenialReason.FORBIDDEN): "You do not have permission to view this {name}",
    (Operation.LIST, DenialReason.FORBIDDEN): "You do not have permission to view this {name}",
    (Operation.MUTATE, DenialReason.FORBIDDEN): "You do not have permission to modify this {name}",
    (Operation.MUTATE, DenialReason.UNAUTHENTICATED): "You must be signed in to modify this {name}",
}


def enforce(decision: Decision, resource_name: str, resource_id: Any, operation: Operation) -> View:
    """Turn a decision into a view, or raise the matching typed error."""
    if isinstance(decision, Allowed):
        return decision.view
    if isinstance(decision, Missing):
        raise NotFoundError(resource_name, resource_id)

    template = _DENIAL_MESSAGES.get(
        (operation, decision.reason), "You do not have permission to access this {name}"
    )
    message = template.format(name=resource_name)
    if decision.reason is DenialReason.UNAUTHENTICATED:
        raise UnauthenticatedError(message)
    raise ForbiddenError(message)


async def authorize(
    db: AsyncSession,
    model: Type[Resource],
    resource_id: int,
    caller_id: Optional[int],
    operation: Operation,
    options: tuple = (),
):
    """Load a note or folder and enforce ``operation`` on it.

    Returns ``(resource, view)``; raises NotFoundError, UnauthenticatedError
    or ForbiddenError.
    """
    query = select(model).where(model.id == resource_id)
    if options:
        query = query.options(*options)
    result = await db.execute(query)
    resource = result.scalar_one_or_none()

    decision = resolve(resource, caller_id, operation)
    view = enforce(decision, _RESOURCE_NAMES[model], resource_id, operation)
    return resource, view


def visible_to(model: Type[Resource], caller_id: Optional[int]):
    """SQL filter for rows of ``model`` the caller may see in a listing."""
    if caller_id is None:
        return model.is_public == true()
    return or_(model.is_public == true(), model.author_id == caller_id)


def authored_listing(model: Type[Resource], author_id: int, caller_id: Optional[int]):
    """SQL filter for one author's rows: everything for the author, public rows for others."""
    if caller_id is not None and caller_id == author_id:
        return model.author_id == author_id
    return (model.author_id == author_id) & (model.is_public == true())


async def require_owned_folder(db: AsyncSession, folder_id: int, caller_id: int, purpose: str) -> Folder:
    """Check a folder exists and belongs to the caller before filing content in it.

    Public folders owned by someone else are still rejected.
    """
    result = await db.execute(select(Folder).where(Folder.id == folder_id))
    folder = result.scalar_one_or_none()
    if folder is None:
        raise NotFoundError("folder", folder_id, message=f"{purpose.capitalize()} folder not found")
    if folder.author_id != caller_id:
        raise ForbiddenError(f"You do not have permission to add content to this {purpose} folder")
    return folder
