"""Tests for breadcrumb walks, child counts and subtree collection."""
import pytest
from sqlalchemy import update

from app.core.errors import IntegrityHazard
from app.models.folder import Folder
from app.services.folders import (
    AncestryError,
    breadcrumbs,
    child_counts,
    subtree_ids,
    walk_ancestry,
)

pytestmark = pytest.mark.anyio


async def load(db, folder_id):
    return await db.get(Folder, folder_id)


class TestBreadcrumbs:
    async def test_root_to_target_order(self, db, alice, make_folder):
        school = await make_folder(alice, "School")
        term = await make_folder(alice, "Fall", parent_id=school.id)
        course = await make_folder(alice, "Physics", parent_id=term.id)

        crumbs = await walk_ancestry(db, await load(db, course.id), max_depth=10)

        assert [c.name for c in crumbs] == ["School", "Fall", "Physics"]
        assert crumbs[-1].id == course.id
        first = await load(db, crumbs[0].id)
        assert first.parent_id is None

    async def test_root_folder_is_its_own_chain(self, db, alice, make_folder):
        root = await make_folder(alice, "Root")

        crumbs = await walk_ancestry(db, await load(db, root.id), max_depth=10)

        assert [(c.id, c.name) for c in crumbs] == [(root.id, "Root")]

    async def test_cyclic_chain_terminates(self, db, alice, make_folder):
        a = await make_folder(alice, "A")
        b = await make_folder(alice, "B", parent_id=a.id)
        await db.execute(update(Folder).where(Folder.id == a.id).values(parent_id=b.id))
        await db.commit()

        with pytest.raises(AncestryError) as exc:
            await walk_ancestry(db, await load(db, b.id), max_depth=10)

        assert isinstance(exc.value, IntegrityHazard)
        assert exc.value.chain[-1].id == b.id

    async def test_breadcrumbs_truncate_on_cycle(self, db, alice, make_folder, caplog):
        a = await make_folder(alice, "A")
        b = await make_folder(alice, "B", parent_id=a.id)
        await db.execute(update(Folder).where(Folder.id == a.id).values(parent_id=b.id))
        await db.commit()

        crumbs = await breadcrumbs(db, await load(db, b.id), max_depth=10)

        assert [c.name for c in crumbs] == ["A", "B"]
        assert "Truncating breadcrumbs" in caplog.text

    async def test_depth_bound(self, db, alice, make_folder):
        parent = None
        for depth in range(5):
            folder = await make_folder(alice, f"L{depth}", parent_id=parent)
            parent = folder.id

        with pytest.raises(AncestryError):
            await walk_ancestry(db, await load(db, parent), max_depth=3)
        crumbs = await breadcrumbs(db, await load(db, parent), max_depth=3)
        assert len(crumbs) == 3
        assert crumbs[-1].id == parent


class TestChildCounts:
    async def test_counts_respect_visibility(self, db, alice, bob, make_folder, make_note):
        top = await make_folder(alice, "Top")
        await make_folder(alice, "Open", parent_id=top.id)
        await make_folder(alice, "Hidden", is_public=False, parent_id=top.id)
        await make_note(alice, "visible", folder_id=top.id)
        await make_note(alice, "secret", is_public=False, folder_id=top.id)
        empty = await make_folder(alice, "Empty")

        assert await child_counts(db, [top.id, empty.id], alice.id) == {top.id: (2, 2), empty.id: (0, 0)}
        assert await child_counts(db, [top.id], bob.id) == {top.id: (1, 1)}
        assert await child_counts(db, [top.id], None) == {top.id: (1, 1)}
        assert await child_counts(db, [top.id], alice.id, public_only=True) == {top.id: (1, 1)}
        assert await child_counts(db, [], alice.id) == {}


class TestSubtree:
    async def test_collects_all_descendants(self, db, alice, make_folder):
        root = await make_folder(alice, "root")
        child = await make_folder(alice, "child", parent_id=root.id)
        grandchild = await make_folder(alice, "grandchild", parent_id=child.id)
        sibling = await make_folder(alice, "sibling")

        ids = await subtree_ids(db, root.id, max_depth=10)

        assert ids == {root.id, child.id, grandchild.id}
        assert sibling.id not in ids

    async def test_depth_bound(self, db, alice, make_folder):
        root = await make_folder(alice, "root")
        parent = root.id
        for depth in range(4):
            parent = (await make_folder(alice, f"L{depth}", parent_id=parent)).id

        with pytest.raises(IntegrityHazard):
            await subtree_ids(db, root.id, max_depth=2)
