"""End-to-end tests for the note endpoints."""
import pytest
from sqlalchemy import func, select

from app.models.bookmark import Bookmark
from tests.helpers import auth_headers

pytestmark = pytest.mark.anyio

NOTES = "/api/v1/notes"


class TestCreateNote:
    async def test_create_defaults_to_public(self, client, alice):
        response = await client.post(
            f"{NOTES}/", json={"title": "Midterm Review", "content": "<p>ch 1-4</p>"}, headers=auth_headers(alice)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Midterm Review"
        assert body["isPublic"] is True
        assert body["folderId"] is None

    async def test_anonymous_cannot_create(self, client):
        response = await client.post(f"{NOTES}/", json={"title": "t", "content": "c"})

        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"

    @pytest.mark.parametrize("payload", [{"title": "only title"}, {"content": "only content"}, {"title": "  ", "content": "x"}])
    async def test_title_and_content_required(self, client, alice, payload):
        response = await client.post(f"{NOTES}/", json=payload, headers=auth_headers(alice))

        assert response.status_code == 400
        assert response.json()["detail"] == "Title and content are required"

    async def test_create_in_own_folder(self, client, alice, make_folder):
        folder = await make_folder(alice, "Drafts", is_public=False)

        response = await client.post(
            f"{NOTES}/", json={"title": "t", "content": "c", "folderId": folder.id}, headers=auth_headers(alice)
        )

        assert response.status_code == 201
        assert response.json()["folderId"] == folder.id

    async def test_cannot_file_into_someone_elses_public_folder(self, client, alice, bob, make_folder):
        folder = await make_folder(bob, "Bob's shelf", is_public=True)

        response = await client.post(
            f"{NOTES}/", json={"title": "t", "content": "c", "folderId": folder.id}, headers=auth_headers(alice)
        )

        assert response.status_code == 403

    async def test_missing_folder(self, client, alice):
        response = await client.post(
            f"{NOTES}/", json={"title": "t", "content": "c", "folderId": 999}, headers=auth_headers(alice)
        )

        assert response.status_code == 404


class TestGetNote:
    async def test_anonymous_reads_public_note(self, client, alice):
        created = await client.post(
            f"{NOTES}/", json={"title": "Midterm Review", "content": "<p>ch 1-4</p>"}, headers=auth_headers(alice)
        )

        response = await client.get(f"{NOTES}/{created.json()['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["content"] == "<p>ch 1-4</p>"
        assert body["isBookmarked"] is False
        assert body["view"] == "anonymous"
        assert body["author"]["name"] == "Alice"
        assert "folderId" not in body

    @pytest.mark.parametrize("reader", ["anonymous", "bob"])
    async def test_private_note_hidden_from_non_owner(self, client, alice, bob, make_note, reader):
        note = await make_note(alice, "diary", content="secret", is_public=False)
        headers = auth_headers(bob) if reader == "bob" else {}

        response = await client.get(f"{NOTES}/{note.id}", headers=headers)

        assert response.status_code == 403
        assert "secret" not in response.text

    async def test_owner_view_of_private_note(self, client, alice, make_note, make_folder):
        folder = await make_folder(alice, "Journal")
        note = await make_note(alice, "diary", is_public=False, folder_id=folder.id)

        response = await client.get(f"{NOTES}/{note.id}", headers=auth_headers(alice))

        body = response.json()
        assert response.status_code == 200
        assert body["view"] == "owner"
        assert body["isOwner"] is True
        assert body["folderId"] == folder.id

    async def test_other_user_gets_public_view(self, client, alice, bob, make_note):
        note = await make_note(alice, "shared")

        body = (await client.get(f"{NOTES}/{note.id}", headers=auth_headers(bob))).json()

        assert body["view"] == "public"
        assert body["isOwner"] is False

    async def test_missing_note(self, client):
        response = await client.get(f"{NOTES}/12345")

        assert response.status_code == 404
        assert response.json() == {"detail": "Note not found", "code": "not_found", "details": {"resource": "note", "id": 12345}}

    async def test_invalid_token_reads_as_anonymous(self, client, alice, make_note):
        note = await make_note(alice, "open")

        response = await client.get(f"{NOTES}/{note.id}", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 200
        assert response.json()["view"] == "anonymous"

    async def test_response_is_cached_per_viewer(self, client, alice, bob, make_note, fake_redis):
        note = await make_note(alice, "cached")

        await client.get(f"{NOTES}/{note.id}")
        await client.get(f"{NOTES}/{note.id}", headers=auth_headers(bob))

        assert f"note:{note.id}:viewer:anonymous" in fake_redis.values
        assert f"note:{note.id}:viewer:{bob.id}" in fake_redis.values
        assert fake_redis.sets[f"note:{note.id}:viewers"] == {
            f"note:{note.id}:viewer:anonymous",
            f"note:{note.id}:viewer:{bob.id}",
        }


class TestListNotes:
    async def test_lists_only_callers_notes(self, client, alice, bob, make_note, make_folder):
        folder = await make_folder(alice, "F")
        await make_note(alice, "root note", is_public=False)
        await make_note(alice, "in folder", folder_id=folder.id)
        await make_note(bob, "bob's")

        all_notes = (await client.get(f"{NOTES}/", headers=auth_headers(alice))).json()
        root_only = (await client.get(f"{NOTES}/", params={"folderId": "null"}, headers=auth_headers(alice))).json()
        in_folder = (await client.get(f"{NOTES}/", params={"folderId": folder.id}, headers=auth_headers(alice))).json()

        assert {n["title"] for n in all_notes} == {"root note", "in folder"}
        assert [n["title"] for n in root_only] == ["root note"]
        assert [n["title"] for n in in_folder] == ["in folder"]

    async def test_requires_sign_in(self, client):
        assert (await client.get(f"{NOTES}/")).status_code == 401

    async def test_bad_folder_filter(self, client, alice):
        response = await client.get(f"{NOTES}/", params={"folderId": "abc"}, headers=auth_headers(alice))

        assert response.status_code == 400


class TestUpdateNote:
    async def test_update_is_visible_to_every_viewer(self, client, alice, bob, make_note):
        note = await make_note(alice, "Old title")
        for headers in ({}, auth_headers(alice), auth_headers(bob)):
            assert (await client.get(f"{NOTES}/{note.id}", headers=headers)).json()["title"] == "Old title"

        response = await client.put(f"{NOTES}/{note.id}", json={"title": "New title"}, headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json()["title"] == "New title"
        for headers in ({}, auth_headers(alice), auth_headers(bob)):
            assert (await client.get(f"{NOTES}/{note.id}", headers=headers)).json()["title"] == "New title"

    async def test_making_private_hides_cached_public_view(self, client, alice, bob, make_note):
        note = await make_note(alice, "soon private")
        assert (await client.get(f"{NOTES}/{note.id}", headers=auth_headers(bob))).status_code == 200

        await client.put(f"{NOTES}/{note.id}", json={"isPublic": False}, headers=auth_headers(alice))

        assert (await client.get(f"{NOTES}/{note.id}", headers=auth_headers(bob))).status_code == 403
        assert (await client.get(f"{NOTES}/{note.id}")).status_code == 403

    async def test_anonymous_update_is_unauthenticated(self, client, alice, make_note):
        note = await make_note(alice, "t")

        assert (await client.put(f"{NOTES}/{note.id}", json={"title": "x"})).status_code == 401

    async def test_non_owner_update_is_forbidden(self, client, alice, bob, make_note):
        note = await make_note(alice, "t")

        response = await client.put(f"{NOTES}/{note.id}", json={"title": "x"}, headers=auth_headers(bob))

        assert response.status_code == 403

    async def test_missing_note_is_not_found_before_auth(self, client):
        assert (await client.put(f"{NOTES}/999", json={"title": "x"})).status_code == 404

    async def test_move_between_folders(self, client, alice, bob, make_note, make_folder):
        mine = await make_folder(alice, "mine")
        theirs = await make_folder(bob, "theirs")
        note = await make_note(alice, "t")

        moved = await client.put(f"{NOTES}/{note.id}", json={"folderId": mine.id}, headers=auth_headers(alice))
        rejected = await client.put(f"{NOTES}/{note.id}", json={"folderId": theirs.id}, headers=auth_headers(alice))
        to_root = await client.put(f"{NOTES}/{note.id}", json={"folderId": None}, headers=auth_headers(alice))

        assert moved.json()["folderId"] == mine.id
        assert rejected.status_code == 403
        assert to_root.json()["folderId"] is None

    async def test_empty_title_rejected(self, client, alice, make_note):
        note = await make_note(alice, "t")

        response = await client.put(f"{NOTES}/{note.id}", json={"title": ""}, headers=auth_headers(alice))

        assert response.status_code == 400


class TestDeleteNote:
    async def test_delete_removes_bookmarks_and_cache(self, client, alice, bob, make_note, db, fake_redis):
        note = await make_note(alice, "gone soon")
        await client.post(f"/api/v1/bookmarks/{note.id}", headers=auth_headers(bob))
        await client.get(f"{NOTES}/{note.id}", headers=auth_headers(bob))

        response = await client.delete(f"{NOTES}/{note.id}", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json()["success"] is True
        remaining = await db.scalar(select(func.count(Bookmark.id)).where(Bookmark.note_id == note.id))
        assert remaining == 0
        assert f"note:{note.id}:viewer:{bob.id}" not in fake_redis.values
        assert (await client.get(f"{NOTES}/{note.id}")).status_code == 404

    async def test_status_codes(self, client, alice, bob, make_note):
        note = await make_note(alice, "t")

        assert (await client.delete(f"{NOTES}/999", headers=auth_headers(alice))).status_code == 404
        assert (await client.delete(f"{NOTES}/{note.id}")).status_code == 401
        assert (await client.delete(f"{NOTES}/{note.id}", headers=auth_headers(bob))).status_code == 403
