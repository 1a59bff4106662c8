import pytest
from pydantic import ValidationError as ModelValidationError

from app.core.errors import NotFoundError, ValidationError
from app.services import comments
from app.services.guests import capture_guest_identity, create_guest_session, get_guest_session

AUTHOR = {"uid": "u1", "name": "Asha", "role": "client"}


class TestGuestIdentity:
    def test_name_required(self):
        with pytest.raises(ValidationError):
            capture_guest_identity("   ", "a@b.com")

    def test_email_optional_and_trimmed(self):
        assert capture_guest_identity(" Ravi ", "").email is None
        assert capture_guest_identity("Ravi", " r@x.com ").email == "r@x.com"

    async def test_each_call_opens_a_new_session(self, fake_db):
        identity = capture_guest_identity("Ravi", "r@x.com")
        first = await create_guest_session("p1", identity)
        second = await create_guest_session("p1", identity)
        assert first.id != second.id
        assert len(fake_db.under("guest_sessions")) == 2
        assert first.attribution_id == "guest-r@x.com"

    async def test_session_without_email_is_attributed_by_id(self):
        session = await create_guest_session("p1", capture_guest_identity("Ravi"))
        loaded = await get_guest_session(session.id)
        assert loaded.attribution_id == f"guest-{session.id}"

    async def test_unknown_session(self):
        with pytest.raises(NotFoundError):
            await get_guest_session("nope")


class TestComments:
    async def test_add_and_list_in_playback_order(self, fake_db):
        await comments.add_comment("p1", "r1", AUTHOR, "later", 80)
        await comments.add_comment("p1", "r1", AUTHOR, "earlier", 5.5)
        await comments.add_comment("p1", "r2", AUTHOR, "other cut", 1)

        listed = await comments.list_comments("p1", "r1")
        assert [c.content for c in listed] == ["earlier", "later"]
        stored = next(iter(fake_db.under("projects/p1/comments").values()))
        assert "id" not in stored
        assert stored["status"] == "open"

    async def test_negative_timestamp_rejected(self):
        with pytest.raises(ModelValidationError):
            await comments.add_comment("p1", "r1", AUTHOR, "bad", -1)

    async def test_toggle_flips_between_open_and_resolved(self):
        comment = await comments.add_comment("p1", "r1", AUTHOR, "fix color", 12)
        assert await comments.toggle_status("p1", comment.id) == "resolved"
        assert await comments.toggle_status("p1", comment.id) == "open"

    async def test_reply_appends_to_thread(self, fake_db):
        comment = await comments.add_comment("p1", "r1", AUTHOR, "fix color", 12)
        await comments.add_reply("p1", comment.id, {"uid": "e1", "name": "Editor", "role": "editor"}, "done")
        replies = fake_db.read(f"projects/p1/comments/{comment.id}")["replies"]
        assert [r["content"] for r in replies] == ["done"]

    async def test_reply_to_missing_comment(self):
        with pytest.raises(NotFoundError):
            await comments.add_reply("p1", "ghost", AUTHOR, "hello")
