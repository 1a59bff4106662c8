import pytest

from app.services import whatsapp
from app.services.whatsapp import EDITOR_ASSIGNED, normalize_destination, notify_client_of_status, notify_client_quietly


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def send(phone_number, params, campaign_name=None):
        sent.append((phone_number, params))
        return True

    monkeypatch.setattr(whatsapp, "send_whatsapp", send)
    return sent


class TestDestination:
    @pytest.mark.parametrize("raw,expected", [
        ("98765 43210", "919876543210"),
        ("+91 98765-43210", "919876543210"),
        ("12345", None),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_destination(raw) == expected


class TestClientUpdates:
    async def test_message_goes_to_stored_client(self, fake_db, outbox):
        fake_db.put("projects/p1", {"name": "Teaser", "clientId": "c1"})
        fake_db.put("users/c1", {"displayName": "Asha", "phoneNumber": "9876543210"})

        assert await notify_client_of_status("p1", EDITOR_ASSIGNED) is True
        assert outbox == [("9876543210", ["Asha", "Teaser", whatsapp.STATUS_MESSAGES[EDITOR_ASSIGNED]])]

    async def test_status_without_template(self, fake_db, outbox):
        fake_db.put("projects/p1", {"name": "Teaser", "clientId": "c1"})
        assert await notify_client_of_status("p1", "archived") is False
        assert outbox == []

    async def test_client_without_phone(self, fake_db, outbox):
        fake_db.put("projects/p1", {"name": "Teaser", "clientId": "c1"})
        fake_db.put("users/c1", {"displayName": "Asha"})
        assert await notify_client_of_status("p1", "completed") is False

    async def test_quiet_variant_never_raises(self, monkeypatch):
        async def broken(project_id, status, project=None):
            raise RuntimeError("firestore unavailable")

        monkeypatch.setattr(whatsapp, "notify_client_of_status", broken)
        assert await notify_client_quietly("p1", "completed") is False
