import asyncio

import pytest

from app.core.errors import ConfigurationError, SignatureError, ValidationError
from app.models.payment import PaymentType
from app.services import payments
from app.services.payments import build_receipt, create_order, generate_signature, verify_payment

SECRET = "test_secret"


class FakeGateway:
    def __init__(self):
        self.orders = []

    async def create_order(self, payload):
        self.orders.append(payload)
        return {"id": "order_123", "amount": payload["amount"], "currency": payload["currency"]}


@pytest.fixture
def gateway(monkeypatch):
    gw = FakeGateway()
    monkeypatch.setattr(payments, "get_gateway", lambda: gw)
    return gw


@pytest.fixture
def secret(monkeypatch):
    monkeypatch.setenv("RAZORPAY_KEY_SECRET", SECRET)
    return SECRET


class TestCreateOrder:
    async def test_amount_sent_in_paise(self, gateway):
        order = await create_order(1499.5, "proj_abc")
        assert order["id"] == "order_123"
        payload = gateway.orders[0]
        assert payload["amount"] == 149950
        assert payload["currency"] == "INR"
        assert payload["notes"] == {"projectId": "proj_abc"}

    async def test_below_one_rupee_never_reaches_gateway(self, gateway):
        with pytest.raises(ValidationError) as exc:
            await create_order(0.5, "proj_abc")
        assert exc.value.message == "Amount must be at least ₹1"
        assert gateway.orders == []

    async def test_missing_fields(self, gateway):
        with pytest.raises(ValidationError):
            await create_order(None, "proj_abc")
        with pytest.raises(ValidationError):
            await create_order(100, "")
        assert gateway.orders == []

    async def test_missing_keys_is_a_configuration_error(self, monkeypatch):
        monkeypatch.delenv("RAZORPAY_KEY_ID", raising=False)
        monkeypatch.delenv("RAZORPAY_KEY_SECRET", raising=False)
        with pytest.raises(ConfigurationError):
            await create_order(100, "proj_abc")


class TestReceipt:
    def test_format_and_length(self):
        receipt = build_receipt("a-very-long-project-identifier-0123456789", now=1700000123)
        assert receipt == "rcpt_a-very-long-pro_123000"
        assert len(receipt) <= 40


class TestSignature:
    def test_deterministic(self):
        assert generate_signature("o1", "p1", SECRET) == generate_signature("o1", "p1", SECRET)
        assert generate_signature("o1", "p1", SECRET) != generate_signature("o1", "p2", SECRET)


class TestVerifyPayment:
    async def test_valid_initial_payment(self, fake_db, secret):
        fake_db.put("projects/p1", {"name": "Teaser", "status": "pending_assignment", "amountPaid": 0, "clientId": "c1"})
        fake_db.put("users/c1", {"displayName": "Asha", "email": "asha@example.com"})

        result = await verify_payment("o1", "pay1", generate_signature("o1", "pay1", secret), "p1", 2500,
                                      PaymentType.INITIAL)

        project = fake_db.read("projects/p1")
        assert result["success"] is True
        assert project["amountPaid"] == 2500
        assert project["paymentStatus"] == "half_paid"
        assert project["razorpayPaymentId"] == "pay1"
        assert project["logs"][0]["event"] == "PAYMENT_VERIFIED"
        invoices = list(fake_db.under("invoices").values())
        assert invoices[0]["invoiceNumber"] == result["invoiceNumber"]
        assert invoices[0]["total"] == 2500

    async def test_tampered_signature_changes_nothing(self, fake_db, secret):
        fake_db.put("projects/p1", {"status": "in_review", "amountPaid": 500})
        with pytest.raises(SignatureError):
            await verify_payment("o1", "pay1", "0" * 64, "p1", 500, PaymentType.FINAL)
        assert fake_db.read("projects/p1") == {"status": "in_review", "amountPaid": 500}
        assert fake_db.writes == []

    async def test_missing_secret_fails_closed(self, fake_db, monkeypatch):
        monkeypatch.delenv("RAZORPAY_KEY_SECRET", raising=False)
        fake_db.put("projects/p1", {"amountPaid": 0})
        with pytest.raises(ConfigurationError):
            await verify_payment("o1", "pay1", generate_signature("o1", "pay1", ""), "p1", 100, None)
        assert fake_db.read("projects/p1") == {"amountPaid": 0}

    async def test_missing_fields(self, secret):
        with pytest.raises(ValidationError):
            await verify_payment("o1", None, "sig", "p1", 100, None)

    async def test_concurrent_installments_add_up(self, fake_db, secret):
        fake_db.put("projects/p1", {"status": "active", "amountPaid": 0})
        await asyncio.gather(
            verify_payment("o1", "pay1", generate_signature("o1", "pay1", secret), "p1", 100, None),
            verify_payment("o2", "pay2", generate_signature("o2", "pay2", secret), "p1", 250, None),
        )
        assert fake_db.read("projects/p1")["amountPaid"] == 350

    async def test_final_payment_completes_project(self, fake_db, secret):
        fake_db.put("projects/p1", {"status": "approved", "amountPaid": 1000})
        result = await verify_payment("o1", "pay1", generate_signature("o1", "pay1", secret), "p1", 1000,
                                      PaymentType.FINAL)
        project = fake_db.read("projects/p1")
        assert result["status"] == "completed"
        assert project["paymentStatus"] == "full_paid"
        assert project["amountPaid"] == 2000

    async def test_credit_kept_when_status_move_is_illegal(self, fake_db, secret):
        fake_db.put("projects/p1", {"status": "archived", "amountPaid": 0})
        result = await verify_payment("o1", "pay1", generate_signature("o1", "pay1", secret), "p1", 300,
                                      PaymentType.FINAL)
        project = fake_db.read("projects/p1")
        assert result["status"] is None
        assert project["status"] == "archived"
        assert project["amountPaid"] == 300

    async def test_invoice_failure_does_not_fail_payment(self, fake_db, secret, monkeypatch):
        fake_db.put("projects/p1", {"status": "active", "amountPaid": 0, "clientId": "c1"})
        monkeypatch.setattr(payments, "Invoice", None)
        result = await verify_payment("o1", "pay1", generate_signature("o1", "pay1", secret), "p1", 100, None)
        assert result["success"] is True
        assert result["invoiceNumber"] is None
        assert fake_db.read("projects/p1")["amountPaid"] == 100

    async def test_initial_payment_tells_client_request_is_received(self, fake_db, secret, monkeypatch):
        sent = []

        async def notify(project_id, status, project=None):
            sent.append((project_id, status))
            return True

        monkeypatch.setattr(payments, "notify_client_quietly", notify)
        fake_db.put("projects/p1", {"status": "pending_assignment", "amountPaid": 0})
        await verify_payment("o1", "pay1", generate_signature("o1", "pay1", secret), "p1", 500, PaymentType.INITIAL)
        await verify_payment("o2", "pay2", generate_signature("o2", "pay2", secret), "p1", 500, None)
        assert sent == [("p1", "pending_assignment")]
