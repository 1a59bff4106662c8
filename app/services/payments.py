"""
Razorpay order creation and callback verification.

An order is created before checkout; after checkout the browser posts back
(order id, payment id, signature). The signature is an HMAC-SHA256 over
"order_id|payment_id" keyed with the account secret, so it can only be
produced by Razorpay or by someone holding the secret.
"""
import os
import hmac
import time
import random
import hashlib
import logging
from typing import Optional

import httpx
from firebase_admin import firestore

from app.core.errors import ConfigurationError, GatewayError, SignatureError, ValidationError
from app.db.firestore import get_db
from app.models.base import now_ms
from app.models.payment import Invoice, InvoiceItem, PaymentType
from app.models.project import PaymentStatus, ProjectStatus
from app.services.audit import log_project_event
from app.services.whatsapp import notify_client_quietly
from app.services.workflow import can_transition

logger = logging.getLogger("editohub.payments")

CURRENCY = "INR"
MIN_AMOUNT = 1
RECEIPT_MAX_LEN = 40

# paymentType -> (project status, payment status)
INSTALLMENT_STATES = {
    PaymentType.INITIAL: (ProjectStatus.PENDING_ASSIGNMENT, PaymentStatus.HALF_PAID),
    PaymentType.FINAL: (ProjectStatus.COMPLETED, PaymentStatus.FULL_PAID),
}


class RazorpayClient:
    """Thin client for the Razorpay Orders API (basic auth with key id/secret)."""

    def __init__(self, key_id: str, key_secret: str, base_url: str = "https://api.razorpay.com/v1", timeout: float = 30.0):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def create_order(self, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/orders",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
        except httpx.HTTPError as e:
            logger.error(f"Razorpay unreachable: {e}")
            raise GatewayError("Error creating order", details={"reason": str(e)})

        if response.status_code >= 400:
            logger.error(f"Razorpay rejected order ({response.status_code}): {response.text}")
            raise GatewayError("Error creating order", details={"status": response.status_code})
        return response.json()


def get_gateway() -> RazorpayClient:
    key_id = os.getenv("RAZORPAY_KEY_ID")
    key_secret = os.getenv("RAZORPAY_KEY_SECRET")
    if not key_id or not key_secret:
        raise ConfigurationError("Server configuration error")
    return RazorpayClient(key_id, key_secret, os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1"))


def to_minor_units(amount: float) -> int:
    """Razorpay takes amounts in paise."""
    return int(round(amount * 100))


def build_receipt(project_id: str, now: Optional[float] = None) -> str:
    """
    rcpt_<first 15 chars of project id>_<last 6 digits of epoch millis>.
    Two orders for one project inside the same 6-digit window can collide.
    """
    millis = str(int((now if now is not None else time.time()) * 1000))
    return f"rcpt_{project_id[:15]}_{millis[-6:]}"[:RECEIPT_MAX_LEN]


async def create_order(amount: Optional[float], project_id: Optional[str], gateway: Optional[RazorpayClient] = None) -> dict:
    if amount is None or not project_id:
        raise ValidationError("Missing required fields")
    if amount < MIN_AMOUNT:
        raise ValidationError("Amount must be at least ₹1", field="amount")

    payload = {
        "amount": to_minor_units(amount),
        "currency": CURRENCY,
        "receipt": build_receipt(project_id),
        "notes": {"projectId": project_id},
    }
    gateway = gateway or get_gateway()
    order = await gateway.create_order(payload)
    logger.info(f"Created order {order.get('id')} for project {project_id}")
    return order


def generate_signature(order_id: str, payment_id: str, secret: str) -> str:
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def signature_matches(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    expected = generate_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode(), (signature or "").encode())


async def verify_payment(order_id: Optional[str], payment_id: Optional[str], signature: Optional[str],
                         project_id: Optional[str], amount: Optional[float], payment_type: Optional[PaymentType]) -> dict:
    """
    Credits a project once the gateway callback is proven authentic.

    Nothing is written unless the signature matches. The credit is an increment
    so concurrent installments add up. The project update and the invoice are
    separate writes; if the invoice fails the payment still stands.
    """
    if not order_id or not payment_id or not signature or not project_id:
        logger.error("Missing fields in verification request")
        raise ValidationError("Missing required fields")
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be positive", field="amount")

    secret = os.getenv("RAZORPAY_KEY_SECRET")
    if not secret:
        logger.error("RAZORPAY_KEY_SECRET is not set")
        raise ConfigurationError("Server configuration error")

    if not signature_matches(order_id, payment_id, signature, secret):
        logger.warning(f"Signature mismatch for order {order_id} on project {project_id}")
        raise SignatureError("Invalid signature")

    logger.info(f"Verified payment {payment_id} for project {project_id}, amount {amount}")

    db = get_db()
    project_ref = db.collection("projects").document(project_id)
    update_data = {
        "amountPaid": firestore.Increment(amount),
        "razorpayPaymentId": payment_id,
        "updatedAt": now_ms(),
    }

    if payment_type in INSTALLMENT_STATES:
        target_status, payment_status = INSTALLMENT_STATES[payment_type]
        update_data["paymentStatus"] = payment_status.value

        snapshot = project_ref.get()
        current = snapshot.to_dict().get("status") if snapshot.exists else None
        if can_transition(current, target_status.value):
            update_data["status"] = target_status.value
        else:
            # The money is captured either way; only the status move is refused.
            logger.warning(f"Payment on project {project_id} cannot move it from {current} to {target_status.value}")

    project_ref.update(update_data)
    await log_project_event(project_id, "PAYMENT_VERIFIED", "system", "Razorpay",
                            f"{payment_type.value if payment_type else 'ad-hoc'} payment of {amount} ({payment_id})")

    invoice_number = await generate_invoice(project_id, amount, payment_type, order_id, payment_id)
    if payment_type == PaymentType.INITIAL:
        # Upfront payment means the request is received; the status usually does not change here
        await notify_client_quietly(project_id, ProjectStatus.PENDING_ASSIGNMENT.value)
    return {"success": True, "status": update_data.get("status"), "invoiceNumber": invoice_number}


async def generate_invoice(project_id: str, amount: float, payment_type: Optional[PaymentType],
                           order_id: str, payment_id: str) -> Optional[str]:
    """Best effort: a failure here is logged and never blocks the payment response."""
    try:
        db = get_db()
        project_doc = db.collection("projects").document(project_id).get()
        project = project_doc.to_dict() if project_doc.exists else None
        if not project or not project.get("clientId"):
            return None

        client_doc = db.collection("users").document(project["clientId"]).get()
        client = client_doc.to_dict() if client_doc.exists else {}

        if payment_type == PaymentType.INITIAL:
            description = f"Upfront Payment for Project: {project.get('name')}"
        elif payment_type == PaymentType.FINAL:
            description = f"Final Balance for Project: {project.get('name')}"
        else:
            description = f"Payment for Project: {project.get('name')}"

        invoice = Invoice(
            invoice_number=f"INV-{str(now_ms())[-6:]}-{random.randint(0, 99)}",
            project_id=project_id,
            client_id=project["clientId"],
            client_name=client.get("displayName") or project.get("clientName") or "Client",
            client_email=client.get("email") or "Unknown",
            items=[InvoiceItem(description=description, quantity=1, rate=amount, amount=amount)],
            subtotal=amount,
            total=amount,
            notes=f"Auto-generated via Razorpay Payment (ID: {payment_id})",
            razorpay_order_id=order_id,
            razorpay_payment_id=payment_id,
        )
        db.collection("invoices").add(invoice.to_document())
        logger.info(f"Auto-generated invoice: {invoice.invoice_number}")
        return invoice.invoice_number
    except Exception as e:
        logger.error(f"Failed to auto-generate invoice for {project_id}: {e}")
        return None
