from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from app.models.base import Document, now_ms


class PaymentType(str, Enum):
    INITIAL = "initial"
    FINAL = "final"


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[float] = None
    project_id: Optional[str] = Field(None, alias="projectId")


class VerifyPaymentRequest(BaseModel):
    """Body posted by the checkout page after Razorpay calls back."""
    model_config = ConfigDict(populate_by_name=True)

    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    project_id: Optional[str] = Field(None, alias="projectId")
    amount: Optional[float] = None
    payment_type: Optional[PaymentType] = Field(None, alias="paymentType")


class InvoiceItem(Document):
    description: str
    quantity: int = 1
    rate: float
    amount: float


class Invoice(Document):
    invoice_number: str
    project_id: Optional[str] = None
    client_id: str
    client_name: str
    client_email: str
    client_address: str = ""
    items: List[InvoiceItem]
    subtotal: float
    tax: float = 0
    total: float
    status: str = "paid"
    issue_date: int = Field(default_factory=now_ms)
    due_date: int = Field(default_factory=now_ms)
    notes: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
