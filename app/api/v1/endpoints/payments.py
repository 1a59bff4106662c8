from fastapi import APIRouter, Depends

from app.api.v1.endpoints.auth import get_current_user, require
from app.core.rbac import Action
from app.models.payment import CreateOrderRequest, VerifyPaymentRequest
from app.services import payments

router = APIRouter()


@router.post("/create-order")
async def create_order(body: CreateOrderRequest, current_user: dict = Depends(get_current_user)):
    """Creates a Razorpay order; the response is the gateway's order object."""
    require(current_user, Action.MAKE_PAYMENT)
    return await payments.create_order(body.amount, body.project_id)


@router.post("/verify-payment")
async def verify_payment(body: VerifyPaymentRequest, current_user: dict = Depends(get_current_user)):
    """Checks the checkout signature and credits the project."""
    return await payments.verify_payment(
        order_id=body.razorpay_order_id,
        payment_id=body.razorpay_payment_id,
        signature=body.razorpay_signature,
        project_id=body.project_id,
        amount=body.amount,
        payment_type=body.payment_type,
    )
