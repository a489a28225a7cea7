import html
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse

from app.core.config import settings
from app.models.payment import BankRedirectRequest, PaymentStatus, PaymentVerifyRequest
from app.routers.auth import get_current_session_optional, get_session_token, get_store_id
from app.routers.cart import get_local_store
from app.services.cart import LocalCartStore
from app.services.payment import (
    MockBankGateway,
    PaymentError,
    get_payment_details,
    parse_callback,
    verify_payment,
)
from app.services.session import SessionPayload

logger = logging.getLogger(__name__)

router = APIRouter()
pages_router = APIRouter()

REDIRECT_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta http-equiv="refresh" content="{delay};url={url}">
<title>Redirecting to Bank...</title>
</head>
<body>
<h2>Redirecting to Bank...</h2>
<p>Please wait while we process your payment</p>
</body>
</html>
"""

def get_bank_gateway() -> MockBankGateway:
    return MockBankGateway()

@pages_router.get("/bank-redirect", response_class=HTMLResponse)
def bank_redirect(
    payment_id: str = "",
    basket_id: str = "",
    amount: str = "",
    callback_url: Optional[str] = None,
    gateway: MockBankGateway = Depends(get_bank_gateway),
):
    """Simulated bank page: decides an outcome and bounces back to the callback"""
    request = BankRedirectRequest(
        payment_id=payment_id,
        basket_id=basket_id,
        amount=amount,
        callback_url=callback_url,
    )
    result = gateway.process(request)
    target = gateway.build_callback_url(request, result)
    return REDIRECT_PAGE.format(
        delay=settings.PAYMENT_REDIRECT_DELAY_SECONDS,
        url=html.escape(target, quote=True),
    )

@pages_router.get("/callback")
def payment_callback(
    request: Request,
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
    store: LocalCartStore = Depends(get_local_store),
):
    """Bank return point: verify a successful payment and empty the cart"""
    params = parse_callback(request.query_params)
    status = params["status"]
    if not status:
        return {"success": False, "error": "Invalid payment status"}

    if status != PaymentStatus.SUCCESS.value:
        return {
            "success": False,
            "error": params["message"] or "Payment failed",
            "error_code": params["error_code"],
            "transaction_id": params["transaction_id"],
        }

    try:
        verify_payment(session, PaymentVerifyRequest(
            payment_id=params["payment_id"],
            basket_id=params["basket_id"],
            transaction_id=params["transaction_id"],
            reference=params["reference"],
        ))
    except PaymentError as e:
        logger.warning("Payment %s could not be verified: %s", params["payment_id"], e.message)
        return {"success": False, "error": e.message}

    store.clear()
    return {
        "success": True,
        "message": params["message"] or "Payment completed successfully",
        "transaction_id": params["transaction_id"],
        "reference": params["reference"],
        "amount": params["amount"],
    }

@router.post("/verify")
def verify(
    data: PaymentVerifyRequest,
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
):
    """Verify a bank result and complete the payment"""
    try:
        return verify_payment(session, data)
    except PaymentError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

@router.get("/{payment_id}")
def read_payment(
    payment_id: int,
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
    token: Optional[str] = Depends(get_session_token),
    store_id: Optional[int] = Depends(get_store_id),
):
    """Get payment details from the backend"""
    if not session or not session.profile_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return get_payment_details(token, payment_id, store_id=store_id)
    except PaymentError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
