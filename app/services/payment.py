import logging
import random
import string
import time
from typing import Callable, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from app.core.config import settings
from app.models.payment import (
    DECLINED_ERROR_CODE,
    BankRedirectRequest,
    BankRedirectResult,
    PaymentStatus,
    PaymentVerifyRequest,
)
from app.services.session import SessionPayload

logger = logging.getLogger(__name__)

DEFAULT_CALLBACK_URL = "/payment/callback"

class PaymentError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

class MockBankGateway:
    """
    Stand-in for a bank payment page. Outcomes are random and the
    transaction ids are fabricated; nothing is settled.
    """

    def __init__(
        self,
        success_rate: float = settings.MOCK_PAYMENT_SUCCESS_RATE,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.success_rate = success_rate
        self.rng = rng or random.Random()
        self.clock = clock or time.time

    def _reference(self) -> str:
        return "REF" + "".join(self.rng.choices(string.ascii_uppercase + string.digits, k=9))

    def process(self, request: BankRedirectRequest) -> BankRedirectResult:
        is_success = self.rng.random() < self.success_rate
        result = BankRedirectResult(
            payment_id=request.payment_id,
            basket_id=request.basket_id,
            amount=request.amount,
            status=PaymentStatus.SUCCESS if is_success else PaymentStatus.FAILED,
            transaction_id=f"TXN{int(self.clock() * 1000)}",
            reference=self._reference(),
            message="Payment successful" if is_success else "Payment failed",
            error_code=None if is_success else DECLINED_ERROR_CODE,
        )
        logger.info(
            "Mock bank processed payment %s (basket %s): %s",
            result.payment_id, result.basket_id, result.status.value,
        )
        return result

    def build_callback_url(self, request: BankRedirectRequest, result: BankRedirectResult) -> str:
        parts = urlsplit(request.callback_url or DEFAULT_CALLBACK_URL)
        query = dict(parse_qsl(parts.query, keep_blank_values=True))
        query.update(result.to_query())
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

def parse_callback(params: Mapping[str, str]) -> dict:
    """Read a bank result back from the callback query string"""
    return {
        "status": params.get("status"),
        "payment_id": params.get("payment_id"),
        "basket_id": params.get("basket_id"),
        "amount": params.get("amount"),
        "transaction_id": params.get("transaction_id"),
        "reference": params.get("reference"),
        "message": params.get("message"),
        "error_code": params.get("error_code"),
    }

def verify_payment(session: Optional[SessionPayload], request: PaymentVerifyRequest) -> dict:
    """
    Confirm a bank result for the current session.

    TODO: verify transaction_id with the bank and have the backend mark the
    payment completed and enroll the basket's courses; this only echoes the
    request back.
    """
    if not session or not session.profile_id:
        raise PaymentError("Unauthorized", status_code=401)
    if not request.payment_id or not request.basket_id:
        raise PaymentError("Missing required parameters")

    logger.info("Verified payment %s for profile %s", request.payment_id, session.profile_id)
    return {
        "success": True,
        "message": "Payment verified and enrollments created",
        "payment_id": request.payment_id,
        "transaction_id": request.transaction_id,
        "reference": request.reference,
    }

def get_payment_details(
    token: Optional[str],
    payment_id: int,
    store_id: Optional[int] = None,
    http: Optional[requests.Session] = None,
) -> dict:
    """Fetch a payment record from the backend on behalf of the session"""
    if not token:
        raise PaymentError("Authentication required", status_code=401)

    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "Authorization": f"Bearer {token}",
    }
    if store_id:
        headers["X-Store-ID"] = str(store_id)

    url = f"{settings.backend_api_base_url}/payments/{payment_id}"
    try:
        response = (http or requests).get(url, headers=headers, timeout=settings.HTTP_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        raise PaymentError(f"Backend API error: {e}", status_code=500) from e

    if response.status_code == 404:
        raise PaymentError("Payment not found", status_code=404)
    if not response.ok:
        raise PaymentError(f"Backend API error: {response.status_code}", status_code=500)
    return response.json()
