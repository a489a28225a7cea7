from typing import Dict, Optional
from enum import Enum
from pydantic import BaseModel

class PaymentStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"

DECLINED_ERROR_CODE = "PAYMENT_DECLINED"

class BankRedirectRequest(BaseModel):
    payment_id: str = ""
    basket_id: str = ""
    amount: str = ""
    callback_url: Optional[str] = None

class BankRedirectResult(BaseModel):
    payment_id: str
    basket_id: str
    amount: str
    status: PaymentStatus
    transaction_id: str
    reference: str
    message: str
    error_code: Optional[str] = None  # Only set on failure

    @property
    def is_success(self) -> bool:
        return self.status == PaymentStatus.SUCCESS

    def to_query(self) -> Dict[str, str]:
        params = {
            "payment_id": self.payment_id,
            "basket_id": self.basket_id,
            "amount": self.amount,
            "status": self.status.value,
            "transaction_id": self.transaction_id,
            "reference": self.reference,
            "message": self.message,
        }
        if self.error_code:
            params["error_code"] = self.error_code
        return params

class PaymentVerifyRequest(BaseModel):
    payment_id: Optional[str] = None
    basket_id: Optional[str] = None
    transaction_id: Optional[str] = None
    reference: Optional[str] = None
