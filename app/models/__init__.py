# Import all models to register them with SQLModel
from app.models.cart import CartItem, CartItemCreate, CartSyncResult, ItemType
from app.models.payment import BankRedirectRequest, BankRedirectResult, PaymentStatus, PaymentVerifyRequest
from app.models.storage import StorageEntry

__all__ = [
    "CartItem",
    "CartItemCreate",
    "CartSyncResult",
    "ItemType",
    "BankRedirectRequest",
    "BankRedirectResult",
    "PaymentStatus",
    "PaymentVerifyRequest",
    "StorageEntry",
]
