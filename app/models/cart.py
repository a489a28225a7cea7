from typing import List, Optional, Tuple
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field

class ItemType(str, Enum):
    COURSE = "course"
    PRODUCT = "product"

CartKey = Tuple[ItemType, int]

class CartItemCreate(BaseModel):
    item_type: ItemType = ItemType.COURSE
    item_id: int

    # Display snapshots captured at add time
    title: str
    price: float = Field(ge=0)
    cover_url: Optional[str] = None

    @property
    def key(self) -> CartKey:
        return (self.item_type, self.item_id)

class CartItem(CartItemCreate):
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class CartSyncResult(BaseModel):
    message: str = ""
    removed_items: List[CartKey] = Field(default_factory=list)
    authorized: bool = True

def cart_key(item_id: int, item_type: ItemType = ItemType.COURSE) -> CartKey:
    return (ItemType(item_type), int(item_id))
