import json
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from pydantic import ValidationError

from app.core.config import settings
from app.models.cart import CartItem, CartItemCreate, ItemType, cart_key
from app.services.events import CartChanged, CartEventBus
from app.services.storage import CartStorage

logger = logging.getLogger(__name__)

def item_from_record(record: dict) -> CartItem:
    """
    Build a CartItem from a stored or backend record.

    Accepts the unified shape (item_type/item_id/title/price/cover_url) and
    the older per-type shapes (course_id/course_title/... and
    product_id/product_title/...). Raises ValueError on anything else.
    """
    if not isinstance(record, dict):
        raise ValueError(f"Cart record must be an object, got {type(record).__name__}")

    data = dict(record)
    for item_type in ItemType:
        prefix = item_type.value
        if data.get("item_id") is None and data.get(f"{prefix}_id") is not None:
            data.setdefault("item_type", item_type)
            data["item_id"] = data[f"{prefix}_id"]
            data.setdefault("title", data.get(f"{prefix}_title"))
            data.setdefault("price", data.get(f"{prefix}_price"))
            data.setdefault("cover_url", data.get(f"{prefix}_cover"))
    if data.get("added_at") is None:
        data.pop("added_at", None)

    try:
        return CartItem.model_validate(data)
    except ValidationError as e:
        raise ValueError(str(e)) from e

class LocalCartStore:
    """
    Browser-scoped cart kept in a key/value storage port.

    Every mutation re-reads the persisted value first (last write wins) and
    publishes CartChanged on the store's own event bus.
    """

    def __init__(
        self,
        storage: CartStorage,
        events: Optional[CartEventBus] = None,
        storage_key: str = settings.CART_STORAGE_KEY,
        sync_key: str = settings.CART_SYNC_KEY,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.events = events or CartEventBus()
        self.storage_key = storage_key
        self.sync_key = sync_key
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_cart(self) -> List[CartItem]:
        raw = self.storage.get(self.storage_key)
        if not raw:
            return []
        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise ValueError("Cart payload is not a list")
            return [item_from_record(record) for record in records]
        except ValueError as e:
            # Corrupt payloads read as an empty cart
            logger.warning("Ignoring corrupt cart payload under %r: %s", self.storage_key, e)
            return []

    def add_item(self, item: CartItemCreate) -> bool:
        cart = self.get_cart()
        if any(existing.key == item.key for existing in cart):
            return False

        cart.append(CartItem(**item.model_dump(exclude={"added_at"}), added_at=self.clock()))
        self._write(cart)
        return True

    def remove_item(self, item_id: int, item_type: ItemType = ItemType.COURSE) -> None:
        key = cart_key(item_id, item_type)
        cart = [item for item in self.get_cart() if item.key != key]
        self._write(cart)

    def clear(self) -> None:
        self.storage.remove(self.storage_key)
        self.storage.remove(self.sync_key)
        self._publish(0)

    def replace(self, items: Iterable[CartItem]) -> None:
        self._write(list(items), mark_unsynced=False)

    def item_count(self) -> int:
        return len({item.key for item in self.get_cart()})

    def is_in_cart(self, item_id: int, item_type: ItemType = ItemType.COURSE) -> bool:
        key = cart_key(item_id, item_type)
        return any(item.key == key for item in self.get_cart())

    def total(self) -> float:
        return sum(item.price for item in self.get_cart())

    def is_synced(self) -> bool:
        return self.storage.get(self.sync_key) == "true"

    def mark_synced(self) -> None:
        self.storage.set(self.sync_key, "true")

    def _write(self, cart: List[CartItem], mark_unsynced: bool = True) -> None:
        payload = json.dumps([item.model_dump(mode="json") for item in cart])
        self.storage.set(self.storage_key, payload)
        if mark_unsynced:
            self.storage.remove(self.sync_key)
        self._publish(len(cart))

    def _publish(self, item_count: int) -> None:
        self.events.publish(CartChanged(item_count=item_count))
