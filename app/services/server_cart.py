import logging
from typing import Any, List, Optional

import requests

from app.core.config import settings
from app.models.cart import CartItem, CartKey, CartSyncResult, ItemType, cart_key
from app.services.cart import item_from_record

logger = logging.getLogger(__name__)

class ServerCartError(Exception):
    """Backend cart request failed (transport error or non-2xx response)"""

def _unwrap(payload: Any) -> Any:
    # Backend responses may come wrapped in an ApiEnvelope {"data": ...}
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    return payload

def normalize_server_item(row: dict) -> CartItem:
    """Convert a backend cart row into the local CartItem shape"""
    if row.get("item_type"):
        item_type = ItemType(row["item_type"])
    elif row.get("product_id") is not None or isinstance(row.get("product"), dict):
        item_type = ItemType.PRODUCT
    else:
        item_type = ItemType.COURSE

    prefix = item_type.value
    nested = row.get(prefix) if isinstance(row.get(prefix), dict) else {}
    cover = nested.get("cover") if isinstance(nested.get("cover"), dict) else {}
    price = nested.get("price")
    if price is None:
        price = row.get("price", row.get(f"{prefix}_price"))

    record = {
        "item_type": item_type,
        "item_id": row.get("item_id", row.get(f"{prefix}_id", nested.get("id"))),
        "title": nested.get("title") or row.get("title") or row.get(f"{prefix}_title"),
        "price": price,
        "cover_url": cover.get("url") or row.get("cover_url") or row.get(f"{prefix}_cover"),
        "added_at": row.get("created_at") or row.get("added_at"),
    }
    return item_from_record(record)

def parse_removed_item(entry: Any) -> CartKey:
    """
    Removed entries are either bare ids (courses, the backend's default
    line type) or objects naming the type explicitly.
    """
    if isinstance(entry, dict):
        if entry.get("item_id") is not None:
            return cart_key(entry["item_id"], entry.get("item_type") or ItemType.COURSE)
        if entry.get("product_id") is not None:
            return cart_key(entry["product_id"], ItemType.PRODUCT)
        if entry.get("course_id") is not None:
            return cart_key(entry["course_id"], ItemType.COURSE)
        raise ValueError(f"Unrecognized removed item: {entry!r}")
    return cart_key(int(entry), ItemType.COURSE)

class ServerCartClient:
    """Authenticated access to the account's cart on the backend"""

    def __init__(
        self,
        token: Optional[str],
        base_url: Optional[str] = None,
        store_id: Optional[int] = settings.DEFAULT_STORE_ID,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = settings.HTTP_TIMEOUT_SECONDS,
    ):
        self.token = token
        self.base_url = (base_url or settings.backend_api_base_url).rstrip("/")
        self.store_id = store_id
        self.http = http or requests.Session()
        self.timeout = timeout

    @property
    def is_authorized(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }
        if self.store_id:
            headers["X-Store-ID"] = str(self.store_id)
        return headers

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            return self.http.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ServerCartError(f"{method} {url} failed: {e}") from e

    def fetch_cart(self) -> List[CartItem]:
        if not self.is_authorized:
            return []

        response = self._request("GET", "/cart")
        if response.status_code == 404:
            return []
        if not response.ok:
            raise ServerCartError(f"API request failed: {response.status_code} {response.reason}")

        try:
            payload = _unwrap(response.json())
        except ValueError as e:
            raise ServerCartError(f"Invalid cart response: {e}") from e

        rows = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            return []

        items = []
        for row in rows:
            try:
                items.append(normalize_server_item(row))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping unreadable server cart row %r: %s", row, e)
        return items

    def push_cart(self, items: List[CartItem]) -> CartSyncResult:
        if not self.is_authorized:
            return CartSyncResult(message="Unauthorized", authorized=False)

        body = {"items": [item.model_dump(mode="json") for item in items]}
        response = self._request("POST", "/cart/sync", json=body)
        if response.status_code == 401:
            return CartSyncResult(message="Unauthorized", authorized=False)
        if not response.ok:
            raise ServerCartError(f"API request failed: {response.status_code} {response.reason}")

        try:
            payload = _unwrap(response.json()) if response.content else {}
        except ValueError as e:
            raise ServerCartError(f"Invalid sync response: {e}") from e
        if not isinstance(payload, dict):
            payload = {}

        removed = payload.get("removedItems", payload.get("removed_items")) or []
        try:
            removed_keys = [parse_removed_item(entry) for entry in removed]
        except (ValueError, TypeError) as e:
            raise ServerCartError(f"Invalid removed items: {e}") from e

        return CartSyncResult(
            message=payload.get("message") or "Cart synced successfully",
            removed_items=removed_keys,
        )
