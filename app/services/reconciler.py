import logging
from typing import List, Optional

from app.models.cart import CartItem, CartKey
from app.services.cart import LocalCartStore
from app.services.server_cart import ServerCartClient, ServerCartError

logger = logging.getLogger(__name__)

def merge_carts(local: List[CartItem], server: List[CartItem]) -> List[CartItem]:
    """Server items first, then local items the server lacks. Server copy wins on a shared key."""
    merged: List[CartItem] = []
    seen = set()
    for item in list(server) + list(local):
        if item.key in seen:
            continue
        seen.add(item.key)
        merged.append(item)
    return merged

class CartReconciler:
    """
    Merges the local cart with the account's server cart once per login.

    The local store is only written after the server accepted the merged
    cart, so an aborted run leaves it untouched.
    """

    def __init__(self, store: LocalCartStore, client: ServerCartClient, was_authenticated: bool = False):
        self.store = store
        self.client = client
        self._was_authenticated = was_authenticated
        self.last_removed: List[CartKey] = []

    @property
    def was_authenticated(self) -> bool:
        return self._was_authenticated

    def on_auth_state(self, is_authenticated: bool) -> Optional[List[CartItem]]:
        """Run reconciliation on an unauthenticated -> authenticated transition only."""
        transitioned = is_authenticated and not self._was_authenticated
        self._was_authenticated = is_authenticated
        if not transitioned:
            return None
        return self.reconcile()

    def reconcile(self) -> Optional[List[CartItem]]:
        local = self.store.get_cart()
        try:
            server = self.client.fetch_cart()
            merged = merge_carts(local, server)
            result = self.client.push_cart(merged)
        except ServerCartError as e:
            logger.warning("Cart reconciliation aborted, keeping local cart: %s", e)
            return None

        if not result.authorized:
            logger.info("Cart reconciliation skipped: no authorized session")
            return None

        removed = set(result.removed_items)
        final = [item for item in merged if item.key not in removed]

        self.store.replace(final)
        self.store.mark_synced()
        self.last_removed = list(result.removed_items)
        if removed:
            logger.info("Server dropped %d cart item(s): %s", len(removed), sorted(removed))
        return final

def sync_to_server(store: LocalCartStore, client: ServerCartClient) -> bool:
    """Push the local cart as-is. Returns False when the push did not go through."""
    cart = store.get_cart()
    if not cart:
        store.mark_synced()
        return True

    try:
        result = client.push_cart(cart)
    except ServerCartError as e:
        logger.warning("Cart sync failed: %s", e)
        return False
    if not result.authorized:
        return False

    for item_type, item_id in result.removed_items:
        store.remove_item(item_id, item_type)
    store.mark_synced()
    return True
