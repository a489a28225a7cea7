import logging
from dataclasses import dataclass
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class CartChanged:
    item_count: int

Listener = Callable[[CartChanged], None]

class CartEventBus:
    """
    Synchronous publish/subscribe channel owned by one cart store.

    Delivery is fire-and-forget: listeners registered at publish time are
    called once each, in registration order. Nothing is queued.
    """

    def __init__(self):
        self._subscriptions: List[Tuple[object, Listener]] = []

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        token = object()
        self._subscriptions.append((token, listener))

        def unsubscribe():
            # Unknown tokens are ignored, so a second call is harmless
            self._subscriptions = [s for s in self._subscriptions if s[0] is not token]

        return unsubscribe

    def publish(self, event: CartChanged) -> None:
        for _, listener in list(self._subscriptions):
            try:
                listener(event)
            except Exception:
                logger.exception("Cart listener %r failed", listener)
