# backend/utils/bus.py
import enum
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)


class Topic(str, enum.Enum):
    CART_CHANGED = "cartChanged"
    WISHLIST_CHANGED = "wishlistChanged"
    CATEGORIES_CHANGED = "categoriesChanged"


Handler = Callable[[], Union[None, Awaitable[Any]]]


def _as_topic(topic: Union[Topic, str]) -> Topic:
    try:
        return Topic(topic)
    except ValueError:
        raise ValueError(f"Unknown topic: {topic!r}") from None


class InvalidationBus:
    """
    Process-wide publish/subscribe for "this slice may have changed" signals.

    Signals carry no payload; subscribers re-read their own data. Handlers may
    be plain callables or coroutine functions. Delivery order is not defined.
    """

    def __init__(self):
        self._handlers: Dict[Topic, List[Handler]] = {t: [] for t in Topic}
        self.published: Dict[Topic, int] = {t: 0 for t in Topic}

    def subscribe(self, topic: Union[Topic, str], handler: Handler) -> Callable[[], None]:
        key = _as_topic(topic)
        self._handlers[key].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[key]:
                self._handlers[key].remove(handler)

        return unsubscribe

    def subscriber_count(self, topic: Union[Topic, str]) -> int:
        return len(self._handlers[_as_topic(topic)])

    async def publish(self, topic: Union[Topic, str]) -> None:
        key = _as_topic(topic)
        self.published[key] += 1
        # Copy: handlers may unsubscribe while being notified
        for handler in list(self._handlers[key]):
            try:
                result = handler()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Subscriber for {key.value} failed")
        logger.debug(f"Published {key.value} to {len(self._handlers[key])} subscriber(s)")


bus = InvalidationBus()
