"""Observable properties with explicit, cancellable subscriptions."""

import logging
import threading
from typing import Any, Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChangeHandler = Callable[[Any, Any], None]


class Subscription:
    """Handle returned by ObservableProperty.subscribe.

    Cancelling is idempotent. Once cancel() returns, the handler is never
    invoked again, even for a change already being delivered on another thread.
    """

    def __init__(self, prop: "ObservableProperty", handler: ChangeHandler):
        self._prop = prop
        self._handler = handler
        self._active = True
        self._lock = threading.RLock()

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self):
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._prop._remove(self)

    def _deliver(self, old, new):
        with self._lock:
            if self._active:
                self._handler(old, new)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cancel()


class ObservableProperty(Generic[T]):
    """A value that notifies subscribers with (old, new) whenever it changes."""

    def __init__(self, name: str, initial: T):
        self.name = name
        self._value = initial
        self._subscribers: List[Subscription] = []
        self._lock = threading.Lock()

    @property
    def value(self) -> T:
        return self._value

    def set(self, new: T):
        with self._lock:
            old = self._value
            if old == new:
                return
            self._value = new
            subscribers = list(self._subscribers)
        for sub in subscribers:
            try:
                sub._deliver(old, new)
            except Exception:
                logger.exception(f"Handler for '{self.name}' failed")

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        sub = Subscription(self, handler)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _remove(self, sub: Subscription):
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)


class SubscriptionSet:
    """Collects subscriptions so they can be released together."""

    def __init__(self):
        self._subs: List[Subscription] = []

    def add(self, sub: Subscription) -> Subscription:
        self._subs.append(sub)
        return sub

    def cancel_all(self):
        subs, self._subs = self._subs, []
        for sub in subs:
            sub.cancel()

    def __len__(self):
        return len(self._subs)
