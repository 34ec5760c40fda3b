"""Publish/subscribe wrapper around Firestore snapshot listeners.

Firestore delivers ``on_snapshot`` callbacks on a background thread. A
:class:`Subscription` serializes those deliveries and, once cancelled,
drops anything still in flight. ``cancel()`` returns only after any
running delivery has finished, so the caller can open a replacement
subscription without the old one ever reporting again.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

from squadpay.errors import SubscriptionError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle for one live query or document listener."""

    def __init__(self, name: str = "", on_error: ErrorCallback | None = None) -> None:
        self.name = name
        self._on_error = on_error
        self._lock = threading.RLock()
        self._active = True
        self._watch: Any = None

    @property
    def active(self) -> bool:
        return self._active

    def attach(self, watch: Any) -> None:
        """Remember the SDK watch so cancel() can unsubscribe it."""
        with self._lock:
            if self._active:
                self._watch = watch
                return
        # Cancelled while the listener was being registered.
        watch.unsubscribe()

    def deliver(self, callback: Callable[..., None], *args: Any) -> bool:
        """Run ``callback`` unless the subscription has been cancelled."""
        with self._lock:
            if not self._active:
                return False
            callback(*args)
            return True

    def fail(self, error: Exception) -> None:
        """Report a terminal SubscriptionError, then stop listening."""
        logger.error(f"Live query {self.name or '<unnamed>'} failed: {error}")
        if not isinstance(error, SubscriptionError):
            wrapped = SubscriptionError(str(error))
            wrapped.__cause__ = error
            error = wrapped
        if self._on_error is not None:
            self.deliver(self._on_error, error)
        self.cancel()

    def poll(self) -> bool:
        """Fail the subscription if its watch has shut down; return whether it is live.

        The SDK closes a ``Watch`` on an unrecoverable stream error without
        calling back into user code, so callers poll between deliveries.
        """
        with self._lock:
            if not self._active:
                return False
            watch = self._watch
        if watch is not None and getattr(watch, "_closed", False) is True:
            self.fail(SubscriptionError("Listener was closed by the server."))
            return False
        return True

    def cancel(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
            watch, self._watch = self._watch, None
        if watch is not None:
            watch.unsubscribe()


def watch_query(
    query: Any,
    on_snapshot: Callable[[list[Any]], None],
    on_error: ErrorCallback,
    transform: Callable[[DocumentSnapshot], Any],
    name: str = "",
) -> Subscription:
    """Listen to an ordered query, delivering transformed documents."""
    subscription = Subscription(name, on_error)

    def callback(docs: list[DocumentSnapshot], changes: Any, read_time: Any) -> None:
        try:
            items = [transform(doc) for doc in docs]
        except Exception as e:
            subscription.fail(e)
            return
        subscription.deliver(on_snapshot, items)

    try:
        subscription.attach(query.on_snapshot(callback))
    except Exception as e:
        subscription.fail(e)
    return subscription


def watch_document(
    ref: DocumentReference,
    on_snapshot: Callable[[Any], None],
    on_error: ErrorCallback,
    transform: Callable[[DocumentSnapshot], Any],
    name: str = "",
) -> Subscription:
    """Listen to one document; a missing document is delivered as None."""
    subscription = Subscription(name, on_error)

    def callback(docs: list[DocumentSnapshot], changes: Any, read_time: Any) -> None:
        doc = docs[0] if docs else None
        try:
            item = transform(doc) if doc is not None and doc.exists else None
        except Exception as e:
            subscription.fail(e)
            return
        subscription.deliver(on_snapshot, item)

    try:
        subscription.attach(ref.on_snapshot(callback))
    except Exception as e:
        subscription.fail(e)
    return subscription
