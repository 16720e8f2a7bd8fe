"""Observable, in-memory session store.

:class:`SessionStore` is the single source of truth for "who is signed in".
Only the orchestrator's backend-notification handler calls :meth:`apply`;
everything else reads :meth:`current` or :meth:`subscribe`\\ s.

Delivery rules
--------------
* ``subscribe`` invokes the callback once immediately with the current value.
* ``apply`` notifies every live subscriber synchronously, in registration
  order, before returning.
* An ``apply`` issued from *inside* a callback is queued and delivered after
  the current notification round has reached every subscriber.
* A subscriber that raises is logged and skipped; delivery continues.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from typing import Callable, Generic, TypeVar

from authkit.core.models import Session

_LOG = logging.getLogger("authkit.core.store")

T = TypeVar("T")


class SessionSubscription:
    """Handle for a registered callback; call :meth:`unsubscribe` on teardown."""

    __slots__ = ("_owner", "_key")

    def __init__(self, owner: Observable, key: int) -> None:
        self._owner: Observable | None = owner
        self._key = key

    @property
    def active(self) -> bool:
        return self._owner is not None and self._owner._has(self._key)

    def unsubscribe(self) -> None:
        """Deregister the callback.  Safe to call more than once."""
        if self._owner is not None:
            self._owner._remove(self._key)
            self._owner = None

    def __enter__(self) -> SessionSubscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class Observable(Generic[T]):
    """A value with ordered change notification."""

    def __init__(self, initial: T) -> None:
        self._value: T = initial
        self._callbacks: dict[int, Callable[[T], None]] = {}
        self._keys = itertools.count()
        self._notifying = False
        self._deferred: deque[T] = deque()

    def current(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> SessionSubscription:
        key = next(self._keys)
        self._callbacks[key] = callback
        self._deliver(callback, self._value)
        return SessionSubscription(self, key)

    def apply(self, value: T) -> None:
        if self._notifying:
            self._deferred.append(value)
            return
        self._notifying = True
        try:
            self._set_and_notify(value)
            while self._deferred:
                self._set_and_notify(self._deferred.popleft())
        finally:
            self._notifying = False

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    # ---------------- internal helpers --------------------------------- #
    def _set_and_notify(self, value: T) -> None:
        self._value = value
        # snapshot: callbacks may unsubscribe themselves
        for key, callback in list(self._callbacks.items()):
            if key in self._callbacks:
                self._deliver(callback, value)

    def _deliver(self, callback: Callable[[T], None], value: T) -> None:
        try:
            callback(value)
        except Exception:  # noqa: BLE001 – one bad observer must not starve the rest
            _LOG.exception("Subscriber %r raised during notification", callback)

    def _has(self, key: int) -> bool:
        return key in self._callbacks

    def _remove(self, key: int) -> None:
        self._callbacks.pop(key, None)


class SessionStore(Observable["Session | None"]):
    """Holds the current :class:`~authkit.core.models.Session` (or ``None``)."""

    def __init__(self) -> None:
        super().__init__(None)
        self._initialized = False

    @property
    def initialized(self) -> bool:
        """``False`` until the backend's first notification has been applied."""
        return self._initialized

    def apply(self, value: Session | None) -> None:
        self._initialized = True
        super().apply(value)
