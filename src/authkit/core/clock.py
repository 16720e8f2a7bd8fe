"""Injectable time source for auth-flow deadlines.

Two deadlines in this package are measured against a :class:`Clock`:

* the age limit on a signed OAuth ``state`` (:func:`authkit.core.state.parse_state`)
* the redirect timeout for a pending interactive Google sign-in
  (:class:`authkit.backends.google_oauth.GoogleOAuthClient`)

Tests pass a frozen or stepping callable instead of patching ``time``.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Zero-argument callable giving the current UNIX time in seconds."""

    def __call__(self) -> float: ...


def default_clock() -> float:
    return time.time()


def elapsed_since(started_at: float, *, clock: Clock = default_clock) -> float:
    """Seconds between *started_at* and ``clock()``; negative if it lies ahead."""
    return clock() - started_at
