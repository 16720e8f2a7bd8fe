"""State parameter helpers for the delegated OAuth redirect flow.

The *state* parameter protects the interactive sign-in against CSRF and lets
the redirect handler find the pending sign-in it belongs to.  Three values are
encoded in a compact, URL-safe string:

1. ``txn_id`` – random identifier generated when the sign-in starts
2. ``ts`` – UNIX timestamp produced by an injected :class:`~authkit.core.clock.Clock`
3. ``sig`` – HMAC-SHA256 signature of the first two fields

Format (plain text before base64-url encoding)::

    <txn_id>:<ts>:<sig>

Logging
-------
Only the (truncated) ``txn_id`` is ever logged; the full state string as well
as the HMAC secret are *never* written to logs.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
from hashlib import sha256
from typing import Final

from authkit.core.clock import Clock, default_clock, elapsed_since

_LOG = logging.getLogger("authkit.core.state")

_SIG_LEN: Final[int] = 16  # characters kept from hex digest


def _b64e(data: str) -> str:
    """Base64-URL encode *without* padding."""
    return base64.urlsafe_b64encode(data.encode("utf-8")).rstrip(b"=").decode("ascii")


def _b64d(data: str) -> str:
    """Decode base64-URL data that may lack padding."""
    pad_len = (-len(data)) % 4
    return base64.urlsafe_b64decode(data + "=" * pad_len).decode("utf-8")


def _sign(message: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), msg=message.encode(), digestmod=sha256).hexdigest()
    return digest[:_SIG_LEN]


class InvalidStateError(Exception):
    """Raised when an incoming state is missing/invalid, stale or forged."""


def build_state(txn_id: str, secret: str, *, clock: Clock = default_clock) -> str:
    """Build the state string for an authorization request.

    Parameters
    ----------
    txn_id:
        Identifier of the pending sign-in.  Must not contain ``:``.
    secret:
        Secret used to sign the state.
    clock:
        Time source; defaults to :func:`~authkit.core.clock.default_clock`.
    """
    if not txn_id or ":" in txn_id:
        raise ValueError("txn_id must be non-empty and must not contain ':'")
    payload = f"{txn_id}:{int(clock())}"
    encoded = _b64e(f"{payload}:{_sign(payload, secret)}")
    _LOG.debug("Built state for txn=%s****", txn_id[:6])
    return encoded


def parse_state(
    state: str,
    secret: str,
    *,
    max_age: float | None = None,
    clock: Clock = default_clock,
) -> tuple[str, int]:
    """Validate and decode a state received on the redirect.

    Parameters
    ----------
    state:
        The base64-url encoded state string from the redirect URL.
    secret:
        Secret used in :func:`build_state`.
    max_age:
        When given, states older than this many seconds are rejected.

    Returns
    -------
    tuple[str, int]
        ``(txn_id, ts)`` on success.

    Raises
    ------
    InvalidStateError
        If the state is malformed, stale or the signature does not validate.
    """
    try:
        decoded = _b64d(state)
    except (ValueError, binascii.Error):
        raise InvalidStateError("state cannot be decoded") from None

    parts = decoded.split(":")
    if len(parts) != 3:
        raise InvalidStateError("state has an unexpected format")

    txn_id, ts_str, sig = parts
    if not txn_id or not ts_str.isdigit():
        raise InvalidStateError("state missing fields")

    expected_sig = _sign(f"{txn_id}:{ts_str}", secret)
    if not hmac.compare_digest(sig, expected_sig):
        raise InvalidStateError("state signature mismatch")

    ts = int(ts_str)
    if max_age is not None and elapsed_since(ts, clock=clock) > max_age:
        raise InvalidStateError("state expired")

    _LOG.debug("Parsed state for txn=%s****", txn_id[:6])
    return txn_id, ts
