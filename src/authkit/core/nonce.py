"""Nonce and PKCE helpers.

Two related primitives live here:

* :class:`NonceGenerator` produces the single-use *raw nonce* embedded (as a
  SHA-256 hex digest) in a native credential request.  The identity backend
  later receives the raw value and checks it against the digest signed into the
  identity token, which prevents replay of a captured response.
* RFC 7636 *code verifier* / *S256 challenge* helpers used by the delegated
  OAuth flow.

Only :mod:`secrets` is used as a randomness source.  If the operating system
cannot provide secure randomness the underlying exception propagates; there is
no fallback to :mod:`random`.

This module intentionally performs **no logging** of nonces or verifiers.
"""

from __future__ import annotations

import base64
import secrets
from hashlib import sha256
from typing import Final

_NONCE_LEN: Final[int] = 32
# RFC-7636 §4.1 mandates the verifier length between 43 and 128 characters.
_VERIFIER_LEN: Final[int] = 64
# RFC 3986 unreserved characters (66 symbols).
_ALLOWED_CHARS: Final[str] = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "0123456789"
    "-._~"
)


def _random_urlsafe_string(length: int) -> str:
    """Return a cryptographically secure, URL-safe random string."""
    return "".join(secrets.choice(_ALLOWED_CHARS) for _ in range(length))


class NonceGenerator:
    """Generate raw nonces and their one-way digests."""

    alphabet: Final[str] = _ALLOWED_CHARS

    def generate(self, length: int = _NONCE_LEN) -> str:
        """Return a fresh raw nonce of *length* characters.

        Parameters
        ----------
        length:
            Number of characters, must be positive (default 32).
        """
        if length <= 0:
            raise ValueError("nonce length must be positive")
        return _random_urlsafe_string(length)

    @staticmethod
    def digest(raw_nonce: str) -> str:
        """Return the SHA-256 hex digest of *raw_nonce*."""
        return sha256(raw_nonce.encode("utf-8")).hexdigest()


def generate_code_verifier(length: int = _VERIFIER_LEN) -> str:
    """Generate a high-entropy PKCE code verifier (43-128 characters)."""
    if not 43 <= length <= 128:
        raise ValueError("code verifier length must be 43-128 characters")
    return _random_urlsafe_string(length)


def code_challenge_s256(verifier: str) -> str:
    """Compute the *S256* PKCE code challenge for a given verifier.

    Returns
    -------
    str
        Base64url-encoded SHA-256 hash without padding.
    """
    digest = sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
