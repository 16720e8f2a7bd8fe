"""Concrete collaborators for the auth core.

identity_toolkit
    :class:`IdentityToolkitBackend` – identity backend over the Firebase
    Identity Toolkit REST API.
google_oauth
    :class:`GoogleOAuthClient` – Google sign-in (authorization code + PKCE).
"""

from __future__ import annotations

from .google_oauth import GoogleOAuthClient  # noqa: F401
from .identity_toolkit import IdentityToolkitBackend  # noqa: F401

__all__ = ["GoogleOAuthClient", "IdentityToolkitBackend"]
