"""HTTP wiring for hosts that receive the OAuth redirect over HTTP."""

from __future__ import annotations

from .redirect import auth_routes, create_app  # noqa: F401

__all__ = ["auth_routes", "create_app"]
