"""authkit – authentication-session orchestration across identity providers."""

from __future__ import annotations

__version__ = "0.1.0"
