"""Configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Final

logger = logging.getLogger("authkit.utils.environment")

_PREFIX: Final[str] = "AUTHKIT_"

DEFAULT_IDENTITY_TOOLKIT_URL: Final[str] = "https://identitytoolkit.googleapis.com/v1"
DEFAULT_GOOGLE_SCOPES: Final[tuple[str, ...]] = ("openid", "email", "profile")


def _env(key: str) -> str | None:
    """Return ``AUTHKIT_<key>`` stripped, or ``None`` when unset/blank."""
    value = os.getenv(_PREFIX + key)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_number(key: str, default: float, *, integer: bool = False) -> float:
    raw = _env(key)
    if raw is None:
        return default
    try:
        value = int(raw) if integer else float(raw)
    except ValueError:
        raise ValueError(f"{_PREFIX}{key} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{_PREFIX}{key} must be positive")
    return value


@dataclass(frozen=True)
class AuthKitConfig:
    """Settings for the concrete backend, the Google client and the HTTP layer.

    Use :meth:`from_env` in applications; construct directly in tests.
    """

    firebase_api_key: str | None = None
    identity_toolkit_url: str = DEFAULT_IDENTITY_TOOLKIT_URL
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_redirect_uri: str | None = None
    google_scopes: tuple[str, ...] = DEFAULT_GOOGLE_SCOPES
    state_secret: str = ""
    nonce_length: int = 32
    http_timeout: float = 20.0
    redirect_timeout: float = 600.0

    @classmethod
    def from_env(cls) -> AuthKitConfig:
        """Read ``AUTHKIT_*`` variables.

        Raises
        ------
        ValueError
            If a numeric variable is not a positive number.
        """
        state_secret = _env("STATE_HMAC_SECRET")
        if not state_secret:
            # Transient secret: redirects in flight are lost on process restart.
            state_secret = uuid.uuid4().hex
            logger.warning(
                "Environment variable %sSTATE_HMAC_SECRET not set - generated transient secret.",
                _PREFIX,
            )
        scopes_raw = _env("GOOGLE_SCOPES")
        config = cls(
            firebase_api_key=_env("FIREBASE_API_KEY"),
            identity_toolkit_url=(
                _env("IDENTITY_TOOLKIT_URL") or DEFAULT_IDENTITY_TOOLKIT_URL
            ).rstrip("/"),
            google_client_id=_env("GOOGLE_CLIENT_ID"),
            google_client_secret=_env("GOOGLE_CLIENT_SECRET"),
            google_redirect_uri=_env("GOOGLE_REDIRECT_URI"),
            google_scopes=tuple(scopes_raw.split()) if scopes_raw else DEFAULT_GOOGLE_SCOPES,
            state_secret=state_secret,
            nonce_length=int(_env_number("NONCE_LENGTH", 32, integer=True)),
            http_timeout=_env_number("HTTP_TIMEOUT", 20.0),
            redirect_timeout=_env_number("REDIRECT_TIMEOUT", 600.0),
        )
        if not config.is_backend_configured():
            logger.info("Identity backend is not configured (%sFIREBASE_API_KEY missing).", _PREFIX)
        if not config.is_google_configured():
            logger.info("Google sign-in is not configured or required variables are missing.")
        return config

    def is_backend_configured(self) -> bool:
        return bool(self.firebase_api_key)

    def is_google_configured(self) -> bool:
        return bool(self.google_client_id and self.google_redirect_uri)
