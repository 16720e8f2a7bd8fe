"""Tests for AuthKitConfig.from_env and log masking."""

from __future__ import annotations

import logging

import pytest

from authkit.backends.google_oauth import GoogleOAuthClient
from authkit.backends.identity_toolkit import IdentityToolkitBackend
from authkit.core.nonce import NonceGenerator
from authkit.core.providers import NativeCredentialAdapter
from authkit.utils.environment import DEFAULT_IDENTITY_TOOLKIT_URL, AuthKitConfig
from authkit.utils.logging import mask_sensitive


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "FIREBASE_API_KEY",
        "IDENTITY_TOOLKIT_URL",
        "GOOGLE_CLIENT_ID",
        "GOOGLE_CLIENT_SECRET",
        "GOOGLE_REDIRECT_URI",
        "GOOGLE_SCOPES",
        "STATE_HMAC_SECRET",
        "NONCE_LENGTH",
        "HTTP_TIMEOUT",
        "REDIRECT_TIMEOUT",
    ):
        monkeypatch.delenv(f"AUTHKIT_{key}", raising=False)


def test_defaults_and_transient_secret(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="authkit.utils.environment"):
        config = AuthKitConfig.from_env()

    assert config.identity_toolkit_url == DEFAULT_IDENTITY_TOOLKIT_URL
    assert config.google_scopes == ("openid", "email", "profile")
    assert config.nonce_length == 32
    assert config.state_secret
    assert not config.is_backend_configured()
    assert not config.is_google_configured()
    assert "AUTHKIT_STATE_HMAC_SECRET not set" in caplog.text


def test_full_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTHKIT_FIREBASE_API_KEY", "fb-key")
    monkeypatch.setenv("AUTHKIT_IDENTITY_TOOLKIT_URL", "http://localhost:9099/v1/")
    monkeypatch.setenv("AUTHKIT_GOOGLE_CLIENT_ID", "cid")
    monkeypatch.setenv("AUTHKIT_GOOGLE_REDIRECT_URI", "http://localhost/auth/google/callback")
    monkeypatch.setenv("AUTHKIT_GOOGLE_SCOPES", "openid email")
    monkeypatch.setenv("AUTHKIT_STATE_HMAC_SECRET", "s3cret")
    monkeypatch.setenv("AUTHKIT_NONCE_LENGTH", "48")
    monkeypatch.setenv("AUTHKIT_HTTP_TIMEOUT", "5.5")

    config = AuthKitConfig.from_env()

    assert config.identity_toolkit_url == "http://localhost:9099/v1"
    assert config.google_scopes == ("openid", "email")
    assert config.state_secret == "s3cret"
    assert config.nonce_length == 48
    assert config.http_timeout == 5.5
    assert config.is_backend_configured() and config.is_google_configured()

    assert isinstance(IdentityToolkitBackend.from_config(config), IdentityToolkitBackend)
    google = GoogleOAuthClient.from_config(config)
    assert google.scopes == ("openid", "email")

    native = NativeCredentialAdapter.from_config(config)
    request = native.prepare_request()
    pending = native._pending  # type: ignore[attr-defined]
    assert len(pending.raw_nonce) == 48
    assert request.nonce_digest == NonceGenerator.digest(pending.raw_nonce)


@pytest.mark.parametrize("raw", ["abc", "0", "-3"])
def test_invalid_numbers_rejected(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("AUTHKIT_NONCE_LENGTH", raw)
    with pytest.raises(ValueError, match="AUTHKIT_NONCE_LENGTH"):
        AuthKitConfig.from_env()


def test_from_config_requires_settings() -> None:
    config = AuthKitConfig()
    with pytest.raises(ValueError):
        IdentityToolkitBackend.from_config(config)
    with pytest.raises(ValueError):
        GoogleOAuthClient.from_config(config)


def test_mask_sensitive() -> None:
    assert mask_sensitive(None) == "Not Provided"
    assert mask_sensitive("short") == "*****"
    assert mask_sensitive("abcdefghijkl", 4) == "abcd********"
