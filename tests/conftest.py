"""Shared fixtures: in-memory fakes for the collaborators of the auth core."""

from __future__ import annotations

import itertools
from typing import Any

import pytest

from authkit.core.models import DelegatedSignInResult, ProviderId, Session
from authkit.core.orchestrator import AuthOrchestrator
from authkit.core.providers import DelegatedOAuthAdapter, NativeCredentialAdapter


class FakeBackend:
    """IdentityBackend double that notifies listeners like the real service."""

    def __init__(self) -> None:
        self.session: Session | None = None
        self.notify_initial = True
        self.listeners: dict[int, Any] = {}
        self.removed: list[int] = []
        self.calls: list[tuple[str, Any]] = []
        self.exchange_error: Exception | None = None
        self.sign_out_error: Exception | None = None
        self.reauth_error: Exception | None = None
        self.delete_errors: list[Exception] = []
        self._keys = itertools.count()

    def add_session_listener(self, listener: Any) -> int:
        handle = next(self._keys)
        self.listeners[handle] = listener
        if self.notify_initial:
            listener(self.session)
        return handle

    def remove_session_listener(self, handle: int) -> None:
        self.removed.append(handle)
        self.listeners.pop(handle, None)

    def emit(self, session: Session | None) -> None:
        self.session = session
        for listener in list(self.listeners.values()):
            listener(session)

    async def exchange(self, credential: Any) -> None:
        self.calls.append(("exchange", credential))
        if self.exchange_error:
            raise self.exchange_error
        self.emit(Session(user_id="u1", provider_id=credential.provider_id))

    async def sign_out(self) -> None:
        self.calls.append(("sign_out", None))
        if self.sign_out_error:
            raise self.sign_out_error
        self.emit(None)

    async def delete_current_user(self) -> None:
        self.calls.append(("delete", None))
        if self.delete_errors:
            raise self.delete_errors.pop(0)
        self.emit(None)

    async def reauthenticate(self, credential: Any) -> None:
        self.calls.append(("reauthenticate", credential))
        if self.reauth_error:
            raise self.reauth_error

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


class FakeSDK:
    """DelegatedProviderSDK double returning a canned result."""

    def __init__(self) -> None:
        self.result = DelegatedSignInResult(id_token="g-id", access_token="g-access")
        self.error: Exception | None = None
        self.sign_out_error: Exception | None = None
        self.sign_in_calls = 0
        self.signed_out = False
        self.redirects: list[str] = []
        self.redirect_handled = True

    async def sign_in(self, presentation: Any) -> DelegatedSignInResult:
        self.sign_in_calls += 1
        if self.error:
            raise self.error
        return self.result

    def sign_out(self) -> None:
        if self.sign_out_error:
            raise self.sign_out_error
        self.signed_out = True

    def handle_redirect(self, url: str) -> bool:
        self.redirects.append(url)
        return self.redirect_handled


class FakePresentation:
    def __init__(self, live: bool = True) -> None:
        self.live = live
        self.opened: list[str] = []

    def is_live(self) -> bool:
        return self.live

    def open_url(self, url: str) -> None:
        self.opened.append(url)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sdk() -> FakeSDK:
    return FakeSDK()


@pytest.fixture
def presentation() -> FakePresentation:
    return FakePresentation()


@pytest.fixture
def native() -> NativeCredentialAdapter:
    return NativeCredentialAdapter()


@pytest.fixture
def orchestrator(
    backend: FakeBackend, native: NativeCredentialAdapter, sdk: FakeSDK
) -> AuthOrchestrator:
    orch = AuthOrchestrator(backend, native, DelegatedOAuthAdapter(sdk))
    yield orch
    orch.close()


@pytest.fixture
def google_session() -> Session:
    return Session(user_id="g-user-1", provider_id=ProviderId.GOOGLE, email="a@example.com")


@pytest.fixture
def apple_session() -> Session:
    return Session(user_id="a-user-1", provider_id=ProviderId.APPLE)
