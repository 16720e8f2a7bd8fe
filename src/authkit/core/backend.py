"""Contracts for the external collaborators of the auth core.

The core never talks to a network or a window system directly.  It depends on
three narrow protocols:

* :class:`IdentityBackend` – exchanges provider credentials for sessions and
  emits session-change notifications.
* :class:`DelegatedProviderSDK` – runs the delegated provider's interactive
  consent flow.
* :class:`PresentationContext` – an interactive surface supplied by the caller.

Concrete implementations live in :mod:`authkit.backends`.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from authkit.core.models import DelegatedSignInResult, ProviderCredential, Session

SessionListener = Callable[["Session | None"], None]


@runtime_checkable
class IdentityBackend(Protocol):
    """Identity service holding the authoritative session."""

    def add_session_listener(self, listener: SessionListener) -> Any: ...
    def remove_session_listener(self, handle: Any) -> None: ...

    async def exchange(self, credential: ProviderCredential) -> None: ...
    async def sign_out(self) -> None: ...
    async def delete_current_user(self) -> None: ...
    async def reauthenticate(self, credential: ProviderCredential) -> None: ...


@runtime_checkable
class PresentationContext(Protocol):
    """A live interactive surface able to show the provider's consent UI."""

    def is_live(self) -> bool: ...
    def open_url(self, url: str) -> None: ...


@runtime_checkable
class DelegatedProviderSDK(Protocol):
    """Vendor SDK driving the delegated OAuth provider."""

    async def sign_in(self, presentation: PresentationContext) -> DelegatedSignInResult: ...
    def sign_out(self) -> None: ...
    def handle_redirect(self, url: str) -> bool: ...
