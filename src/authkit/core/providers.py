"""Provider adapters.

Each adapter turns a provider-specific interaction into a normalized
:data:`~authkit.core.models.ProviderCredential`, or raises an
:class:`~authkit.core.errors.AuthFlowError` describing why it could not.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from authkit.core.backend import DelegatedProviderSDK, PresentationContext
from authkit.core.errors import (
    InvalidCredentialError,
    PresentationUnavailableError,
    ProviderError,
    ProviderFailureError,
)
from authkit.core.models import (
    AppleCredential,
    GoogleCredential,
    NativeAuthorization,
    NativeAuthorizationFailure,
    NativeOutcome,
    NativeRequest,
    PendingNonce,
    ProviderId,
)
from authkit.core.nonce import NonceGenerator

if TYPE_CHECKING:
    from authkit.utils.environment import AuthKitConfig

_LOG = logging.getLogger("authkit.core.providers")

_NATIVE_SCOPES: Final[tuple[str, ...]] = ("full_name", "email")


class NativeCredentialAdapter:
    """Drives a platform credential request/completion cycle."""

    provider_id: Final[ProviderId] = ProviderId.APPLE

    def __init__(
        self,
        nonces: NonceGenerator | None = None,
        *,
        nonce_length: int = 32,
    ) -> None:
        self._nonces = nonces or NonceGenerator()
        self._nonce_length = nonce_length
        self._pending: PendingNonce | None = None

    @classmethod
    def from_config(
        cls, config: AuthKitConfig, *, nonces: NonceGenerator | None = None
    ) -> NativeCredentialAdapter:
        return cls(nonces, nonce_length=config.nonce_length)

    @property
    def has_pending_request(self) -> bool:
        return self._pending is not None

    def prepare_request(self) -> NativeRequest:
        """Issue a fresh nonce and return what the platform request must carry."""
        raw = self._nonces.generate(self._nonce_length)
        hashed = self._nonces.digest(raw)
        if self._pending is not None:
            _LOG.debug("Replacing stale pending nonce")
        self._pending = PendingNonce(raw_nonce=raw, hashed_nonce=hashed)
        return NativeRequest(requested_scopes=_NATIVE_SCOPES, nonce_digest=hashed)

    def complete_request(self, outcome: NativeOutcome) -> AppleCredential:
        """Consume the pending nonce and build a credential from *outcome*."""
        pending, self._pending = self._pending, None

        if isinstance(outcome, NativeAuthorizationFailure):
            raise ProviderFailureError(outcome.message, cancelled=outcome.cancelled)
        if not isinstance(outcome, NativeAuthorization):
            raise InvalidCredentialError("Apple Sign In failed: unrecognised outcome.")
        if pending is None:
            raise InvalidCredentialError("Apple Sign In failed: no request in progress.")

        token = outcome.identity_token
        if isinstance(token, bytes):
            try:
                token = token.decode("utf-8")
            except UnicodeDecodeError:
                raise InvalidCredentialError(
                    "Apple Sign In failed: invalid credentials."
                ) from None
        if not token:
            raise InvalidCredentialError("Apple Sign In failed: invalid credentials.")

        return AppleCredential(
            identity_token=token,
            raw_nonce=pending.raw_nonce,
            full_name=outcome.full_name,
        )

    def sign_out_local(self) -> None:
        self._pending = None


class DelegatedOAuthAdapter:
    """Wraps the delegated provider SDK's interactive consent flow."""

    provider_id: Final[ProviderId] = ProviderId.GOOGLE

    def __init__(self, sdk: DelegatedProviderSDK) -> None:
        self._sdk = sdk

    async def sign_in(self, presentation: PresentationContext | None) -> GoogleCredential:
        """Run the consent flow on *presentation* and return a credential."""
        if presentation is None or not presentation.is_live():
            raise PresentationUnavailableError("Cannot find a window to present sign-in.")

        try:
            result = await self._sdk.sign_in(presentation)
        except ProviderError as exc:
            raise ProviderFailureError(str(exc), cancelled=exc.cancelled) from exc

        if not result.id_token or not result.access_token:
            raise InvalidCredentialError("Google Sign In failed: missing token.")
        return GoogleCredential(id_token=result.id_token, access_token=result.access_token)

    def sign_out_local(self) -> None:
        self._sdk.sign_out()

    def handle_redirect(self, url: str) -> bool:
        return self._sdk.handle_redirect(url)
