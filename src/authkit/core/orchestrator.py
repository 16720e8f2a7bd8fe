"""AuthOrchestrator – the session state machine.

The orchestrator ties the provider adapters, the identity backend and the
:class:`~authkit.core.store.SessionStore` together.  UI layers call the flow
entry points below and observe :attr:`AuthOrchestrator.state`; they never see
an exception.  Every flow ends in either a session change (delivered by the
backend) or a :class:`~authkit.core.models.FlowError` in ``last_error``.

Phases
------
``UNKNOWN`` until the backend's first notification, then ``SIGNED_IN`` /
``SIGNED_OUT``.  While a flow runs, the transient phase of that flow
(``AWAITING_CREDENTIAL``, ``EXCHANGING_CREDENTIAL``, ``REAUTH_REQUIRED``,
``REAUTHENTICATING_FOR_DELETE``) is reported instead.

At most one flow may be in flight per instance; callers serialize.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from authkit.core.backend import IdentityBackend, PresentationContext
from authkit.core.errors import AuthFlowError, RequiresRecentAuthError
from authkit.core.log_utils import get_auth_logger
from authkit.core.models import (
    AuthPhase,
    AuthState,
    FlowError,
    FlowErrorKind,
    NativeOutcome,
    NativeRequest,
    ProviderCredential,
    ProviderId,
    Session,
)
from authkit.core.providers import DelegatedOAuthAdapter, NativeCredentialAdapter
from authkit.core.store import Observable, SessionStore, SessionSubscription

_LOGGER_NAME = "authkit.core.orchestrator"
_LOG = logging.getLogger(_LOGGER_NAME)


def _flow_log(**context: str | None) -> logging.LoggerAdapter:
    return get_auth_logger(base_logger_name=_LOGGER_NAME, **context)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _backend_failure(exc: BaseException) -> FlowError:
    return FlowError(FlowErrorKind.BACKEND_FAILURE, _describe(exc))


def _adapter_failure(exc: BaseException) -> FlowError:
    if isinstance(exc, AuthFlowError):
        return exc.to_flow_error()
    return FlowError(FlowErrorKind.PROVIDER_FAILURE, _describe(exc))


class AuthOrchestrator:
    """Sign-in, sign-out and account deletion across identity providers."""

    def __init__(
        self,
        backend: IdentityBackend,
        native: NativeCredentialAdapter,
        delegated: DelegatedOAuthAdapter,
        *,
        store: SessionStore | None = None,
    ) -> None:
        self._backend = backend
        self._native = native
        self._delegated = delegated
        self.store = store or SessionStore()
        self._flow_phase: AuthPhase | None = None
        self._last_error: FlowError | None = None
        self._state: Observable[AuthState] = Observable(AuthState())
        self._closed = False
        self._listener_handle: Any = backend.add_session_listener(self._on_backend_session)

    # ------------------------------------------------------------------ #
    # Observable surface                                                 #
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> AuthState:
        return self._state.current()

    @property
    def phase(self) -> AuthPhase:
        return self.state.phase

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    @property
    def is_signed_in(self) -> bool:
        return self.state.is_signed_in

    @property
    def current_user(self) -> Session | None:
        return self.state.current_user

    @property
    def last_error(self) -> FlowError | None:
        return self.state.last_error

    def subscribe(self, callback: Callable[[AuthState], None]) -> SessionSubscription:
        """Observe :class:`AuthState` snapshots (immediately, then on change)."""
        return self._state.subscribe(callback)

    # ------------------------------------------------------------------ #
    # Lifecycle                                                          #
    # ------------------------------------------------------------------ #
    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Remove the backend session listener.  Idempotent."""
        if self._closed:
            _LOG.debug("Orchestrator already closed; ignoring repeated teardown")
            return
        self._closed = True
        self._backend.remove_session_listener(self._listener_handle)
        self._listener_handle = None

    def __enter__(self) -> AuthOrchestrator:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Native credential provider                                         #
    # ------------------------------------------------------------------ #
    def start_native_sign_in(self) -> NativeRequest | None:
        """Prepare a native credential request; ``None`` if it cannot be issued."""
        self._begin(AuthPhase.AWAITING_CREDENTIAL)
        try:
            request = self._native.prepare_request()
        except ValueError as exc:
            self._finish(FlowError(FlowErrorKind.PROVIDER_FAILURE, _describe(exc)))
            return None
        _LOG.debug("Native credential request issued")
        return request

    async def complete_native_sign_in(self, outcome: NativeOutcome) -> None:
        log = _flow_log(flow="native_sign_in", provider=ProviderId.APPLE.value)
        self._begin(AuthPhase.AWAITING_CREDENTIAL)
        try:
            credential = self._native.complete_request(outcome)
        except AuthFlowError as exc:
            log.info("Native sign-in ended without credential: %s", exc.kind.value)
            self._finish(exc.to_flow_error())
            return
        await self.exchange_and_sign_in(credential)

    # ------------------------------------------------------------------ #
    # Delegated OAuth provider                                           #
    # ------------------------------------------------------------------ #
    async def sign_in_with_delegated_provider(
        self, presentation: PresentationContext | None
    ) -> None:
        log = _flow_log(flow="delegated_sign_in", provider=ProviderId.GOOGLE.value)
        self._begin(AuthPhase.AWAITING_CREDENTIAL)
        try:
            credential = await self._delegated.sign_in(presentation)
        except Exception as exc:  # broad: mapped to a published FlowError
            error = _adapter_failure(exc)
            log.info("Delegated sign-in ended without credential: %s", error.kind.value)
            self._finish(error)
            return
        await self.exchange_and_sign_in(credential)

    def handle_redirect(self, url: str) -> bool:
        """Forward the host application's URL-open callback to the provider SDK."""
        return self._delegated.handle_redirect(url)

    # ------------------------------------------------------------------ #
    # Backend exchange                                                   #
    # ------------------------------------------------------------------ #
    async def exchange_and_sign_in(self, credential: ProviderCredential) -> None:
        """Submit *credential*; the backend notifies the resulting session."""
        log = _flow_log(flow="exchange", provider=credential.provider_id.value)
        self._begin(AuthPhase.EXCHANGING_CREDENTIAL)
        try:
            await self._backend.exchange(credential)
        except Exception as exc:  # broad: mapped to BACKEND_FAILURE
            log.warning("Credential exchange failed: %s", _describe(exc))
            self._finish(_backend_failure(exc))
            return
        log.info("Credential exchanged")
        self._finish()

    # ------------------------------------------------------------------ #
    # Sign out                                                           #
    # ------------------------------------------------------------------ #
    async def sign_out(self) -> None:
        log = _flow_log(flow="sign_out", user_id=self._user_id())
        self._begin(None)
        self._finish(await self._sign_out_everywhere(log))

    async def _sign_out_everywhere(self, log: logging.LoggerAdapter) -> FlowError | None:
        """Backend first, then every provider's local state."""
        try:
            await self._backend.sign_out()
        except Exception as exc:  # broad: mapped to BACKEND_FAILURE
            log.warning("Backend sign-out failed: %s", _describe(exc))
            return _backend_failure(exc)

        for adapter in (self._native, self._delegated):
            try:
                adapter.sign_out_local()
            except Exception:  # noqa: BLE001 – provider-local sign-out is best-effort
                log.warning(
                    "Local sign-out failed for provider=%s (ignored)",
                    adapter.provider_id.value,
                    exc_info=True,
                )
        log.info("Signed out")
        return None

    # ------------------------------------------------------------------ #
    # Account deletion                                                   #
    # ------------------------------------------------------------------ #
    async def delete_account(self, presentation: PresentationContext | None = None) -> None:
        """Delete the signed-in account, re-authenticating when the backend asks.

        *presentation* is only used when the session was established with the
        delegated provider and the backend demands a fresh sign-in.
        """
        session = self.store.current()
        log = _flow_log(flow="delete_account", user_id=self._user_id())
        self._begin(None)
        if session is None:
            self._finish(
                FlowError(
                    FlowErrorKind.REAUTH_REQUIRED,
                    "No signed-in user; sign in before deleting the account.",
                )
            )
            return

        try:
            await self._backend.delete_current_user()
        except RequiresRecentAuthError:
            log.info("Deletion requires recent authentication")
            self._finish(await self._reauthenticate_and_delete(session, presentation))
            return
        except Exception as exc:  # broad: mapped to BACKEND_FAILURE
            log.warning("Account deletion failed: %s", _describe(exc))
            self._finish(_backend_failure(exc))
            return
        log.info("Account deleted")
        self._finish()

    async def _reauthenticate_and_delete(
        self, session: Session, presentation: PresentationContext | None
    ) -> FlowError | None:
        provider = session.provider_id
        log = _flow_log(
            flow="reauth_delete",
            provider=provider.value if provider else None,
            user_id=session.user_id,
        )
        self._enter(AuthPhase.REAUTH_REQUIRED)
        self._enter(AuthPhase.REAUTHENTICATING_FOR_DELETE)

        if provider is ProviderId.APPLE:
            # A native credential cannot be replayed headlessly.
            log.info("Native provider cannot re-authenticate; signing out")
            error = await self._sign_out_everywhere(log)
            return error or FlowError(
                FlowErrorKind.REAUTH_UNSUPPORTED,
                "Please sign in again with Apple, then retry account deletion.",
            )

        if provider is ProviderId.GOOGLE:
            try:
                credential = await self._delegated.sign_in(presentation)
            except Exception as exc:  # broad: mapped to REAUTH_REQUIRED
                cause = _adapter_failure(exc)
                log.info("Re-authentication did not complete: %s", cause.kind.value)
                return FlowError(
                    FlowErrorKind.REAUTH_REQUIRED,
                    f"Google re-authentication failed: {cause.message}",
                )
            try:
                await self._backend.reauthenticate(credential)
                await self._backend.delete_current_user()
            except Exception as exc:  # broad: mapped to BACKEND_FAILURE
                log.warning("Deletion after re-authentication failed: %s", _describe(exc))
                return _backend_failure(exc)
            log.info("Account deleted after re-authentication")
            return None

        log.warning("Cannot determine sign-in provider; deletion not attempted")
        return FlowError(
            FlowErrorKind.REAUTH_REQUIRED,
            "Could not determine sign-in provider for re-authentication.",
        )

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    def _on_backend_session(self, session: Session | None) -> None:
        if self._closed:
            return
        self.store.apply(session)
        self._publish()

    def _user_id(self) -> str | None:
        session = self.store.current()
        return session.user_id if session else None

    def _settled_phase(self) -> AuthPhase:
        if not self.store.initialized:
            return AuthPhase.UNKNOWN
        return AuthPhase.SIGNED_IN if self.store.current() else AuthPhase.SIGNED_OUT

    def _publish(self) -> None:
        snapshot = AuthState(
            phase=self._flow_phase or self._settled_phase(),
            current_user=self.store.current(),
            last_error=self._last_error,
            is_loading=not self.store.initialized,
        )
        if snapshot != self._state.current():
            self._state.apply(snapshot)

    def _begin(self, phase: AuthPhase | None) -> None:
        self._last_error = None
        self._flow_phase = phase
        self._publish()

    def _enter(self, phase: AuthPhase) -> None:
        self._flow_phase = phase
        self._publish()

    def _finish(self, error: FlowError | None = None) -> None:
        self._flow_phase = None
        if error is not None:
            self._last_error = error
        self._publish()
