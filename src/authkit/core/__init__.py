"""Authentication-session core package.

This namespace hosts the **transport-agnostic** building blocks that mediate
sign-in, sign-out and account deletion across identity providers.

Sub-modules
-----------
clock
    Test-friendly time abstraction.
nonce
    Replay-protection nonces and PKCE helpers.
state
    Signed ``state`` parameter encoding / validation.
models
    Immutable dataclasses for sessions, credentials, flow errors and state.
errors
    Exception types raised by collaborators and provider adapters.
store
    Observable session store.
backend
    Protocols for the identity backend, provider SDK and presentation context.
providers
    Native-credential and delegated-OAuth adapters.
orchestrator
    The session state machine.
log_utils
    Structured logging helpers (thin wrapper around :mod:`logging`).

All public objects are re-exported here for convenience.
"""

from __future__ import annotations

from .clock import Clock, default_clock, elapsed_since  # noqa: F401
from .nonce import NonceGenerator, code_challenge_s256, generate_code_verifier  # noqa: F401
from .state import InvalidStateError, build_state, parse_state  # noqa: F401
from .models import (  # noqa: F401
    AppleCredential,
    AuthPhase,
    AuthState,
    DelegatedSignInResult,
    FlowError,
    FlowErrorKind,
    GoogleCredential,
    NativeAuthorization,
    NativeAuthorizationFailure,
    NativeRequest,
    PendingNonce,
    ProviderCredential,
    ProviderId,
    Session,
)
from .errors import (  # noqa: F401
    AuthFlowError,
    BackendError,
    InvalidCredentialError,
    PresentationUnavailableError,
    ProviderError,
    ProviderFailureError,
    RequiresRecentAuthError,
)
from .store import Observable, SessionStore, SessionSubscription  # noqa: F401
from .backend import DelegatedProviderSDK, IdentityBackend, PresentationContext  # noqa: F401
from .providers import DelegatedOAuthAdapter, NativeCredentialAdapter  # noqa: F401
from .orchestrator import AuthOrchestrator  # noqa: F401
from .log_utils import get_auth_logger  # noqa: F401

__all__ = [
    # clock
    "Clock",
    "default_clock",
    "elapsed_since",
    # nonce / pkce
    "NonceGenerator",
    "generate_code_verifier",
    "code_challenge_s256",
    # state
    "build_state",
    "parse_state",
    "InvalidStateError",
    # models
    "AppleCredential",
    "AuthPhase",
    "AuthState",
    "DelegatedSignInResult",
    "FlowError",
    "FlowErrorKind",
    "GoogleCredential",
    "NativeAuthorization",
    "NativeAuthorizationFailure",
    "NativeRequest",
    "PendingNonce",
    "ProviderCredential",
    "ProviderId",
    "Session",
    # errors
    "AuthFlowError",
    "BackendError",
    "InvalidCredentialError",
    "PresentationUnavailableError",
    "ProviderError",
    "ProviderFailureError",
    "RequiresRecentAuthError",
    # store
    "Observable",
    "SessionStore",
    "SessionSubscription",
    # collaborator contracts
    "DelegatedProviderSDK",
    "IdentityBackend",
    "PresentationContext",
    # adapters & orchestrator
    "DelegatedOAuthAdapter",
    "NativeCredentialAdapter",
    "AuthOrchestrator",
    # logging helpers
    "get_auth_logger",
]
