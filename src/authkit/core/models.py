"""Typed, immutable records used by the auth core."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union


class ProviderId(str, enum.Enum):
    """Identity providers able to establish a session."""

    APPLE = "apple.com"
    GOOGLE = "google.com"

    @classmethod
    def parse(cls, value: str | None) -> ProviderId | None:
        """Return the member for *value* or ``None`` when unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Session:
    """The signed-in user as last reported by the identity backend."""

    user_id: str
    provider_id: ProviderId | None
    display_name: str | None = None
    email: str | None = None

    def to_payload(self) -> dict[str, str | None]:
        return {
            "user_id": self.user_id,
            "provider_id": self.provider_id.value if self.provider_id else None,
            "display_name": self.display_name,
            "email": self.email,
        }


# --------------------------------------------------------------------------- #
# Provider credentials                                                        #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class AppleCredential:
    """Native credential: identity token bound to the raw nonce of its request."""

    identity_token: str = field(repr=False)
    raw_nonce: str = field(repr=False)
    full_name: str | None = None

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.APPLE


@dataclass(frozen=True, slots=True)
class GoogleCredential:
    """Delegated OAuth credential."""

    id_token: str = field(repr=False)
    access_token: str = field(repr=False)

    @property
    def provider_id(self) -> ProviderId:
        return ProviderId.GOOGLE


ProviderCredential = Union[AppleCredential, GoogleCredential]


@dataclass(frozen=True, slots=True)
class PendingNonce:
    """The in-flight nonce of a native credential request."""

    raw_nonce: str = field(repr=False)
    hashed_nonce: str


@dataclass(frozen=True, slots=True)
class NativeRequest:
    """Parameters to copy into the platform credential request."""

    requested_scopes: tuple[str, ...]
    nonce_digest: str


@dataclass(frozen=True, slots=True)
class NativeAuthorization:
    """Successful platform outcome."""

    identity_token: bytes | str | None = field(default=None, repr=False)
    full_name: str | None = None
    email: str | None = None


@dataclass(frozen=True, slots=True)
class NativeAuthorizationFailure:
    """Cancelled or failed platform outcome."""

    message: str
    cancelled: bool = False


NativeOutcome = Union[NativeAuthorization, NativeAuthorizationFailure]


@dataclass(frozen=True, slots=True)
class DelegatedSignInResult:
    """What the delegated provider SDK returns after interactive consent."""

    id_token: str | None = field(default=None, repr=False)
    access_token: str | None = field(default=None, repr=False)
    profile: dict[str, Any] = field(default_factory=dict)


# --------------------------------------------------------------------------- #
# Flow errors & observable state                                              #
# --------------------------------------------------------------------------- #
class FlowErrorKind(str, enum.Enum):
    INVALID_CREDENTIAL = "invalid_credential"
    PRESENTATION_UNAVAILABLE = "presentation_unavailable"
    PROVIDER_FAILURE = "provider_failure"
    REAUTH_REQUIRED = "reauth_required"
    REAUTH_UNSUPPORTED = "reauth_unsupported"
    BACKEND_FAILURE = "backend_failure"

    @property
    def retryable(self) -> bool:
        """Whether the caller may simply retry the same flow."""
        return self not in (FlowErrorKind.REAUTH_REQUIRED, FlowErrorKind.REAUTH_UNSUPPORTED)


@dataclass(frozen=True, slots=True)
class FlowError:
    """A flow-ending error published to observers."""

    kind: FlowErrorKind
    message: str

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {
            "error": self.kind.value,
            "message": self.message,
            "retryable": self.kind.retryable,
        }


class AuthPhase(str, enum.Enum):
    UNKNOWN = "unknown"
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"
    AWAITING_CREDENTIAL = "awaiting_credential"
    EXCHANGING_CREDENTIAL = "exchanging_credential"
    REAUTH_REQUIRED = "reauth_required"
    REAUTHENTICATING_FOR_DELETE = "reauthenticating_for_delete"


@dataclass(frozen=True, slots=True)
class AuthState:
    """Snapshot of everything a UI observes."""

    phase: AuthPhase = AuthPhase.UNKNOWN
    current_user: Session | None = None
    last_error: FlowError | None = None
    # True until the backend's first session notification
    is_loading: bool = True

    @property
    def is_signed_in(self) -> bool:
        return self.current_user is not None

    def to_payload(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "is_loading": self.is_loading,
            "is_signed_in": self.is_signed_in,
            "user": self.current_user.to_payload() if self.current_user else None,
            "last_error": self.last_error.to_payload() if self.last_error else None,
        }
