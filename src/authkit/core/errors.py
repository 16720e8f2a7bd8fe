"""Exception types used by the auth core.

Only lightweight, **data-carrying** exceptions live here.  Collaborators
(identity backend, provider SDK) raise the first group; provider adapters raise
:class:`AuthFlowError` subclasses which the orchestrator turns into published
:class:`~authkit.core.models.FlowError` values.  None of them cross the
orchestrator's observable boundary.
"""

from __future__ import annotations

from authkit.core.models import FlowError, FlowErrorKind


class BackendError(RuntimeError):
    """Raised by an identity backend when a call fails."""

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code: str | None = code


class RequiresRecentAuthError(BackendError):
    """Raised when a destructive call needs a freshly re-authenticated session."""

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        super().__init__(message or "Recent authentication required.", code=code)


class ProviderError(RuntimeError):
    """Raised by a provider SDK when the interactive flow fails or is cancelled."""

    def __init__(self, message: str, *, cancelled: bool = False) -> None:
        super().__init__(message)
        self.cancelled: bool = cancelled


class AuthFlowError(RuntimeError):
    """Base for adapter errors that end a flow."""

    kind: FlowErrorKind = FlowErrorKind.PROVIDER_FAILURE

    def to_flow_error(self) -> FlowError:
        return FlowError(kind=self.kind, message=str(self))


class InvalidCredentialError(AuthFlowError):
    kind = FlowErrorKind.INVALID_CREDENTIAL


class PresentationUnavailableError(AuthFlowError):
    kind = FlowErrorKind.PRESENTATION_UNAVAILABLE


class ProviderFailureError(AuthFlowError):
    kind = FlowErrorKind.PROVIDER_FAILURE

    def __init__(self, message: str, *, cancelled: bool = False) -> None:
        super().__init__(message)
        self.cancelled: bool = cancelled
