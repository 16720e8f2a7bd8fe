"""Google sign-in via the OAuth 2.0 authorization-code flow with PKCE.

Implements :class:`~authkit.core.backend.DelegatedProviderSDK`:

1. :meth:`GoogleOAuthClient.sign_in` registers a pending sign-in, builds the
   authorize URL (PKCE S256 + signed ``state``) and asks the presentation
   context to open it.
2. The host application forwards the redirect URL to
   :meth:`GoogleOAuthClient.handle_redirect`, which resolves the pending
   sign-in with the authorization code (or the provider error).
3. ``sign_in`` exchanges the code at the token endpoint and returns the id and
   access tokens.

Verifiers, codes, tokens and state strings are never logged.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Final
from urllib.parse import parse_qs, urlencode, urlparse

import httpx

from authkit.core.backend import PresentationContext
from authkit.core.clock import Clock, default_clock, elapsed_since
from authkit.core.errors import ProviderError
from authkit.core.models import DelegatedSignInResult
from authkit.core.nonce import code_challenge_s256, generate_code_verifier
from authkit.core.state import InvalidStateError, build_state, parse_state
from authkit.utils.environment import DEFAULT_GOOGLE_SCOPES, AuthKitConfig

_LOG = logging.getLogger("authkit.backends.google_oauth")

GOOGLE_AUTHORIZE_URL: Final[str] = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL: Final[str] = "https://oauth2.googleapis.com/token"


@dataclass(slots=True)
class _PendingSignIn:
    txn_id: str
    code_verifier: str = field(repr=False)
    created_at: float
    future: asyncio.Future = field(repr=False)


def _first(params: dict[str, list[str]], key: str) -> str | None:
    values = params.get(key)
    return values[0] if values else None


def _unverified_claims(id_token: str | None) -> dict[str, Any]:
    """Decode the JWT payload for display purposes only (no signature check)."""
    if not id_token or id_token.count(".") != 2:
        return {}
    payload = id_token.split(".")[1]
    try:
        raw = base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4))
        claims = json.loads(raw)
    except ValueError:
        return {}
    if not isinstance(claims, dict):
        return {}
    return {k: claims[k] for k in ("sub", "email", "name", "picture") if k in claims}


class GoogleOAuthClient:
    """Delegated provider SDK for Google accounts."""

    def __init__(
        self,
        client_id: str,
        redirect_uri: str,
        *,
        client_secret: str | None = None,
        scopes: tuple[str, ...] = DEFAULT_GOOGLE_SCOPES,
        state_secret: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
        redirect_timeout: float = 600.0,
        clock: Clock = default_clock,
        authorize_url: str = GOOGLE_AUTHORIZE_URL,
        token_url: str = GOOGLE_TOKEN_URL,
    ) -> None:
        if not client_id or not redirect_uri:
            raise ValueError("Google client_id and redirect_uri are required")
        self.client_id = client_id
        self.redirect_uri = redirect_uri
        self._client_secret = client_secret
        self.scopes = scopes
        self._state_secret = state_secret or uuid.uuid4().hex
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._redirect_timeout = redirect_timeout
        self._clock = clock
        self._authorize_url = authorize_url
        self._token_url = token_url
        self._redirect_path = urlparse(redirect_uri).path
        self._pending: dict[str, _PendingSignIn] = {}
        self._profile: dict[str, Any] | None = None

    @classmethod
    def from_config(
        cls, config: AuthKitConfig, *, http_client: httpx.AsyncClient | None = None
    ) -> GoogleOAuthClient:
        if not config.is_google_configured():
            raise ValueError("Google OAuth environment not configured")
        return cls(
            config.google_client_id or "",
            config.google_redirect_uri or "",
            client_secret=config.google_client_secret,
            scopes=config.google_scopes,
            state_secret=config.state_secret or None,
            http_client=http_client,
            timeout=config.http_timeout,
            redirect_timeout=config.redirect_timeout,
        )

    @property
    def current_profile(self) -> dict[str, Any] | None:
        """Claims of the last successful sign-in, cleared by :meth:`sign_out`."""
        return self._profile

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def build_authorize_url(self, txn_id: str, code_verifier: str) -> str:
        query_params: dict[str, str] = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": build_state(txn_id, self._state_secret, clock=self._clock),
            "code_challenge": code_challenge_s256(code_verifier),
            "code_challenge_method": "S256",
            "prompt": "select_account",
        }
        return f"{self._authorize_url}?{urlencode(query_params)}"

    # ------------------------------------------------------------------ #
    # DelegatedProviderSDK API                                           #
    # ------------------------------------------------------------------ #
    async def sign_in(self, presentation: PresentationContext) -> DelegatedSignInResult:
        self._purge_expired()
        txn_id = uuid.uuid4().hex
        verifier = generate_code_verifier()
        pending = _PendingSignIn(
            txn_id=txn_id,
            code_verifier=verifier,
            created_at=self._clock(),
            future=asyncio.get_running_loop().create_future(),
        )
        self._pending[txn_id] = pending
        try:
            try:
                presentation.open_url(self.build_authorize_url(txn_id, verifier))
            except Exception as exc:  # broad: surfaced as a provider failure
                raise ProviderError(f"Cannot open Google sign-in: {exc}") from exc
            _LOG.debug("Waiting for redirect txn=%s****", txn_id[:6])
            try:
                code = await asyncio.wait_for(pending.future, self._redirect_timeout)
            except asyncio.TimeoutError:
                raise ProviderError("Timed out waiting for Google sign-in to finish.") from None
        finally:
            self._pending.pop(txn_id, None)

        tokens = await self._exchange_code(code, verifier)
        id_token = tokens.get("id_token")
        profile = _unverified_claims(id_token)
        self._profile = profile
        _LOG.info("Google sign-in completed txn=%s****", txn_id[:6])
        return DelegatedSignInResult(
            id_token=id_token,
            access_token=tokens.get("access_token"),
            profile=profile,
        )

    def handle_redirect(self, url: str) -> bool:
        """Resolve the pending sign-in addressed by *url*.

        Returns ``False`` when the URL is not a redirect for this client or no
        matching sign-in is waiting.
        """
        parsed = urlparse(url)
        if parsed.path != self._redirect_path:
            return False
        params = parse_qs(parsed.query)
        state = _first(params, "state")
        if not state:
            return False
        try:
            txn_id, _ = parse_state(
                state, self._state_secret, max_age=self._redirect_timeout, clock=self._clock
            )
        except InvalidStateError as exc:
            _LOG.warning("Rejected Google redirect: %s", exc)
            return False

        pending = self._pending.get(txn_id)
        if pending is None or pending.future.done():
            _LOG.info("No pending Google sign-in for txn=%s****", txn_id[:6])
            return False

        error = _first(params, "error")
        code = _first(params, "code")
        if error:
            description = _first(params, "error_description")
            pending.future.set_exception(
                ProviderError(
                    f"{error}: {description}" if description else error,
                    cancelled=error == "access_denied",
                )
            )
        elif not code:
            pending.future.set_exception(ProviderError("Redirect is missing the authorization code."))
        else:
            pending.future.set_result(code)
        return True

    def sign_out(self) -> None:
        self._profile = None
        for pending in list(self._pending.values()):
            if not pending.future.done():
                pending.future.set_exception(ProviderError("Signed out.", cancelled=True))
        self._pending.clear()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # ---------------- internal helpers --------------------------------- #
    def _purge_expired(self) -> None:
        for txn_id, pending in list(self._pending.items()):
            if elapsed_since(pending.created_at, clock=self._clock) > self._redirect_timeout:
                if not pending.future.done():
                    pending.future.set_exception(ProviderError("Sign-in expired."))
                del self._pending[txn_id]

    async def _exchange_code(self, code: str, verifier: str) -> dict[str, Any]:
        payload: dict[str, str] = {
            "grant_type": "authorization_code",
            "client_id": self.client_id,
            "code": code,
            "redirect_uri": self.redirect_uri,
            "code_verifier": verifier,
        }
        if self._client_secret:
            payload["client_secret"] = self._client_secret  # noqa: S105

        try:
            resp = await self._http.post(self._token_url, data=payload)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Token request failed: {exc}") from exc

        if not resp.is_success:
            raise ProviderError(f"Token endpoint returned {resp.status_code}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError:
            raise ProviderError("Token endpoint returned invalid JSON") from None
