"""Identity backend over the Firebase Identity Toolkit REST API.

Only the calls the orchestrator needs are implemented:

* ``accounts:signInWithIdp`` – exchange an Apple or Google credential for a
  backend session (also used for re-authentication)
* ``accounts:delete`` – delete the signed-in account

The backend id token is kept in memory for the lifetime of the process and is
never logged.  Refreshing it is the caller's concern.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Final
from urllib.parse import urlencode

import httpx

from authkit.core.backend import SessionListener
from authkit.core.errors import BackendError, RequiresRecentAuthError
from authkit.core.models import AppleCredential, ProviderCredential, ProviderId, Session
from authkit.utils.environment import DEFAULT_IDENTITY_TOOLKIT_URL, AuthKitConfig
from authkit.utils.logging import mask_sensitive

_LOG = logging.getLogger("authkit.backends.identity_toolkit")

_RECENT_AUTH_CODES: Final[frozenset[str]] = frozenset(
    {"CREDENTIAL_TOO_OLD_LOGIN_AGAIN", "TOKEN_EXPIRED"}
)


def _error_code(resp: httpx.Response) -> str:
    """Extract the API error code (``{"error": {"message": "CODE : detail"}}``)."""
    try:
        message = resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return f"HTTP_{resp.status_code}"
    return str(message).split(" : ", 1)[0].strip() or f"HTTP_{resp.status_code}"


def _post_body(credential: ProviderCredential) -> str:
    if isinstance(credential, AppleCredential):
        fields = {
            "id_token": credential.identity_token,
            "providerId": ProviderId.APPLE.value,
            "nonce": credential.raw_nonce,
        }
    else:
        fields = {
            "id_token": credential.id_token,
            "access_token": credential.access_token,
            "providerId": ProviderId.GOOGLE.value,
        }
    return urlencode(fields)


class IdentityToolkitBackend:
    """:class:`~authkit.core.backend.IdentityBackend` backed by Identity Toolkit."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_IDENTITY_TOOLKIT_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
        request_uri: str = "http://localhost",
    ) -> None:
        if not api_key:
            raise ValueError("Identity Toolkit API key is required")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._request_uri = request_uri
        self._listeners: dict[int, SessionListener] = {}
        self._keys = itertools.count()
        self._session: Session | None = None
        self._id_token: str | None = None

    @classmethod
    def from_config(
        cls, config: AuthKitConfig, *, client: httpx.AsyncClient | None = None
    ) -> IdentityToolkitBackend:
        if not config.firebase_api_key:
            raise ValueError("AUTHKIT_FIREBASE_API_KEY not configured")
        return cls(
            config.firebase_api_key,
            base_url=config.identity_toolkit_url,
            client=client,
            timeout=config.http_timeout,
        )

    @property
    def current_session(self) -> Session | None:
        return self._session

    # ------------------------------------------------------------------ #
    # Session listeners                                                  #
    # ------------------------------------------------------------------ #
    def add_session_listener(self, listener: SessionListener) -> int:
        """Register *listener*; it is called at once with the current session."""
        handle = next(self._keys)
        self._listeners[handle] = listener
        listener(self._session)
        return handle

    def remove_session_listener(self, handle: int) -> None:
        if self._listeners.pop(handle, None) is None:
            _LOG.debug("Listener handle %s not registered", handle)

    def _set_session(self, session: Session | None) -> None:
        self._session = session
        for listener in list(self._listeners.values()):
            listener(session)

    # ------------------------------------------------------------------ #
    # IdentityBackend API                                                #
    # ------------------------------------------------------------------ #
    async def exchange(self, credential: ProviderCredential) -> None:
        data = await self._sign_in_with_idp(credential)
        provider = ProviderId.parse(data.get("providerId")) or credential.provider_id
        display_name = data.get("displayName")
        if not display_name and isinstance(credential, AppleCredential):
            display_name = credential.full_name
        self._id_token = data["idToken"]
        _LOG.info(
            "Signed in user=%s provider=%s", mask_sensitive(data["localId"]), provider.value
        )
        self._set_session(
            Session(
                user_id=data["localId"],
                provider_id=provider,
                display_name=display_name,
                email=data.get("email"),
            )
        )

    async def reauthenticate(self, credential: ProviderCredential) -> None:
        current = self._require_session()
        data = await self._sign_in_with_idp(credential)
        if data["localId"] != current.user_id:
            raise BackendError(
                "The supplied credential belongs to a different user.",
                code="USER_MISMATCH",
            )
        self._id_token = data["idToken"]
        _LOG.info("Re-authenticated user=%s", mask_sensitive(current.user_id))

    async def delete_current_user(self) -> None:
        current = self._require_session()
        await self._post("accounts:delete", {"idToken": self._id_token})
        _LOG.info("Deleted user=%s", mask_sensitive(current.user_id))
        self._id_token = None
        self._set_session(None)

    async def sign_out(self) -> None:
        self._id_token = None
        if self._session is not None:
            self._set_session(None)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ---------------- internal helpers --------------------------------- #
    def _require_session(self) -> Session:
        if self._session is None or not self._id_token:
            raise BackendError("No signed-in user.", code="NO_CURRENT_USER")
        return self._session

    async def _sign_in_with_idp(self, credential: ProviderCredential) -> dict[str, Any]:
        data = await self._post(
            "accounts:signInWithIdp",
            {
                "postBody": _post_body(credential),
                "requestUri": self._request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
        )
        if not data.get("idToken") or not data.get("localId"):
            raise BackendError("Identity Toolkit response missing idToken or localId")
        return data

    async def _post(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{method}"
        try:
            resp = await self._client.post(url, params={"key": self._api_key}, json=payload)
        except httpx.HTTPError as exc:
            raise BackendError(f"Identity Toolkit request failed: {exc}") from exc

        if resp.is_success:
            try:
                return resp.json()
            except ValueError:
                raise BackendError("Identity Toolkit returned invalid JSON") from None

        code = _error_code(resp)
        _LOG.debug("Identity Toolkit %s failed status=%s code=%s", method, resp.status_code, code)
        if code in _RECENT_AUTH_CODES:
            raise RequiresRecentAuthError(code=code)
        raise BackendError(f"Identity Toolkit returned {resp.status_code}: {code}", code=code)
