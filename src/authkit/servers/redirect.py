"""Starlette routes completing the delegated sign-in redirect.

Handlers are intentionally thin:

1. Parse HTTP-layer parameters.
2. Delegate to :class:`~authkit.core.orchestrator.AuthOrchestrator`.
3. Return an appropriate Starlette ``Response`` type.

SECURITY NOTE
-------------
No raw secrets (state, authorization codes, tokens) are ever logged or echoed
back; the status endpoint only exposes the observable session snapshot.
"""

from __future__ import annotations

import html
import logging

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.routing import Route

from authkit.core.orchestrator import AuthOrchestrator

_LOG = logging.getLogger("authkit.servers.redirect")


def _html_page(title: str, body: str, status: int = 200) -> HTMLResponse:
    """Return a tiny success / error HTML page."""
    content = (
        "<!doctype html><html lang='en'>"
        "<head><meta charset='utf-8'><title>"
        f"{title}</title></head><body><h1>{title}</h1><p>{body}</p></body></html>"
    )
    return HTMLResponse(content, status_code=status)


def auth_routes(orchestrator: AuthOrchestrator, *, base_path: str = "/auth") -> list[Route]:
    """Return the redirect and status routes mounted under *base_path*."""

    # ----- GET /auth/google/callback ------------------------------------ #
    async def _google_callback(request: Request) -> Response:  # noqa: D401
        provider_error = request.query_params.get("error")
        handled = orchestrator.handle_redirect(str(request.url))
        if not handled:
            _LOG.info("Redirect not matched to a pending sign-in")
            return _html_page(
                "Sign-in link expired",
                "No sign-in is waiting for this response. Start again from the app.",
                400,
            )
        if provider_error:
            return _html_page("Sign-in cancelled", html.escape(provider_error), 400)
        return _html_page("Sign-in received", "You may close this window.")

    # ----- GET /auth/status --------------------------------------------- #
    async def _status(request: Request) -> Response:  # noqa: D401, ARG001
        return JSONResponse(orchestrator.state.to_payload())

    return [
        Route(f"{base_path}/google/callback", _google_callback, methods=["GET"]),
        Route(f"{base_path}/status", _status, methods=["GET"]),
    ]


def create_app(orchestrator: AuthOrchestrator, *, base_path: str = "/auth") -> Starlette:
    """Return a Starlette application serving :func:`auth_routes`."""
    return Starlette(routes=auth_routes(orchestrator, base_path=base_path))
