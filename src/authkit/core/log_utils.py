"""Structured logging helpers for auth flows.

This module purposefully restricts **which** contextual attributes are attached
to log records in order to avoid accidentally leaking secrets.  Helpers ONLY
inject the following *non-sensitive* fields:

- ``flow``           – Name of the running flow (``native_sign_in``, ``delete_account``…)
- ``provider``       – Provider id (``apple.com``, ``google.com``)
- ``user_id``        – Backend user id (first 6 chars kept)
- ``correlation_id`` – Optional id wired by outer layers

Usage
-----
>>> from authkit.core.log_utils import get_auth_logger
>>> log = get_auth_logger(flow="delete_account", provider="google.com")
>>> log.info("Retrying deletion after re-authentication")

The adapter is a thin wrapper around :class:`logging.LoggerAdapter`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping


class _AuthLoggerAdapter(logging.LoggerAdapter):
    """Inject whitelisted auth context into log records."""

    extra_keys = ("flow", "provider", "user_id", "correlation_id")

    def __init__(self, logger: logging.Logger, extra: Mapping[str, Any] | None = None):
        extra_clean: MutableMapping[str, Any] = {}
        for k in self.extra_keys:
            if not extra or extra.get(k) is None:
                continue
            if k == "user_id":
                extra_clean[k] = str(extra[k])[:6]
            else:
                extra_clean[k] = extra[k]
        super().__init__(logger, extra_clean)

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        if "extra" not in kwargs or kwargs["extra"] is None:
            kwargs["extra"] = {}
        # merge but do not overwrite call-site provided extras
        for k, v in self.extra.items():
            kwargs["extra"].setdefault(k, v)
        return msg, kwargs


def get_auth_logger(
    *,
    base_logger_name: str = "authkit.core",
    flow: str | None = None,
    provider: str | None = None,
    user_id: str | None = None,
    correlation_id: str | None = None,
) -> logging.LoggerAdapter:
    """Return a LoggerAdapter pre-filled with auth context."""
    logger = logging.getLogger(base_logger_name)
    return _AuthLoggerAdapter(
        logger,
        {
            "flow": flow,
            "provider": provider,
            "user_id": user_id,
            "correlation_id": correlation_id,
        },
    )
