"""
Auth provider interface.

An auth provider bridges a third-party identity SDK (social login,
OAuth app, ...) with the credential payload stored under the user's
``authData``.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from ..exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)


class AuthProvider(ABC):
    """Abstract auth provider.

    The provider is responsible for:
    - Producing a new credential payload through an interactive flow
    - Restoring SDK state from a previously stored payload
    - Tearing down SDK state on log-out or unlink
    """

    @property
    @abstractmethod
    def auth_type(self) -> str:
        """Stable identifier used as the key under ``authData``."""
        ...

    @abstractmethod
    async def authenticate(self) -> dict[str, Any]:
        """Run the interactive flow and return a new credential payload.

        Raises:
            AuthenticationRequiredError: If no interactive flow is available
        """
        ...

    @abstractmethod
    def restore_authentication(self, payload: dict[str, Any] | None) -> bool:
        """Configure SDK state from a stored payload.

        Returns:
            False if the payload is no longer usable; the caller then unlinks
            the provider from the user.
        """
        ...

    def deauthenticate(self) -> None:
        """Tear down SDK state. Providers without SDK state need not override."""
        return None


class TokenAuthProvider(AuthProvider):
    """Provider for third-party access tokens.

    Payloads follow the usual token response shape::

        {"openid": "abc123", "access_token": "123abc", "expires_at": 1382686496}

    ``expires_at`` (or ``expires_in``, when it holds an absolute unix
    timestamp) marks the token as unusable once it lies in the past.

    Usage:
        provider = TokenAuthProvider("weixin", authenticator=run_oauth_flow)
        context.register_provider(provider)
    """

    def __init__(
        self,
        auth_type: str,
        authenticator: Callable[[], Awaitable[dict[str, Any]]] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._auth_type = auth_type
        self._authenticator = authenticator
        self._clock = clock
        self.credentials: dict[str, Any] | None = None

    @property
    def auth_type(self) -> str:
        return self._auth_type

    async def authenticate(self) -> dict[str, Any]:
        if self._authenticator is None:
            raise AuthenticationRequiredError(self._auth_type)
        payload = await self._authenticator()
        self.credentials = dict(payload)
        return payload

    def restore_authentication(self, payload: dict[str, Any] | None) -> bool:
        if not payload:
            self.credentials = None
            return True

        expires_at = _absolute_expiry(payload)
        if expires_at is not None and expires_at <= self._clock():
            logger.info(f"Stored {self._auth_type} token expired at {expires_at}")
            return False

        self.credentials = dict(payload)
        return True

    def deauthenticate(self) -> None:
        self.credentials = None

    @property
    def is_authenticated(self) -> bool:
        return self.credentials is not None


# Durations below this are relative lifetimes, not unix timestamps.
_MIN_TIMESTAMP = 10**9


def _absolute_expiry(payload: dict[str, Any]) -> float | None:
    for key in ("expires_at", "expires_in"):
        value = payload.get(key)
        if isinstance(value, (int, float)) and value >= _MIN_TIMESTAMP:
            return float(value)
    return None
