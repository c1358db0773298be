"""
Auth provider registry.

Maps provider ids to provider implementations. The map is only
mutated by ``register``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .provider import AuthProvider

logger = logging.getLogger(__name__)


class AuthProviderRegistry:
    """Registry of auth providers keyed by ``auth_type``.

    Listeners added with ``add_listener`` run after every registration;
    the identity context uses one to reconcile the current user with a
    newly available provider.
    """

    def __init__(self) -> None:
        self._providers: dict[str, AuthProvider] = {}
        self._listeners: list[Callable[[AuthProvider], None]] = []

    def register(self, provider: AuthProvider) -> None:
        """Register a provider. The last registration for a type wins."""
        previous = self._providers.get(provider.auth_type)
        self._providers[provider.auth_type] = provider
        if previous is not None and previous is not provider:
            logger.debug(f"Replaced auth provider: {provider.auth_type}")
        else:
            logger.debug(f"Registered auth provider: {provider.auth_type}")

        for listener in list(self._listeners):
            listener(provider)

    def resolve(self, provider: str | AuthProvider | None) -> AuthProvider | None:
        """Normalize a provider id or instance to a registered provider.

        Provider instances are used as given, registered or not.
        """
        if provider is None:
            return None
        if isinstance(provider, str):
            return self._providers.get(provider)
        return provider

    def add_listener(self, listener: Callable[[AuthProvider], None]) -> None:
        self._listeners.append(listener)

    def __contains__(self, auth_type: object) -> bool:
        return auth_type in self._providers

    def __len__(self) -> int:
        return len(self._providers)

    @property
    def auth_types(self) -> list[str]:
        return list(self._providers)


def auth_type_of(provider: str | AuthProvider) -> str:
    """Provider id of an id-or-instance argument."""
    return provider if isinstance(provider, str) else provider.auth_type
