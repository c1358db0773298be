"""
Identity context.

Wires storage, transport, provider registry, reconciler, current-user
store and session controller into one object owned by the application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..config import IdentityConfig
from ..local.storage import FileKeyValueStorage, KeyValueStorage
from ..transport.base import Transport
from ..transport.http import HttpTransport
from .account import AccountService
from .controller import SessionController
from .provider import AuthProvider
from .reconciler import AuthDataReconciler
from .registry import AuthProviderRegistry
from .store import CurrentUserStore
from .types import CurrentUserState, Identity


class IdentityContext:
    """Manages identity and session state for one application.

    Usage:
        # Create once at startup
        async with IdentityContext.from_env() as context:
            context.register_provider(TokenAuthProvider("weixin"))
            user = await context.controller.log_in_with_password("alice", "s3cret")

            # Anywhere else in the app
            user = await context.current_async()
    """

    def __init__(
        self,
        config: IdentityConfig,
        storage: KeyValueStorage | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.config = config
        self.storage = storage if storage is not None else FileKeyValueStorage(config.storage_dir)
        self.transport = transport if transport is not None else HttpTransport(config)

        self.registry = AuthProviderRegistry()
        self.reconciler = AuthDataReconciler(self.registry)
        self.store = CurrentUserStore(
            self.storage,
            self.reconciler,
            key=config.current_user_key,
            disabled=config.disable_current_user,
        )
        self.controller = SessionController(
            self.transport, self.store, self.reconciler, self.registry
        )
        self.account = AccountService(self.transport)

        self.reconciler.on_restore_failed = self.controller.unlink_from
        self.registry.add_listener(self._reconcile_registered_provider)

    @classmethod
    def from_env(cls, **kwargs: Any) -> IdentityContext:
        """Create a context configured from environment variables."""
        return cls(IdentityConfig.from_env(), **kwargs)

    @classmethod
    def from_yaml(cls, config_path: Path, **kwargs: Any) -> IdentityContext:
        """Create a context configured from a YAML settings file."""
        return cls(IdentityConfig.from_yaml(config_path), **kwargs)

    async def __aenter__(self) -> IdentityContext:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def register_provider(self, provider: AuthProvider) -> None:
        """Register a provider and sync it with the current user's credentials."""
        self.registry.register(provider)

    def current(self) -> Identity | None:
        return self.store.get_current_sync()

    async def current_async(self) -> Identity | None:
        return await self.store.get_current_async()

    async def close(self) -> None:
        """Finish background unlinks and release the transport."""
        await self.reconciler.wait_pending()
        await self.transport.close()

    def _reconcile_registered_provider(self, provider: AuthProvider) -> None:
        if self.store.disabled:
            return
        # Loading the record restores every registered provider already
        loaded = self.store.state is not CurrentUserState.UNRESOLVED
        current = self.store.get_current_sync()
        if current is not None and loaded:
            self.reconciler.restore_one(current, provider.auth_type)
