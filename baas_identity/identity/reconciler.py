"""
Auth data reconciliation.

Keeps third-party provider SDK state in line with the credential
payloads stored under the current user's ``authData``. A provider that
refuses a stored payload (e.g. an expired token) gets unlinked.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..exceptions import IdentityError
from .provider import AuthProvider
from .registry import AuthProviderRegistry
from .types import Identity

logger = logging.getLogger(__name__)

UnlinkHandler = Callable[[Identity, AuthProvider], Awaitable[Any]]


class AuthDataReconciler:
    """Synchronizes an identity's linked providers with provider SDK state.

    Every operation is a no-op unless the identity is the current one;
    only the current user's providers are kept in sync.

    ``on_restore_failed`` is the unlink handler invoked when a provider
    refuses its stored payload. The session controller installs its
    ``unlink_from``. Without a handler the entry is tombstoned locally.
    """

    def __init__(self, registry: AuthProviderRegistry) -> None:
        self.registry = registry
        self.on_restore_failed: UnlinkHandler | None = None
        self._pending: set[asyncio.Task[None]] = set()

    # -- async reconciliation (post-operation hook) -------------------------

    async def reconcile_all(self, identity: Identity) -> None:
        """Reconcile every provider listed in the identity's auth data."""
        if identity.auth_data is None:
            return
        for auth_type in list(identity.auth_data):
            await self.reconcile_one(identity, auth_type)

    async def reconcile_one(self, identity: Identity, provider: str | AuthProvider) -> None:
        """Restore one provider; unlink it if the stored payload is refused."""
        refused = self._restore(identity, provider)
        if refused is not None:
            await self._unlink(identity, refused)

    # -- sync reconciliation (store load, provider registration) ------------

    def restore_all(self, identity: Identity) -> None:
        """Synchronous variant of ``reconcile_all``.

        Refused providers are tombstoned at once. With a running event loop
        they are then unlinked in a background task; otherwise the next
        save carries the unlink to the server.
        """
        if identity.auth_data is None:
            return
        for auth_type in list(identity.auth_data):
            self.restore_one(identity, auth_type)

    def restore_one(self, identity: Identity, provider: str | AuthProvider) -> None:
        """Synchronous variant of ``reconcile_one``."""
        refused = self._restore(identity, provider)
        if refused is None:
            return

        # Tombstone now so later restores skip the entry until the unlink lands
        identity.set_auth_data(refused.auth_type, None)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if self.on_restore_failed is None:
            return

        task = loop.create_task(self._unlink(identity, refused))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_pending(self) -> None:
        """Wait for background unlinks scheduled by the sync variants."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # -- tombstones and teardown --------------------------------------------

    def cleanup_tombstones(self, identity: Identity) -> None:
        """Delete auth data entries whose payload is None."""
        if not identity.is_current or not identity.auth_data:
            return
        for auth_type in [key for key, payload in identity.auth_data.items() if payload is None]:
            del identity.auth_data[auth_type]

    def deauthenticate_all(self, identity: Identity) -> None:
        """Tear down SDK state of every provider linked to the identity."""
        if identity.auth_data is None:
            return
        for auth_type in list(identity.auth_data):
            self.deauthenticate_one(identity, auth_type)

    def deauthenticate_one(self, identity: Identity, provider: str | AuthProvider) -> None:
        if not identity.is_current:
            return
        resolved = self.registry.resolve(provider)
        if resolved is not None:
            resolved.deauthenticate()

    # -- internals ------------------------------------------------------------

    def _restore(self, identity: Identity, provider: str | AuthProvider) -> AuthProvider | None:
        """Restore a provider. Returns the provider if it refused its payload."""
        if not identity.is_current:
            return None
        resolved = self.registry.resolve(provider)
        if resolved is None or identity.auth_data is None:
            return None
        payload = identity.auth_data.get(resolved.auth_type)
        if payload is None:
            return None
        if resolved.restore_authentication(payload):
            return None

        logger.info(f"Provider {resolved.auth_type} refused stored credentials of {identity.id}")
        return resolved

    async def _unlink(self, identity: Identity, provider: AuthProvider) -> None:
        if self.on_restore_failed is None:
            identity.set_auth_data(provider.auth_type, None)
            return
        try:
            await self.on_restore_failed(identity, provider)
        except IdentityError as e:
            logger.warning(
                f"Automatic unlink of {provider.auth_type} for {identity.id} failed: {e}"
            )
