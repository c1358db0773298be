"""
Current-user store.

Owns the process-wide "logged in" identity and its durable record.
All mutation of the record goes through ``set_current`` and ``clear``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..local.storage import KeyValueStorage
from .reconciler import AuthDataReconciler
from .types import CurrentUserState, Identity

logger = logging.getLogger(__name__)


class CurrentUserStore:
    """Cache of the current identity backed by durable storage.

    The durable record is read lazily, once, on first access. After that
    the cached state is authoritative until ``set_current`` or ``clear``.

    When ``disabled`` (multi-tenant server processes), every operation
    reports "no current user" and storage is never touched.

    Usage:
        store = CurrentUserStore(storage, reconciler, key="my-app/currentUser")
        user = await store.get_current_async()
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        reconciler: AuthDataReconciler,
        key: str,
        disabled: bool = False,
    ) -> None:
        self.storage = storage
        self.reconciler = reconciler
        self.key = key
        self.disabled = disabled
        self._state = CurrentUserState.UNRESOLVED
        self._current: Identity | None = None
        self._load_lock = asyncio.Lock()
        self._disabled_notice_emitted = False

    @property
    def state(self) -> CurrentUserState:
        return self._state

    def holds(self, identity: Identity) -> bool:
        """True if this exact instance is the cached current identity."""
        return self._current is identity

    def get_current_sync(self) -> Identity | None:
        """Get the current identity, reading storage synchronously if still owed."""
        if self.disabled:
            self._notice_disabled("current")
            return None
        if self._state is not CurrentUserState.UNRESOLVED:
            return self._current

        identity = self._install_record(self.storage.read(self.key))
        if identity is not None:
            self.reconciler.restore_all(identity)
        return self._current

    async def get_current_async(self) -> Identity | None:
        """Get the current identity, reading storage if still owed.

        Concurrent callers share a single read.
        """
        if self.disabled:
            self._notice_disabled("current_async")
            return None
        if self._state is not CurrentUserState.UNRESOLVED:
            return self._current

        async with self._load_lock:
            if self._state is CurrentUserState.UNRESOLVED:
                record = await self.storage.read_async(self.key)
                # A synchronous lookup or set_current may have resolved the state meanwhile
                if self._state is CurrentUserState.UNRESOLVED:
                    identity = self._install_record(record)
                    if identity is not None:
                        await self.reconciler.reconcile_all(identity)
        return self._current

    async def set_current(self, identity: Identity) -> None:
        """Install ``identity`` as the current identity and persist it.

        Any different identity held before is fully logged out first, so
        its providers and record never leak into the new session.
        """
        if self.disabled:
            self._notice_disabled("set_current")
            return

        if self._current is not identity and (
            self._current is not None or self._state is CurrentUserState.UNRESOLVED
        ):
            await self.clear()

        identity.is_current = True
        self._current = identity
        await self.storage.write_async(self.key, identity.to_record())
        self._state = CurrentUserState.HOLDING
        logger.debug(f"Persisted current identity {identity.id}")

    async def demote_others(self, identity: Identity) -> None:
        """Log out the held identity if it is not ``identity``.

        A record that was never loaded is erased as well.
        """
        if self.disabled:
            return
        if self._current is not identity and (
            self._current is not None or self._state is CurrentUserState.UNRESOLVED
        ):
            await self.clear()

    async def clear(self) -> None:
        """Log out the held identity and erase the durable record."""
        if self.disabled:
            self._notice_disabled("clear")
            return

        previous = self._current
        if previous is not None:
            self.reconciler.deauthenticate_all(previous)
            previous.is_current = False
            logger.debug(f"Demoted current identity {previous.id}")

        self._current = None
        self._state = CurrentUserState.EMPTY
        await self.storage.remove_async(self.key)

    def _install_record(self, record: dict[str, Any] | None) -> Identity | None:
        if record is None:
            self._state = CurrentUserState.EMPTY
            self._current = None
            return None

        identity = Identity.from_record(record)
        identity.is_current = True
        self._current = identity
        self._state = CurrentUserState.HOLDING
        logger.debug(f"Loaded current identity {identity.id} from storage")
        return identity

    def _notice_disabled(self, operation: str) -> None:
        if self._disabled_notice_emitted:
            return
        self._disabled_notice_emitted = True
        logger.warning(
            f"{operation}() is disabled because current-user tracking is off "
            "(multi-user environment); access the user from the request instead"
        )
