"""
Shared test configuration and fixtures.

Provides a scripted transport, a storage backend that records every
call, and an auth provider whose behaviour tests can steer.
"""

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from baas_identity import IdentityConfig, IdentityContext
from baas_identity.identity import AuthProvider
from baas_identity.local import MemoryKeyValueStorage
from baas_identity.transport import Transport


class ScriptedTransport(Transport):
    """
    Transport that records requests and replays queued responses.

    Unqueued requests answer with an empty object.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._responses: dict[tuple[str, str], list[Any]] = {}
        self.closed = False

    def respond(self, method: str, path: str, data: dict[str, Any] | Exception) -> None:
        """Queue a response (or an exception to raise) for a route."""
        self._responses.setdefault((method, path), []).append(data)

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        params: dict[str, Any] | None = None,
        session_token: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "method": method,
                "path": path,
                "body": copy.deepcopy(body),
                "params": params,
                "session_token": session_token,
            }
        )
        queue = self._responses.get((method, path))
        if queue:
            item = queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return copy.deepcopy(item)
        return {}

    def paths(self) -> list[tuple[str, str]]:
        return [(call["method"], call["path"]) for call in self.calls]

    async def close(self) -> None:
        self.closed = True


class RecordingStorage(MemoryKeyValueStorage):
    """In-memory storage that logs every operation."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        super().__init__(initial)
        self.operations: list[tuple[str, str]] = []
        self.on_write: Callable[[str, dict[str, Any]], None] | None = None

    def read(self, key: str) -> dict[str, Any] | None:
        self.operations.append(("read", key))
        return super().read(key)

    async def read_async(self, key: str) -> dict[str, Any] | None:
        self.operations.append(("read_async", key))
        return MemoryKeyValueStorage.read(self, key)

    async def write_async(self, key: str, data: dict[str, Any]) -> None:
        self.operations.append(("write", key))
        if self.on_write:
            self.on_write(key, data)
        await super().write_async(key, data)

    async def remove_async(self, key: str) -> None:
        self.operations.append(("remove", key))
        await super().remove_async(key)


class FakeProvider(AuthProvider):
    """Auth provider with steerable restore results."""

    def __init__(
        self,
        auth_type: str = "fake",
        restore_result: bool = True,
        payload: dict[str, Any] | None = None,
    ) -> None:
        self._auth_type = auth_type
        self.restore_result = restore_result
        self.payload = payload if payload is not None else {"token": "fresh"}
        self.restored: list[dict[str, Any] | None] = []
        self.deauthenticated = 0
        self.authenticated = 0
        self.on_deauthenticate: Callable[[], None] | None = None

    @property
    def auth_type(self) -> str:
        return self._auth_type

    async def authenticate(self) -> dict[str, Any] | None:
        self.authenticated += 1
        return dict(self.payload) if self.payload is not None else None

    def restore_authentication(self, payload: dict[str, Any] | None) -> bool:
        self.restored.append(payload)
        return self.restore_result

    def deauthenticate(self) -> None:
        self.deauthenticated += 1
        if self.on_deauthenticate:
            self.on_deauthenticate()


APP_ID = "test-app"
CURRENT_USER_KEY = f"{APP_ID}/currentUser"


@pytest.fixture
def config(tmp_path: Path) -> IdentityConfig:
    """Config pointing storage at a temp directory."""
    return IdentityConfig(app_id=APP_ID, app_key="test-key", storage_dir=tmp_path)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def context(
    config: IdentityConfig, storage: RecordingStorage, transport: ScriptedTransport
) -> IdentityContext:
    """Identity context wired to the in-memory collaborators."""
    return IdentityContext(config, storage=storage, transport=transport)


@pytest.fixture
def disabled_context(
    config: IdentityConfig, storage: RecordingStorage, transport: ScriptedTransport
) -> IdentityContext:
    """Identity context with current-user tracking disabled."""
    config.disable_current_user = True
    return IdentityContext(config, storage=storage, transport=transport)


def login_response(object_id: str = "u1", token: str = "t1", **extra: Any) -> dict[str, Any]:
    """Server response body for a successful login."""
    return {"objectId": object_id, "sessionToken": token, "username": f"user-{object_id}", **extra}
