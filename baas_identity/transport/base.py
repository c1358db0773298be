"""
Abstract request transport.

The session controller and account service issue every server call
through this contract; signing and HTTP details live in implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Transport(ABC):
    """Issues a single API request and returns the decoded JSON body."""

    @abstractmethod
    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        params: dict[str, Any] | None = None,
        session_token: str | None = None,
    ) -> dict[str, Any]:
        """Send a request.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            path: Route relative to the API root, e.g. ``login`` or ``users/me``
            body: JSON body
            params: Query string parameters
            session_token: Session token to authenticate the call with

        Returns:
            Decoded JSON response (empty dict for empty bodies)

        Raises:
            RequestError: Server rejected the request
            TransportConnectionError: Server could not be reached
        """
        ...

    async def close(self) -> None:
        """Release underlying resources."""
        return None
