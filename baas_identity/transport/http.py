"""
HTTP transport built on aiohttp.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import aiohttp

from ..config import IdentityConfig
from ..exceptions import RequestError, TransportConnectionError
from .base import Transport

logger = logging.getLogger(__name__)


class HttpTransport(Transport):
    """JSON-over-HTTP transport for the object store API.

    Example:
        >>> async with HttpTransport(config) as transport:
        ...     data = await transport.request("POST", "login", {"username": "u", "password": "p"})
    """

    def __init__(self, config: IdentityConfig, session: aiohttp.ClientSession | None = None):
        self.config = config
        self.base_url = f"{config.server_url.rstrip('/')}/{config.api_version}/"
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
            self._owns_session = True
        return self._session

    def _headers(self, session_token: str | None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-App-Id": self.config.app_id,
        }
        if self.config.app_key:
            headers["X-App-Key"] = self.config.app_key
        if session_token:
            headers["X-Session-Token"] = session_token
        return headers

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        params: dict[str, Any] | None = None,
        session_token: str | None = None,
    ) -> dict[str, Any]:
        url = self.base_url + path.lstrip("/")
        logger.debug(f"{method} {url}")

        try:
            async with self._get_session().request(
                method,
                url,
                json=body,
                params=params,
                headers=self._headers(session_token),
            ) as response:
                text = await response.text()
                status = response.status
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TransportConnectionError(url, e) from e

        data = _decode(text)
        if status >= 400:
            raise RequestError(status, data.get("code"), data.get("error") or text or None)
        return data

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


def _decode(text: str) -> dict[str, Any]:
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.warning(f"Non-JSON response body: {text[:200]}")
        return {}
    return data if isinstance(data, dict) else {"results": data}
