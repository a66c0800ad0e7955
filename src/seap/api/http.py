"""
HTTP transport for the SEAP REST API.

Thin aiohttp wrapper: JSON in, JSON out, bearer credential attached when
available, and every failure mapped onto the client's error types.
"""

import asyncio
import json as jsonlib
from typing import Any, Callable, Dict, Optional

import aiohttp
from loguru import logger

from ..errors import UNEXPECTED_RESPONSE, APIError, TransportError


# Returned by _decode when the body is not JSON; None is a valid JSON body
UNPARSEABLE = object()


class APIClient:
    """
    Async JSON client for one backend.

    Usage:
        async with APIClient("http://localhost:8080") as api:
            data = await api.get("/api/health", auth=False)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        credential_provider: Optional[Callable[[], Optional[str]]] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Backend base URL, without trailing slash
            timeout: Total timeout per request in seconds
            credential_provider: Returns the current bearer credential, or None
            on_unauthorized: Called when a request carrying a credential gets 401
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.credential_provider = credential_provider
        self.on_unauthorized = on_unauthorized
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _auth_headers(self) -> Dict[str, str]:
        if self.credential_provider is None:
            return {}
        credential = self.credential_provider()
        if not credential:
            return {}
        return {"Authorization": f"Bearer {credential}"}

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        auth: bool = True,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path starting with /api/
            json: Request body
            auth: Attach the bearer credential if one is available

        Returns:
            Decoded JSON, or None for an empty body or a JSON null

        Raises:
            APIError: Non-2xx status, or a 2xx body that is not JSON
            TransportError: Connection failure or timeout
        """
        url = f"{self.base_url}{path}"
        headers = self._auth_headers() if auth else {}

        logger.debug(f"{method} {path}")

        try:
            async with self._get_session().request(method, url, json=json, headers=headers) as resp:
                status = resp.status
                text = await resp.text(errors="replace")
        except asyncio.TimeoutError as e:
            logger.warning(f"{method} {path} timed out")
            raise TransportError("Request timed out") from e
        except aiohttp.ClientError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise TransportError() from e

        body = self._decode(text)

        if 200 <= status < 300:
            if body is UNPARSEABLE:
                raise APIError(status, UNEXPECTED_RESPONSE)
            return body

        message = None
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")

        logger.warning(f"{method} {path} -> {status}: {message or 'no error message'}")

        if status == 401 and "Authorization" in headers and self.on_unauthorized:
            self.on_unauthorized()

        raise APIError(status, message)

    @staticmethod
    def _decode(text: str) -> Any:
        if not text.strip():
            return None
        try:
            return jsonlib.loads(text)
        except ValueError:
            return UNPARSEABLE

    async def get(self, path: str, auth: bool = True) -> Any:
        return await self.request("GET", path, auth=auth)

    async def post(self, path: str, json: Optional[Dict[str, Any]] = None, auth: bool = True) -> Any:
        return await self.request("POST", path, json=json, auth=auth)

    async def put(self, path: str, json: Optional[Dict[str, Any]] = None, auth: bool = True) -> Any:
        return await self.request("PUT", path, json=json, auth=auth)

    async def delete(self, path: str, auth: bool = True) -> Any:
        return await self.request("DELETE", path, auth=auth)
