"""
In-process fake SEAP backend for tests.

Routes are registered per test with canned JSON responses; every request
is recorded so tests can assert on what was (or was not) sent.
"""

import json
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from aiohttp import web
from aiohttp.test_utils import TestServer


@dataclass
class RecordedRequest:
    method: str
    path: str
    body: Any
    authorization: Optional[str]


class FakeBackend:
    """aiohttp application answering with whatever the test registered."""

    def __init__(self):
        self.requests: List[RecordedRequest] = []
        self._routes: Dict[Tuple[str, str], Tuple[int, Any, str]] = {}
        self.app = web.Application()
        self.app.router.add_route("*", "/{tail:.*}", self._dispatch)

    def respond(self, method: str, path: str, body: Any, status: int = 200):
        """Answer METHOD PATH with a JSON body."""
        self._routes[(method.upper(), path)] = (status, body, "json")

    def respond_text(self, method: str, path: str, text: str, status: int = 200):
        """Answer METHOD PATH with a raw (non-JSON) body."""
        self._routes[(method.upper(), path)] = (status, text, "text")

    def respond_bytes(self, method: str, path: str, data: bytes, status: int = 200):
        """Answer METHOD PATH with raw bytes labelled as UTF-8 JSON."""
        self._routes[(method.upper(), path)] = (status, data, "bytes")

    def calls(self, method: str, path: str) -> List[RecordedRequest]:
        return [r for r in self.requests if r.method == method.upper() and r.path == path]

    async def _dispatch(self, request: web.Request) -> web.Response:
        text = await request.text()
        body = json.loads(text) if text else None
        self.requests.append(
            RecordedRequest(
                method=request.method,
                path=request.path,
                body=body,
                authorization=request.headers.get("Authorization"),
            )
        )

        route = self._routes.get((request.method, request.path))
        if route is None:
            return web.json_response({"error": "Not found"}, status=404)

        status, payload, kind = route
        if kind == "text":
            return web.Response(text=payload, status=status, content_type="text/plain")
        if kind == "bytes":
            return web.Response(body=payload, status=status, content_type="application/json", charset="utf-8")
        return web.json_response(payload, status=status)

    @asynccontextmanager
    async def running(self):
        """Serve on a random local port; yields the base URL."""
        server = TestServer(self.app)
        await server.start_server()
        try:
            yield str(server.make_url("")).rstrip("/")
        finally:
            await server.close()


def user_record(user_id=1, email="a@b.com", role="user") -> Dict[str, Any]:
    return {"id": user_id, "email": email, "role": role}


def login_response(token="t1", **user) -> Dict[str, Any]:
    return {"token": token, "user": user_record(**user)}
