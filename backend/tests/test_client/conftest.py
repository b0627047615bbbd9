"""
Fixtures for storefront client tests

FakeBackend answers httpx requests in-process through httpx.MockTransport.
"""
from typing import Callable, Dict, List, Tuple

import httpx
import pytest

from app.client.api import StorefrontClient
from app.client.session import SecureSession
from app.client.storage import MemoryStore

API_URL = "http://localhost:3001/api"


class FakeBackend:
    """
    Routes requests by (method, path) to handlers returning httpx.Response

    Every GET response carries a fresh X-CSRF-Token header, like the server.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []
        self.csrf_counter = 0
        self.down = False

    def route(self, method: str, path: str, handler=None, **response_kwargs):
        if handler is None:
            def handler(request, kwargs=response_kwargs):
                return httpx.Response(**kwargs)
        self.routes[(method, path)] = handler

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("Connection refused", request=request)

        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            if request.url.path in ("/api/health", "/"):
                response = httpx.Response(200, json={"status": "ok"})
            else:
                response = httpx.Response(404, json={"error": "Not Found"})
        else:
            response = handler(request)

        if request.method == "GET":
            self.csrf_counter += 1
            response.headers["X-CSRF-Token"] = f"token-{self.csrf_counter}"
        return response


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def session_store():
    return MemoryStore()


@pytest.fixture
def session(backend, store, session_store):
    http = httpx.Client(transport=httpx.MockTransport(backend))
    secure = SecureSession(API_URL, store=store, session_store=session_store, http=http)
    yield secure
    secure.close()


@pytest.fixture
def api(session):
    return StorefrontClient(session)
