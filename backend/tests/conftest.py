"""Pytest configuration and fixtures for jikjikjik tests.

The external backend API is replaced by an ``httpx.MockTransport``
(``FakeBackend``) so no test needs a network, Redis, or a running server.
"""

import json
import os
from email import policy
from email.parser import BytesParser
from typing import AsyncGenerator, Callable

# Settings are read at import time
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from jikjikjik.clients.backend import ApiConfig, BackendClient
from jikjikjik.deps import get_backend_client, get_session_store
from jikjikjik.main import app
from jikjikjik.signup.store import SignupSessionStore
from jikjikjik.signup.wizard import SignupWizard

BACKEND_URL = "http://backend.test"
AUTH_CODE = "008064"


# ── Fake backend ─────────────────────────────────────────────────

class FakeBackend:
    """Scriptable stand-in for the backend API.

    Each endpoint answers with a canned success until overridden with
    ``respond`` (status + JSON body), ``respond_raw`` (status + text) or
    ``fail`` (transport exception).
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.reset_routes()

    def reset_routes(self):
        self.respond(ApiConfig.PHONE_VALIDATION_ENDPOINT, 200, {
            "data": None, "message": "사용 가능한 전화번호입니다.",
        })
        self.respond(ApiConfig.SMS_VERIFICATION_ENDPOINT, 200, {
            "data": {"authCode": AUTH_CODE}, "message": "인증번호 발송 성공",
        })
        self.respond(ApiConfig.WORKER_JOIN_ENDPOINT, 200, {
            "data": None, "message": "회원가입 성공",
        })
        self.respond(ApiConfig.LOGIN_ENDPOINT, 200, {
            "data": {
                "memberId": 42,
                "accessToken": "access-token",
                "refreshToken": "refresh-token",
                "role": "ROLE_WORKER",
            },
            "message": "로그인 성공",
        })

    def respond(self, path: str, status_code: int, body) -> None:
        self._routes[path] = lambda request: httpx.Response(status_code, json=body)

    def respond_raw(self, path: str, status_code: int, text: str) -> None:
        self._routes[path] = lambda request: httpx.Response(status_code, text=text)

    def fail(self, path: str, exc_type=httpx.ConnectError) -> None:
        def _raise(request):
            raise exc_type("connection refused", request=request)
        self._routes[path] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"data": None, "message": "not found"})
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


def multipart_parts(request: httpx.Request) -> dict[str, str]:
    """Decode a multipart/form-data request body into {part name: text}."""
    raw = (
        b"Content-Type: " + request.headers["content-type"].encode() + b"\r\n\r\n"
        + request.content
    )
    message = BytesParser(policy=policy.HTTP).parsebytes(raw)
    return {
        part.get_param("name", header="content-disposition"): (
            part.get_payload(decode=True) or b""
        ).decode("utf-8")
        for part in message.iter_parts()
    }


def join_request_json(request: httpx.Request) -> dict:
    return json.loads(multipart_parts(request)["request"])


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── Fixtures ─────────────────────────────────────────────────────

@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def backend_client(fake_backend: FakeBackend) -> AsyncGenerator[BackendClient, None]:
    client = BackendClient(
        config=ApiConfig(base_url=BACKEND_URL),
        timeout=5.0,
        transport=fake_backend.transport,
    )
    yield client
    await client.aclose()


@pytest.fixture
def make_wizard(backend_client: BackendClient, clock: FakeClock) -> Callable[..., SignupWizard]:
    """Wizards with a manual countdown (tick()) and an immediate hand-off."""
    created: list[SignupWizard] = []

    def _make(**kwargs) -> SignupWizard:
        options = {
            "window_seconds": 180,
            "resend_cooldown_seconds": 30,
            "tick_interval": None,
            "clock": clock,
            "handoff_delay": 0,
        }
        options.update(kwargs)
        wizard = SignupWizard(backend_client, **options)
        created.append(wizard)
        return wizard

    yield _make

    for wizard in created:
        wizard.close()


@pytest.fixture
def wizard(make_wizard) -> SignupWizard:
    return make_wizard()


@pytest.fixture
def session_store(make_wizard, clock: FakeClock) -> SignupSessionStore:
    return SignupSessionStore(factory=make_wizard, ttl_seconds=1800, clock=clock)


@pytest_asyncio.fixture
async def client(
    backend_client: BackendClient,
    session_store: SignupSessionStore,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app with the backend and session store overridden."""
    app.dependency_overrides[get_backend_client] = lambda: backend_client
    app.dependency_overrides[get_session_store] = lambda: session_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")
    config.addinivalue_line("markers", "auth: Login and credential tests")
    config.addinivalue_line("markers", "middleware: Middleware tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
