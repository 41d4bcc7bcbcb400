"""Global test configuration for passwordsafe_utils tests."""

import threading
import time
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest
from passwordsafe_utils.passwordsafe_api import PasswordSafeApi, Session

API_URL = "https://ps.example.com/BeyondTrust/api/public/v3"

Route = httpx.Response | Exception


class FakeSessionTransport:
    """Counts physical sign-ins and sign-outs, thread-safe."""

    def __init__(self, sign_in_delay: float = 0.0) -> None:
        self.sign_in_delay = sign_in_delay
        self.sign_in_calls = 0
        self.sign_out_calls = 0
        self.sign_in_error: Exception | None = None
        self.sign_out_error: Exception | None = None
        self.before_sign_out: Callable[[], None] | None = None
        self._lock = threading.Lock()

    def sign_in(self) -> Session:
        with self._lock:
            self.sign_in_calls += 1
        time.sleep(self.sign_in_delay)
        if self.sign_in_error:
            raise self.sign_in_error
        return Session(user_id=1, user_name="svc-terraform")

    def sign_out(self) -> None:
        with self._lock:
            self.sign_out_calls += 1
        if self.before_sign_out:
            self.before_sign_out()
        if self.sign_out_error:
            raise self.sign_out_error


@pytest.fixture
def fake_transport() -> FakeSessionTransport:
    return FakeSessionTransport()


@pytest.fixture
def mock_httpx_client() -> MagicMock:
    """Mock httpx.Client."""
    return MagicMock(spec=httpx.Client)


@pytest.fixture
def mock_httpx_client_cls(
    mock_httpx_client: MagicMock,
) -> Generator[MagicMock, None, None]:
    with patch("passwordsafe_utils.passwordsafe_api.client.httpx.Client") as mock_cls:
        mock_cls.return_value = mock_httpx_client
        yield mock_cls


@pytest.fixture
def passwordsafe_api(mock_httpx_client_cls: MagicMock) -> PasswordSafeApi:
    """Create PasswordSafeApi instance with mocked httpx client."""
    return PasswordSafeApi(url=API_URL, api_key="test-key", account_name="svc-terraform")


class Router:
    """Answers mocked httpx.Client.request calls by (verb, path)."""

    def __init__(self, routes: dict[tuple[str, str], Route]) -> None:
        self.routes = routes
        self.calls: list[tuple[str, str]] = []
        self.kwargs: dict[tuple[str, str], dict[str, Any]] = {}
        self._lock = threading.Lock()

    def __call__(self, verb: str, path: str, **kwargs: Any) -> httpx.Response:
        with self._lock:
            self.calls.append((verb, path))
            self.kwargs[verb, path] = kwargs
        route = self.routes[verb, path]
        if isinstance(route, Exception):
            raise route
        return route

    def count(self, verb: str, path: str) -> int:
        return self.calls.count((verb, path))


@pytest.fixture
def router(mock_httpx_client: MagicMock) -> Callable[[dict[tuple[str, str], Route]], Router]:
    def _install(routes: dict[tuple[str, str], Route]) -> Router:
        r = Router(routes)
        mock_httpx_client.request.side_effect = r
        return r

    return _install
