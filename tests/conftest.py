import httpx
import pytest

from rollingrequests.rolling import RollingRequests
from tests.mocks.endpoints import FakeHTTPBin
from tests.mocks.server import serve_slow_api


@pytest.fixture(autouse=True)
def test_unset_env(monkeypatch):
    monkeypatch.delenv("ROLLINGREQUESTS_LIMIT", raising=False)
    monkeypatch.delenv("ROLLINGREQUESTS_TIMEOUT", raising=False)
    monkeypatch.delenv("ROLLINGREQUESTS_HTTP2", raising=False)


@pytest.fixture
def fake_api() -> FakeHTTPBin:
    """Create a fake HTTP service."""
    return FakeHTTPBin()


@pytest.fixture
def mock_transport(fake_api: FakeHTTPBin) -> httpx.MockTransport:
    """Create a mock transport serving the fake HTTP service."""
    return fake_api.transport()


@pytest.fixture
def make_rolling(mock_transport: httpx.MockTransport):
    """
    Build executors wired to the fake HTTP service.

    Returns
    -------
    typing.Callable[..., RollingRequests]
        Factory accepting ``RollingConfig`` fields as keyword arguments.
    """

    def factory(**config) -> RollingRequests:
        return RollingRequests(transport=mock_transport, **config)

    return factory


@pytest.fixture
def slow_api_url():
    """Serve a real local HTTP API with one route slower than short timeouts."""
    with serve_slow_api() as base_url:
        yield base_url
