"""Shared test fixtures and configuration."""

import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

# Add src to path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from mcpify.core.config.settings import reset_settings  # noqa: E402

from tests.fixtures.factories import DocumentFactory  # noqa: E402


class RecordingTransport(httpx.MockTransport):
    """Mock transport that remembers every request it answered."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recording_transport() -> Callable[..., RecordingTransport]:
    """Build a recording transport from a handler or a canned response."""

    def build(
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
        *,
        status_code: int = 200,
        json: object | None = None,
        text: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> RecordingTransport:
        if handler is None:

            def handler(request: httpx.Request) -> httpx.Response:
                if json is not None:
                    return httpx.Response(status_code, json=json, headers=headers)
                return httpx.Response(status_code, text=text or "", headers=headers)

        return RecordingTransport(handler)

    return build


@pytest.fixture
def petstore_document() -> dict:
    return DocumentFactory.petstore()


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate tests from the developer's environment and cached settings."""
    for var in (
        "OPENAPI_SPEC_URL",
        "BASE_URL",
        "TRANSPORT",
        "PORT",
        "HOST",
        "MCP_PATH",
        "AUTH_HEADERS",
        "LOG_LEVEL",
        "LOG_FILE",
        "OPEN_WORLD",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    yield
    reset_settings()
