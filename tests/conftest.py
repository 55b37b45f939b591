"""
Shared test fixtures and configuration for the uri_open test suite.
"""

import tempfile
from http import HTTPStatus
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import pytest

from uri_open import URIOpener
from uri_open.buffer import StreamingBuffer
from uri_open.models import FetchOptions, Locator
from uri_open.proxy import ProxySpec
from uri_open.transport import (
    HopOutcome,
    TransportAdapter,
    TransportRegistry,
    classify_http_status,
    record_response,
)


class ScriptedTransport(TransportAdapter):
    """
    Adapter that answers from a table instead of the network.

    ``routes`` maps a locator string to ``(status, headers, body)`` or to an
    exception instance, which is raised after writing a large partial body.
    """

    def __init__(self, routes: Dict[str, Any]) -> None:
        self.routes = routes
        self.calls: List[Tuple[str, Optional[ProxySpec], FetchOptions]] = []
        self.buffers: List[StreamingBuffer] = []

    async def fetch(
        self,
        target: Locator,
        buffer: StreamingBuffer,
        proxy: Optional[ProxySpec],
        options: FetchOptions,
    ) -> HopOutcome:
        self.calls.append((str(target), proxy, options))
        self.buffers.append(buffer)
        route = self.routes[str(target)]
        if isinstance(route, BaseException):
            buffer.append(b"x" * 20000)
            raise route

        status, headers, body = route
        reason = HTTPStatus(status).phrase
        record_response(buffer, status, reason, headers.items())
        buffer.append(body)
        return classify_http_status(target, status, reason, buffer.meta.meta)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def scripted():
    """Factory for an opener backed by a ScriptedTransport, with no proxies by default."""

    def make(
        routes: Dict[str, Any], proxy_lookup: Optional[Callable[[Locator], Optional[Locator]]] = None
    ) -> Tuple[URIOpener, ScriptedTransport]:
        transport = ScriptedTransport(routes)
        registry = TransportRegistry(
            {"http": transport, "https": transport, "ftp": transport}
        )
        lookup = proxy_lookup or (lambda target: None)
        return URIOpener(transports=registry, proxy_lookup=lookup), transport

    return make


@pytest.fixture
def large_body() -> bytes:
    """A body that does not fit in the in-memory buffer."""
    return b"0123456789" * 2000
