"""
Transport adapter interface and hop outcomes.

An adapter performs one network exchange for one locator, streams the body
into a StreamingBuffer and reports how the hop ended as a HopOutcome. The
redirect loop never looks at protocol details beyond these types.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from ..buffer import StreamingBuffer
from ..exceptions import ConfigurationError, ErrorHandler, InvalidLocatorError, URIOpenError
from ..models.locator import Locator
from ..models.options import FetchOptions
from ..proxy import ProxySpec

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


@dataclass(frozen=True)
class Completed:
    """The hop produced the final content."""


@dataclass(frozen=True)
class Redirect:
    """The response names another locator (possibly relative)."""

    location: Locator


@dataclass(frozen=True)
class Failed:
    """The hop failed; ``error`` is raised by the loop."""

    error: URIOpenError


HopOutcome = Union[Completed, Redirect, Failed]


class TransportAdapter(ABC):
    """Per-scheme network exchange."""

    @abstractmethod
    async def fetch(
        self,
        target: Locator,
        buffer: StreamingBuffer,
        proxy: Optional[ProxySpec],
        options: FetchOptions,
    ) -> HopOutcome:
        """
        Fetch ``target`` into ``buffer``.

        Implementations set status and headers on ``buffer.meta``, call the
        progress and content-length callbacks of ``options`` during the
        transfer, and return Redirect for redirect-class responses.
        """


async def invoke_callback(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Run a user callback on the fetching path, awaiting coroutine functions."""
    if callback is None:
        return
    if asyncio.iscoroutinefunction(callback):
        await callback(*args)
    else:
        callback(*args)


def record_response(
    buffer: StreamingBuffer,
    status: int,
    reason: str,
    headers: Iterable[Tuple[str, str]],
) -> None:
    """Store the status line and every header value, grouped by name."""
    buffer.meta.status = (status, reason)
    grouped: Dict[str, list] = {}
    for name, value in headers:
        grouped.setdefault(name.lower(), []).append(value)
    for name, values in grouped.items():
        buffer.meta.add_header(name, values)


def classify_http_status(
    target: Locator, status: int, reason: str, headers: Mapping[str, str]
) -> HopOutcome:
    """
    Map an HTTP status to a hop outcome.

    Redirect responses need a parsable Location header; otherwise the hop
    fails with an HTTPError.
    """
    if 200 <= status < 300:
        return Completed()
    if status in REDIRECT_STATUSES:
        location = headers.get("location")
        if location:
            try:
                return Redirect(Locator.parse(location))
            except InvalidLocatorError:
                logger.debug("Unparsable Location header %r from %s", location, target)
        return Failed(
            ErrorHandler.handle_http_status(
                status, reason, str(target), dict(headers), suffix=" (Invalid Location URI)"
            )
        )
    return Failed(ErrorHandler.handle_http_status(status, reason, str(target), dict(headers)))


class TransportRegistry:
    """
    Explicit scheme -> adapter lookup.

    FTP locators reached through a proxy use the ``ftp_proxy`` adapter,
    which speaks HTTP to the proxy.
    """

    def __init__(
        self,
        adapters: Mapping[str, TransportAdapter],
        ftp_proxy: Optional[TransportAdapter] = None,
    ) -> None:
        self._adapters = {scheme.lower(): adapter for scheme, adapter in adapters.items()}
        self._ftp_proxy = ftp_proxy

    @property
    def schemes(self) -> Tuple[str, ...]:
        return tuple(self._adapters)

    def supports(self, scheme: str) -> bool:
        return scheme.lower() in self._adapters

    def select(self, target: Locator, proxy: Optional[ProxySpec]) -> TransportAdapter:
        """
        Raises:
            ConfigurationError: If no adapter handles the scheme
        """
        if target.scheme == "ftp" and proxy is not None and self._ftp_proxy is not None:
            return self._ftp_proxy
        try:
            return self._adapters[target.scheme]
        except KeyError:
            raise ConfigurationError(
                f"unsupported scheme {target.scheme!r}: {target}", url=str(target)
            ) from None
