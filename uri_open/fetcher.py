"""
Redirect-following fetch loop and the public entry points.

A logical fetch validates its options once, then runs hops until one
completes, fails, or violates the redirect policy. Every hop gets a fresh
StreamingBuffer; buffers of abandoned hops are discarded on every path.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Generator, Mapping, Optional, Set, Union

from .buffer import StreamingBuffer
from .config.models import EngineConfig
from .exceptions import (
    ConfigurationError,
    ForbiddenRedirectError,
    ProtocolError,
    RedirectDisabledError,
    RedirectLoopError,
)
from .models.locator import Locator
from .models.options import FetchOptions
from .proxy import ProxyLookup, ProxyResolver
from .stream import FetchedContent, MetaStream
from .transport import Completed, Failed, Redirect, TransportRegistry, default_registry
from .validation import parse_mode, resolve_encoding, validate_options

logger = logging.getLogger(__name__)

_REDIRECT_FROM = frozenset({"http", "ftp"})
_REDIRECT_TO = frozenset({"http", "https", "ftp"})


def redirectable(source: Locator, target: Locator) -> bool:
    """
    Whether a redirect from ``source`` to ``target`` may be followed.

    Same-scheme redirects are always allowed. Across schemes only http and
    ftp may move, and only to http, https or ftp; https never downgrades.
    """
    if source.scheme.lower() == target.scheme.lower():
        return True
    return source.scheme.lower() in _REDIRECT_FROM and target.scheme.lower() in _REDIRECT_TO


class OpenContext:
    """
    Result of ``open``: await it to own the stream, or use ``async with``.

    Used as an async context manager the stream is closed, and its temporary
    file removed, however the block exits.
    """

    def __init__(self, factory: Callable[[], Awaitable[MetaStream]]) -> None:
        self._factory = factory
        self._stream: Optional[MetaStream] = None

    def __await__(self) -> Generator[Any, None, MetaStream]:
        return self._factory().__await__()

    async def __aenter__(self) -> MetaStream:
        self._stream = await self._factory()
        return self._stream

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None


class URIOpener:
    """
    Opens http, https and ftp locators, following redirects.

    Args:
        config: Engine configuration (buffer threshold, chunk sizes, User-Agent)
        transports: Scheme -> adapter registry; defaults to the built-in adapters
        proxy_lookup: Environment-style proxy lookup used when ``proxy`` is True
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        transports: Optional[TransportRegistry] = None,
        proxy_lookup: Optional[ProxyLookup] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.transports = transports or default_registry(self.config)
        self.proxy_lookup = proxy_lookup

    def _locator(self, name: Union[str, Locator]) -> Locator:
        if isinstance(name, Locator):
            locator = name
        elif isinstance(name, str):
            locator = Locator.parse(name)
        else:
            raise ConfigurationError(f"cannot open {name!r}")
        if locator.is_relative or not self.transports.supports(locator.scheme):
            raise ConfigurationError(f"unsupported scheme: {locator}", url=str(locator))
        return locator

    def _prepare(
        self,
        name: Union[str, Locator],
        mode: Union[str, int, None],
        options: Optional[Mapping[str, Any]],
        kwargs: Mapping[str, Any],
    ):
        locator = self._locator(name)
        raw = dict(options or {})
        raw.update(kwargs)
        mode_encoding = parse_mode(mode)
        opts = validate_options(raw)
        encoding = resolve_encoding(mode_encoding, opts)
        resolver = ProxyResolver.from_options(opts, self.proxy_lookup)
        return locator, opts, encoding, resolver

    def open(
        self,
        name: Union[str, Locator],
        mode: Union[str, int, None] = None,
        options: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> OpenContext:
        """
        Open a locator for reading.

        Options are checked before anything is sent, so a bad option raises
        here, not when the result is awaited.

        Args:
            name: Absolute ``http``, ``https`` or ``ftp`` locator
            mode: ``None``, ``"r"``, ``"rb"``, ``"r:<enc>"``, ``"rb:<enc>"`` or ``os.O_RDONLY``
            options: Fetch options as a mapping
            **kwargs: Fetch options as keywords, merged over ``options``

        Raises:
            ConfigurationError: For invalid locators, modes or options
        """
        locator, opts, encoding, resolver = self._prepare(name, mode, options, kwargs)

        async def fetch() -> MetaStream:
            stream = await self._open_loop(locator, opts, resolver)
            if encoding is not None:
                stream.set_encoding(encoding)
            return stream

        return OpenContext(fetch)

    async def read(
        self,
        name: Union[str, Locator],
        options: Optional[Mapping[str, Any]] = None,
        **kwargs: Any,
    ) -> FetchedContent:
        """Fetch the whole content of a locator into memory."""
        locator, opts, encoding, resolver = self._prepare(name, None, options, kwargs)
        with await self._open_loop(locator, opts, resolver) as stream:
            result = FetchedContent(stream.read(), stream.meta_data.copy())
        if encoding is not None:
            result.set_encoding(encoding)
        return result

    async def _open_loop(
        self, start: Locator, options: FetchOptions, resolver: ProxyResolver
    ) -> MetaStream:
        target = start
        visited: Set[str] = {str(start)}

        while True:
            proxy = resolver.resolve(target)
            adapter = self.transports.select(target, proxy)
            buffer = StreamingBuffer(self.config.spill_threshold)
            logger.debug("Fetching %s", target)

            try:
                outcome = await adapter.fetch(target, buffer, proxy, options)
            except BaseException:
                buffer.discard()
                raise

            match outcome:
                case Completed():
                    stream = buffer.finalize()
                    stream.meta_data.base_uri = target
                    return stream

                case Redirect(location=location):
                    new_target = target.join(location) if location.is_relative else location

                    if not options.redirect:
                        code, reason = buffer.meta.status or (0, "")
                        stream = buffer.finalize()
                        stream.meta_data.base_uri = target
                        raise RedirectDisabledError(
                            f"{code} {reason}".rstrip(),
                            code,
                            new_target,
                            url=str(target),
                            io=stream,
                            reason=reason,
                        )

                    buffer.discard()
                    if not redirectable(target, new_target):
                        raise ForbiddenRedirectError(target, new_target)
                    if str(new_target) in visited:
                        raise RedirectLoopError(new_target)
                    visited.add(str(new_target))

                    logger.info("Redirected %s -> %s", target, new_target)
                    options = options.for_redirect()
                    target = new_target

                case Failed(error=error):
                    if isinstance(error, ProtocolError):
                        error.io = buffer.finalize()
                        error.io.meta_data.base_uri = target
                    else:
                        buffer.discard()
                    raise error


def open_uri(
    name: Union[str, Locator],
    mode: Union[str, int, None] = None,
    options: Optional[Mapping[str, Any]] = None,
    **kwargs: Any,
) -> OpenContext:
    """
    Open an ``http``, ``https`` or ``ftp`` locator for reading.

    Usage::

        async with open_uri("http://example.com/") as f:
            print(f.content_type(), f.read())

        f = await open_uri("ftp://ftp.example.org/pub/README", "r:utf-8")
        try:
            text = f.read_text()
        finally:
            f.close()
    """
    return URIOpener().open(name, mode, options, **kwargs)


async def read_uri(
    name: Union[str, Locator],
    options: Optional[Mapping[str, Any]] = None,
    **kwargs: Any,
) -> FetchedContent:
    """Read the whole resource; the result carries the response metadata."""
    return await URIOpener().read(name, options, **kwargs)
