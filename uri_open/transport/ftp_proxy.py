"""
FTP locators fetched through an HTTP proxy.

The proxy is asked for the absolute ``ftp://`` URL with a plain HTTP/1.0 GET,
so the response is an ordinary HTTP response (status, headers, body to EOF).
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

from ..buffer import StreamingBuffer
from ..config.models import EngineConfig
from ..exceptions import ConfigurationError, ErrorHandler, TransportError
from ..models.locator import Locator
from ..models.options import FetchOptions
from ..proxy import ProxySpec
from .base import (
    HopOutcome,
    Failed,
    TransportAdapter,
    classify_http_status,
    invoke_callback,
    record_response,
)

logger = logging.getLogger(__name__)


class FTPProxyTransport(TransportAdapter):
    """Fetch ``ftp://`` locators by asking an HTTP proxy for them."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def _build_request(self, target: Locator, proxy: ProxySpec, options: FetchOptions) -> bytes:
        lines = [f"GET {target} HTTP/1.0", f"Host: {target.without_userinfo().netloc}"]
        names = {name.lower() for name in options.headers}
        if "user-agent" not in names:
            lines.append(f"User-Agent: {self.config.user_agent}")
        for name, value in options.headers.items():
            lines.append(f"{name}: {value}")
        authorization = proxy.authorization_header()
        if authorization is not None:
            lines.append(f"Proxy-Authorization: {authorization}")
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

    async def _read_head(
        self, reader: asyncio.StreamReader, target: Locator, timeout: Optional[float]
    ) -> Tuple[int, str, List[Tuple[str, str]]]:
        try:
            return await self._parse_head(reader, target, timeout)
        except ValueError as e:
            raise TransportError(f"Oversized proxy response head: {e}", url=str(target)) from e

    async def _parse_head(
        self, reader: asyncio.StreamReader, target: Locator, timeout: Optional[float]
    ) -> Tuple[int, str, List[Tuple[str, str]]]:
        status_line = await asyncio.wait_for(reader.readline(), timeout)
        parts = status_line.decode("latin-1").rstrip("\r\n").split(" ", 2)
        if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
            raise TransportError(f"Malformed proxy status line: {status_line!r}", url=str(target))
        status = int(parts[1])
        reason = parts[2] if len(parts) > 2 else ""

        headers: List[Tuple[str, str]] = []
        while True:
            line = (await asyncio.wait_for(reader.readline(), timeout)).decode("latin-1")
            line = line.rstrip("\r\n")
            if not line:
                break
            if line[0] in " \t" and headers:
                name, value = headers[-1]
                headers[-1] = (name, f"{value} {line.strip()}")
                continue
            name, sep, value = line.partition(":")
            if sep:
                headers.append((name.strip(), value.strip()))
        return status, reason, headers

    async def fetch(
        self,
        target: Locator,
        buffer: StreamingBuffer,
        proxy: Optional[ProxySpec],
        options: FetchOptions,
    ) -> HopOutcome:
        if proxy is None:
            raise ConfigurationError(f"no proxy for {target}", url=str(target))
        if target.userinfo is not None:
            raise ConfigurationError("userinfo not supported.  [RFC3986]", url=str(target))
        logger.debug("GET %s via proxy %s", target, proxy.url)

        writer = None
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(proxy.locator.hostname, proxy.locator.effective_port),
                options.open_timeout,
            )
            writer.write(self._build_request(target, proxy, options))
            await writer.drain()

            status, reason, headers = await self._read_head(reader, target, options.read_timeout)
            record_response(buffer, status, reason, headers)
            success = 200 <= status < 300
            if success:
                length = buffer.meta.header("content-length")
                await invoke_callback(
                    options.content_length_proc,
                    int(length) if length and length.isdigit() else None,
                )

            while True:
                chunk = await asyncio.wait_for(
                    reader.read(self.config.http_chunk_size), options.read_timeout
                )
                if not chunk:
                    break
                buffer.append(chunk)
                if success:
                    await invoke_callback(options.progress_proc, buffer.size)
        except TransportError as e:
            return Failed(e)
        except (asyncio.TimeoutError, asyncio.IncompleteReadError, OSError) as e:
            return Failed(ErrorHandler.handle_aiohttp_error(e, str(target)))
        finally:
            if writer is not None:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError as e:
                    logger.debug("Proxy connection for %s closed with error: %s", target, e)

        return classify_http_status(target, status, reason, buffer.meta.meta)
