"""
HTTP and HTTPS transport adapter built on aiohttp.

Each hop opens its own ClientSession; nothing is pooled across hops or calls.
Redirects are never followed by aiohttp itself: the redirect loop decides.
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientTimeout

from ..buffer import StreamingBuffer
from ..config.models import EngineConfig
from ..exceptions import ConfigurationError, ErrorHandler
from ..models.locator import Locator
from ..models.options import FetchOptions
from ..proxy import ProxySpec
from .base import (
    Failed,
    HopOutcome,
    TransportAdapter,
    classify_http_status,
    invoke_callback,
    record_response,
)

logger = logging.getLogger(__name__)


def build_ssl_context(options: FetchOptions) -> ssl.SSLContext:
    """
    TLS context for an HTTPS hop.

    ``ssl_ca_cert`` entries replace the default trust store; directories are
    loaded as hashed certificate directories.
    """
    ca_certs = options.ca_cert_paths()
    if ca_certs:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        for cert in ca_certs:
            if cert.is_dir():
                context.load_verify_locations(capath=str(cert))
            else:
                context.load_verify_locations(cafile=str(cert))
    else:
        context = ssl.create_default_context()

    if options.ssl_verify_mode is not None:
        if options.ssl_verify_mode == ssl.CERT_NONE:
            context.check_hostname = False
        context.verify_mode = options.ssl_verify_mode

    if options.ssl_version is not None:
        context.minimum_version = options.ssl_version
        context.maximum_version = options.ssl_version
    return context


class HTTPTransport(TransportAdapter):
    """
    GET over HTTP/1.1 with aiohttp.

    The body is stored exactly as received: no automatic decompression and no
    automatic Accept-Encoding, so ``content_encoding()`` describes the bytes.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def _request_headers(self, options: FetchOptions) -> Dict[str, str]:
        headers = {"User-Agent": self.config.user_agent}
        for name, value in options.headers.items():
            for existing in list(headers):
                if existing.lower() == name.lower():
                    del headers[existing]
            headers[name] = value
        return headers

    async def fetch(
        self,
        target: Locator,
        buffer: StreamingBuffer,
        proxy: Optional[ProxySpec],
        options: FetchOptions,
    ) -> HopOutcome:
        if target.userinfo is not None:
            raise ConfigurationError("userinfo not supported.  [RFC3986]", url=str(target))

        auth = None
        if options.http_basic_authentication is not None:
            user, password = options.http_basic_authentication
            auth = aiohttp.BasicAuth(user, password)

        ssl_context = build_ssl_context(options) if target.scheme == "https" else None
        timeout = ClientTimeout(
            total=None, sock_connect=options.open_timeout, sock_read=options.read_timeout
        )

        logger.debug("GET %s%s", target, f" via proxy {proxy.url}" if proxy else "")
        try:
            async with aiohttp.ClientSession(
                timeout=timeout,
                auto_decompress=False,
                skip_auto_headers=("Accept-Encoding",),
            ) as session:
                async with session.get(
                    str(target),
                    headers=self._request_headers(options),
                    auth=auth,
                    proxy=proxy.url if proxy else None,
                    proxy_auth=proxy.basic_auth if proxy else None,
                    allow_redirects=False,
                    ssl=ssl_context if ssl_context is not None else True,
                ) as response:
                    record_response(
                        buffer, response.status, response.reason or "", response.headers.items()
                    )
                    success = 200 <= response.status < 300
                    if success:
                        await invoke_callback(options.content_length_proc, response.content_length)

                    async for chunk in response.content.iter_chunked(self.config.http_chunk_size):
                        buffer.append(chunk)
                        if success:
                            await invoke_callback(options.progress_proc, buffer.size)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return Failed(ErrorHandler.handle_aiohttp_error(e, str(target)))

        return classify_http_status(target, response.status, response.reason or "", buffer.meta.meta)
