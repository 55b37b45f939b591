"""
FTP transport adapter built on aioftp.

The access sequence follows RFC 1738: log in (anonymously unless the locator
carries credentials), CWD into each directory segment, then RETR the file in
binary mode, or in ASCII mode for type-code ``a``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import unquote

import aioftp

from ..buffer import StreamingBuffer
from ..config.models import EngineConfig
from ..exceptions import ConfigurationError, ErrorHandler
from ..models.locator import FTP_TYPECODES, Locator
from ..models.options import FetchOptions
from ..proxy import ProxySpec
from .base import Completed, Failed, HopOutcome, TransportAdapter, invoke_callback

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"

_CONTROL_RE = re.compile(r"[\r\n]")


def split_ftp_path(target: Locator) -> Tuple[List[str], str]:
    """
    Directory segments and filename of an FTP locator.

    The leading ``/`` separates the path from the host and is not part of
    it; an absolute path is written with a leading ``%2F``. Segments are
    percent-decoded after splitting.

    Raises:
        ConfigurationError: On a missing filename or CR/LF in any segment
    """
    path = target.path[1:] if target.path.startswith("/") else target.path
    segments = [unquote(segment) for segment in path.split("/")]
    filename = segments.pop()
    if not filename:
        raise ConfigurationError(f"no filename: {target}", url=str(target))
    for directory in segments:
        if _CONTROL_RE.search(directory):
            raise ConfigurationError(f"invalid directory: {directory!r}", url=str(target))
    if _CONTROL_RE.search(filename):
        raise ConfigurationError(f"invalid filename: {filename!r}", url=str(target))
    return segments, filename


class FTPTransport(TransportAdapter):
    """
    RETR over FTP with aioftp, in passive mode.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    async def fetch(
        self,
        target: Locator,
        buffer: StreamingBuffer,
        proxy: Optional[ProxySpec],
        options: FetchOptions,
    ) -> HopOutcome:
        directories, filename = split_ftp_path(target)
        typecode = target.typecode
        if typecode is not None and typecode not in FTP_TYPECODES:
            raise ConfigurationError(f"invalid typecode: {typecode!r}", url=str(target))

        if options.ftp_active_mode:
            logger.warning("FTP active mode is not supported, using passive mode for %s", target)
        conn_type = "A" if typecode == "a" else "I"
        if typecode == "d":
            logger.warning("FTP typecode d is not supported, retrieving %s as binary", target)

        user = target.user or ANONYMOUS_USER
        password = target.password
        if _CONTROL_RE.search(user) or (password and _CONTROL_RE.search(password)):
            raise ConfigurationError(f"invalid userinfo: {target.without_userinfo()}", url=str(target))
        client = aioftp.Client(
            socket_timeout=options.read_timeout,
            connection_timeout=options.open_timeout,
        )
        operation = "connect"
        try:
            await client.connect(target.hostname, target.effective_port)
            operation = "login"
            if password is None:
                await client.login(user)
            else:
                await client.login(user, password)

            for directory in directories:
                operation = f"CWD {directory}"
                await client.command(operation, "2xx")

            if options.content_length_proc is not None:
                await invoke_callback(options.content_length_proc, await self._size(client, filename))

            operation = f"RETR {filename}"
            logger.debug("RETR %s (TYPE %s)", target, conn_type)
            async with client.get_stream(operation, "1xx", conn_type=conn_type) as stream:
                async for block in stream.iter_by_block(self.config.ftp_block_size):
                    buffer.append(block)
                    await invoke_callback(options.progress_proc, buffer.size)

            operation = "QUIT"
            await client.quit()
        except (aioftp.StatusCodeError, asyncio.TimeoutError, OSError) as e:
            return Failed(ErrorHandler.handle_ftp_error(e, str(target), operation))
        finally:
            client.close()

        return Completed()

    async def _size(self, client: aioftp.Client, filename: str) -> Optional[int]:
        """Remote file size from SIZE, None when the server does not say."""
        try:
            _, info = await client.command(f"SIZE {filename}", "213")
        except aioftp.StatusCodeError:
            logger.debug("SIZE %s refused, content length unknown", filename)
            return None
        try:
            return int(" ".join(info).split()[-1])
        except (ValueError, IndexError):
            return None
