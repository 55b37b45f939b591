"""
Exception hierarchy and error conversion for uri_open.

This module provides the errors surfaced by the fetch engine together with
utilities that convert aiohttp and aioftp exceptions into that hierarchy.
Nothing here retries: every error reaches the immediate caller.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict, Optional

import aiohttp
import aioftp

if TYPE_CHECKING:
    from .stream import MetaStream


class URIOpenError(Exception):
    """
    Base exception for all uri_open operations.

    Attributes:
        message: Human-readable error message
        url: Locator that caused the error (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.details = kwargs


class ConfigurationError(URIOpenError):
    """
    Raised for invalid options, modes, proxies or locators.

    Always raised before (or without) any network activity and never retried.

    Attributes:
        option: Name of the offending option, when one is to blame
    """

    def __init__(
        self, message: str, url: Optional[str] = None, option: Optional[str] = None
    ) -> None:
        super().__init__(message, url)
        self.option = option


class InvalidLocatorError(ConfigurationError):
    """Raised when a string cannot be parsed into a locator."""

    pass


# Redirect policy errors


class RedirectError(URIOpenError):
    """Base exception for redirect policy violations."""

    pass


class RedirectLoopError(RedirectError):
    """Raised when a redirect chain revisits a locator."""

    def __init__(self, uri: Any) -> None:
        super().__init__(f"HTTP redirection loop: {uri}", str(uri))
        self.uri = uri


class ForbiddenRedirectError(RedirectError):
    """Raised on scheme downgrades and redirects to unsupported schemes."""

    def __init__(self, source: Any, target: Any) -> None:
        super().__init__(f"redirection forbidden: {source} -> {target}", str(source))
        self.source = source
        self.target = target


# Protocol errors


class ProtocolError(URIOpenError):
    """
    Raised for non-success responses from a transport adapter.

    Attributes:
        io: Partial response stream (owned by whoever handles the error)
        status: ``(code, message)`` of the failing response, if any
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        io: Optional[MetaStream] = None,
        status: Optional[tuple] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, url, **kwargs)
        self.io = io
        self.status = status


class HTTPError(ProtocolError):
    """Raised for HTTP responses that are neither success nor redirect."""

    def __init__(
        self,
        message: str,
        status_code: int,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        io: Optional[MetaStream] = None,
        reason: str = "",
    ) -> None:
        super().__init__(message, url, io=io, status=(status_code, reason))
        self.status_code = status_code
        self.headers = headers or {}


class AuthenticationError(HTTPError):
    """Raised for authentication-related errors (401, 403)."""

    pass


class NotFoundError(HTTPError):
    """Raised when resource is not found (404)."""

    pass


class ServerError(HTTPError):
    """Raised for server errors (5xx)."""

    pass


class RedirectDisabledError(HTTPError):
    """
    Raised on a redirect response while the ``redirect`` option is off.

    The partial response and the pending target are kept so the caller can
    inspect them or follow the redirect by hand.

    Attributes:
        uri: The absolute locator the server redirected to
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        uri: Any,
        url: Optional[str] = None,
        io: Optional[MetaStream] = None,
        reason: str = "",
    ) -> None:
        super().__init__(message, status_code, url, io=io, reason=reason)
        self.uri = uri


class FTPError(ProtocolError):
    """Raised when an FTP command is refused by the server."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        ftp_code: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, url, **kwargs)
        self.ftp_code = ftp_code


# Transport errors


class TransportError(URIOpenError):
    """Raised for connection, timeout and I/O failures below the protocol."""

    pass


class ConnectionError(TransportError):
    """
    Raised when connection fails.

    Covers refused connections, unreachable hosts, DNS and TLS failures.
    """

    pass


class TimeoutError(TransportError):
    """
    Raised when a connect or read exceeds the configured timeout.

    Attributes:
        timeout_value: The timeout value that was exceeded (in seconds)
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_value: Optional[float] = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_value = timeout_value


class ErrorHandler:
    """
    Converts third-party exceptions into the uri_open hierarchy.
    """

    @staticmethod
    def handle_aiohttp_error(
        error: Exception, url: Optional[str] = None
    ) -> URIOpenError:
        """
        Convert aiohttp exceptions to custom URIOpenError subclasses.

        Args:
            error: The original aiohttp exception
            url: The locator being fetched

        Returns:
            Appropriate URIOpenError subclass
        """
        if isinstance(error, (asyncio.TimeoutError, aiohttp.ServerTimeoutError)):
            return TimeoutError(f"Request timed out: {error}", url=url)

        elif isinstance(error, aiohttp.ClientSSLError):
            return ConnectionError(f"SSL error: {error}", url=url)

        elif isinstance(error, aiohttp.ClientConnectionError):
            return ConnectionError(f"Connection error: {error}", url=url)

        elif isinstance(error, aiohttp.ClientPayloadError):
            return TransportError(f"Payload error: {error}", url=url)

        elif isinstance(error, aiohttp.InvalidURL):
            return InvalidLocatorError(f"Invalid URL: {error}", url=url)

        elif isinstance(error, OSError):
            return ConnectionError(f"I/O error: {error}", url=url)

        else:
            return TransportError(f"Unexpected network error: {error}", url=url)

    @staticmethod
    def handle_http_status(
        status_code: int,
        reason: str,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        suffix: str = "",
    ) -> HTTPError:
        """
        Create appropriate HTTPError subclass based on status code.

        The message is the status line, ``"404 Not Found"``, followed by
        ``suffix``.
        """
        message = f"{status_code} {reason}".rstrip() + suffix

        if status_code in (401, 403):
            return AuthenticationError(message, status_code, url, headers, reason=reason)

        elif status_code == 404:
            return NotFoundError(message, status_code, url, headers, reason=reason)

        elif 500 <= status_code < 600:
            return ServerError(message, status_code, url, headers, reason=reason)

        else:
            return HTTPError(message, status_code, url, headers, reason=reason)

    @staticmethod
    def handle_ftp_error(
        error: Exception, url: Optional[str] = None, operation: Optional[str] = None
    ) -> URIOpenError:
        """
        Convert aioftp exceptions to custom URIOpenError subclasses.

        Args:
            error: The original FTP exception
            url: The FTP locator being fetched
            operation: The FTP command being performed

        Returns:
            Appropriate URIOpenError subclass
        """
        prefix = f"FTP {operation} failed" if operation else "FTP error"

        if isinstance(error, aioftp.StatusCodeError):
            received = getattr(error, "received_codes", ())
            ftp_code = str(received[-1]) if received else None
            info = " ".join(getattr(error, "info", []) or []).strip()
            return FTPError(f"{prefix}: {info or error}", url=url, ftp_code=ftp_code)

        elif isinstance(error, asyncio.TimeoutError):
            return TimeoutError(f"{prefix}: timed out", url=url)

        elif isinstance(error, OSError):
            return ConnectionError(f"{prefix}: {error}", url=url)

        else:
            return TransportError(f"{prefix}: {error}", url=url)
