"""
Async reading of http, https and ftp resources as streams with metadata.

Features:
- ``open_uri`` / ``read_uri`` entry points built on aiohttp and aioftp
- Redirect following with loop detection and scheme-downgrade protection
- Proxy selection from options or ``<scheme>_proxy`` environment variables
- Responses buffered in memory, spilling to a temporary file when large
- Response metadata: status, headers, content type, charset, encodings
"""

from .buffer import STRING_MAX, StreamingBuffer
from .config import ConfigLoader, EngineConfig, LoggingConfig, LogLevel
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    ErrorHandler,
    FTPError,
    ForbiddenRedirectError,
    HTTPError,
    InvalidLocatorError,
    NotFoundError,
    ProtocolError,
    RedirectDisabledError,
    RedirectError,
    RedirectLoopError,
    ServerError,
    TimeoutError,
    TransportError,
    URIOpenError,
)
from .fetcher import OpenContext, URIOpener, open_uri, read_uri, redirectable
from .logging import setup_logging
from .models import FetchOptions, Locator, ResponseMetadata
from .proxy import EnvironmentProxyLookup, ProxyResolver, ProxySpec
from .stream import FetchedContent, MetaStream
from .transport import (
    FTPProxyTransport,
    FTPTransport,
    HTTPTransport,
    TransportAdapter,
    TransportRegistry,
    default_registry,
)

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "open_uri",
    "read_uri",
    "URIOpener",
    "OpenContext",
    "redirectable",
    # Models
    "Locator",
    "FetchOptions",
    "ResponseMetadata",
    "MetaStream",
    "FetchedContent",
    "StreamingBuffer",
    "STRING_MAX",
    # Proxies
    "ProxyResolver",
    "ProxySpec",
    "EnvironmentProxyLookup",
    # Transports
    "TransportAdapter",
    "TransportRegistry",
    "HTTPTransport",
    "FTPTransport",
    "FTPProxyTransport",
    "default_registry",
    # Configuration
    "ConfigLoader",
    "EngineConfig",
    "LoggingConfig",
    "LogLevel",
    "setup_logging",
    # Exceptions
    "URIOpenError",
    "ConfigurationError",
    "InvalidLocatorError",
    "RedirectError",
    "RedirectLoopError",
    "ForbiddenRedirectError",
    "RedirectDisabledError",
    "ProtocolError",
    "HTTPError",
    "AuthenticationError",
    "NotFoundError",
    "ServerError",
    "FTPError",
    "TransportError",
    "ConnectionError",
    "TimeoutError",
    "ErrorHandler",
]
