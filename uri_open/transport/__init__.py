"""
Transport adapters for uri_open.

Each adapter performs a single hop for one scheme. ``default_registry`` wires
the built-in adapters for http, https and ftp.
"""

from typing import Optional

from ..config.models import EngineConfig
from .base import (
    REDIRECT_STATUSES,
    Completed,
    Failed,
    HopOutcome,
    Redirect,
    TransportAdapter,
    TransportRegistry,
    classify_http_status,
    invoke_callback,
    record_response,
)
from .ftp import FTPTransport, split_ftp_path
from .ftp_proxy import FTPProxyTransport
from .http import HTTPTransport, build_ssl_context


def default_registry(config: Optional[EngineConfig] = None) -> TransportRegistry:
    """Registry with the HTTP(S) and FTP adapters sharing one engine config."""
    config = config or EngineConfig()
    http = HTTPTransport(config)
    return TransportRegistry(
        {"http": http, "https": http, "ftp": FTPTransport(config)},
        ftp_proxy=FTPProxyTransport(config),
    )


__all__ = [
    "REDIRECT_STATUSES",
    "Completed",
    "Failed",
    "HopOutcome",
    "Redirect",
    "TransportAdapter",
    "TransportRegistry",
    "classify_http_status",
    "invoke_callback",
    "record_response",
    "FTPTransport",
    "split_ftp_path",
    "FTPProxyTransport",
    "HTTPTransport",
    "build_ssl_context",
    "default_registry",
]
