"""
Data models for the uri_open library.

This package contains the locator value type, the response metadata model
and the fetch options model.
"""

from .locator import DEFAULT_PORTS, FTP_TYPECODES, Locator
from .metadata import DEFAULT_CONTENT_TYPE, ResponseMetadata
from .options import FetchOptions

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "DEFAULT_PORTS",
    "FTP_TYPECODES",
    "FetchOptions",
    "Locator",
    "ResponseMetadata",
]
