"""
Fetch options model for uri_open.

FetchOptions is the validated form of the option mapping accepted by
``open_uri``. Only the keys declared here are recognized; anything else is
rejected before any network activity.
"""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

CACert = Union[str, Path]


class FetchOptions(BaseModel):
    """
    Options recognized by the fetch engine.

    ``proxy`` and ``proxy_http_basic_authentication`` are checked by the
    proxy resolver, which needs to know whether they were given at all;
    see ``model_fields_set``.
    """

    model_config = ConfigDict(
        extra="forbid", frozen=True, arbitrary_types_allowed=True
    )

    # Proxy policy
    proxy: Any = Field(
        default=True,
        description="Proxy locator (str or Locator), True for the environment "
        "proxy, False or None for a direct connection.",
    )
    proxy_http_basic_authentication: Optional[Tuple[Any, Any, Any]] = Field(
        default=None,
        description="(proxy locator, user, password) for an authenticating proxy.",
    )

    # Transfer callbacks
    progress_proc: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called with the cumulative byte count after each chunk.",
    )
    content_length_proc: Optional[Callable[..., Any]] = Field(
        default=None,
        description="Called once with the expected size in bytes (or None) "
        "before the transfer starts.",
    )

    # Authentication
    http_basic_authentication: Optional[Tuple[str, str]] = Field(
        default=None,
        description="(user, password) sent to the originally requested locator only.",
    )

    # Timeouts
    read_timeout: Optional[float] = Field(default=None, gt=0)
    open_timeout: Optional[float] = Field(default=None, gt=0)

    # TLS trust settings
    ssl_ca_cert: Optional[Union[CACert, List[CACert]]] = Field(
        default=None,
        description="CA certificate file(s) or directories; replaces the default store.",
    )
    ssl_verify_mode: Optional[ssl.VerifyMode] = None
    ssl_version: Optional[ssl.TLSVersion] = None

    # FTP
    ftp_active_mode: bool = False

    # Behaviour
    redirect: bool = True
    encoding: Optional[str] = None
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Extra request header fields."
    )

    def is_given(self, name: str) -> bool:
        """Whether an option was supplied explicitly."""
        return name in self.model_fields_set

    def for_redirect(self) -> "FetchOptions":
        """Options for the next hop: basic auth is never forwarded."""
        if self.http_basic_authentication is None:
            return self
        return self.model_copy(update={"http_basic_authentication": None})

    def ca_cert_paths(self) -> List[Path]:
        if self.ssl_ca_cert is None:
            return []
        certs = self.ssl_ca_cert if isinstance(self.ssl_ca_cert, list) else [self.ssl_ca_cert]
        return [Path(cert) for cert in certs]
