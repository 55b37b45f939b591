"""
Locator value type for uri_open.

A Locator is an immutable, parsed URI. It knows how to resolve relative
references (redirect targets) and exposes the scheme-specific pieces the
transport adapters need: FTP type-codes, request targets and credentials.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional, Union
from urllib.parse import unquote, urljoin, urlsplit, urlunsplit

from ..exceptions import InvalidLocatorError

DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21}

FTP_TYPECODES = ("a", "i", "d")

_TYPECODE_RE = re.compile(r";type=([^;/]*)\Z", re.IGNORECASE)


@dataclass(frozen=True)
class Locator:
    """
    Immutable parsed URI.

    Attributes:
        scheme: Lowercased scheme, empty for relative references
        host: Host name as written (IPv6 literals without brackets)
        port: Explicit port, or None when the scheme default applies
        path: Percent-encoded path, without the FTP ``;type=`` suffix
        query: Query string without the leading ``?``
        fragment: Fragment without the leading ``#``
        userinfo: Raw ``user[:password]`` component
        typecode: FTP type-code (``a``, ``i`` or ``d``)
    """

    scheme: str = ""
    host: Optional[str] = None
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""
    userinfo: Optional[str] = None
    typecode: Optional[str] = None

    @classmethod
    def parse(cls, text: Union[str, "Locator"]) -> "Locator":
        """
        Parse a URI string into a Locator.

        Args:
            text: URI string (absolute or relative) or an existing Locator

        Returns:
            Parsed Locator

        Raises:
            InvalidLocatorError: If the string is not a valid URI
        """
        if isinstance(text, Locator):
            return text
        if not isinstance(text, str):
            raise InvalidLocatorError(f"bad URI (not a string): {text!r}")
        if any(ch in text for ch in "\r\n\t "):
            raise InvalidLocatorError(f"bad URI (contains whitespace): {text!r}", url=text)

        try:
            parts = urlsplit(text)
            port = parts.port
        except ValueError as e:
            raise InvalidLocatorError(f"bad URI: {text!r} ({e})", url=text) from e

        scheme = parts.scheme.lower()
        userinfo = None
        if "@" in parts.netloc:
            userinfo = parts.netloc.rpartition("@")[0]

        path = parts.path
        typecode = None
        if scheme == "ftp":
            match = _TYPECODE_RE.search(path)
            if match:
                typecode = match.group(1).lower()
                path = path[: match.start()]
                if typecode not in FTP_TYPECODES:
                    raise InvalidLocatorError(
                        f"invalid typecode: {match.group(1)!r}", url=text
                    )

        return cls(
            scheme=scheme,
            host=parts.hostname,
            port=port,
            path=path,
            query=parts.query,
            fragment=parts.fragment,
            userinfo=userinfo,
            typecode=typecode,
        )

    @property
    def is_relative(self) -> bool:
        """True when the locator has no scheme."""
        return not self.scheme

    @property
    def hostname(self) -> Optional[str]:
        return self.host

    @property
    def effective_port(self) -> Optional[int]:
        """Explicit port, falling back to the scheme default."""
        if self.port is not None:
            return self.port
        return DEFAULT_PORTS.get(self.scheme)

    @property
    def request_uri(self) -> str:
        """Origin-form request target: path and query."""
        target = self.path or "/"
        if self.query:
            target = f"{target}?{self.query}"
        return target

    @property
    def user(self) -> Optional[str]:
        if self.userinfo is None:
            return None
        return unquote(self.userinfo.partition(":")[0])

    @property
    def password(self) -> Optional[str]:
        if self.userinfo is None or ":" not in self.userinfo:
            return None
        return unquote(self.userinfo.partition(":")[2])

    @property
    def netloc(self) -> str:
        host = self.host or ""
        if ":" in host:
            host = f"[{host}]"
        if self.port is not None:
            host = f"{host}:{self.port}"
        if self.userinfo is not None:
            host = f"{self.userinfo}@{host}"
        return host

    def without_userinfo(self) -> "Locator":
        return replace(self, userinfo=None)

    def join(self, ref: Union[str, "Locator"]) -> "Locator":
        """
        Resolve a reference against this locator (RFC 3986 section 5).

        Args:
            ref: Relative or absolute reference

        Returns:
            Absolute Locator
        """
        return Locator.parse(urljoin(str(self), str(ref)))

    def __str__(self) -> str:
        path = self.path
        if self.typecode:
            path = f"{path};type={self.typecode}"
        has_authority = self.host is not None or self.userinfo is not None
        netloc = self.netloc if has_authority else ""
        return urlunsplit((self.scheme, netloc, path, self.query, self.fragment))
