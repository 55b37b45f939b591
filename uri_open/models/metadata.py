"""
Response metadata model for uri_open.

ResponseMetadata carries the status line and header fields of the response
that produced a stream, plus the locator it finally came from. Content-Type,
charset and Content-Encoding are derived with the token / quoted-string
grammar of RFC 2045 and RFC 7231. Parsing never raises: malformed or absent
fields degrade to their defaults.
"""

from __future__ import annotations

import codecs
import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Grammar pieces, RFC 2616 section 2.2
RE_LWS = r"[\r\n\t ]+"
RE_TOKEN = r'[^\x00- ()<>@,;:\\"/\[\]?={}\x7f]+'
RE_QUOTED_STRING = r'"(?:[\r\n\t !#-\[\]-~]|[^\x00-\x7f]|\\[\x00-\x7f])*"'
RE_PARAMETERS = (
    rf"(?:;(?:{RE_LWS})?{RE_TOKEN}(?:{RE_LWS})?=(?:{RE_LWS})?"
    rf"(?:{RE_TOKEN}|{RE_QUOTED_STRING})(?:{RE_LWS})?)*"
)

# The trailing (?:;LWS?)? accepts an extra ";" which violates RFC 2045.
_CONTENT_TYPE_RE = re.compile(
    rf"(?:{RE_LWS})?({RE_TOKEN})(?:{RE_LWS})?/({RE_TOKEN})(?:{RE_LWS})?"
    rf"({RE_PARAMETERS})(?:;(?:{RE_LWS})?)?"
)
_PARAMETER_RE = re.compile(
    rf";(?:{RE_LWS})?({RE_TOKEN})(?:{RE_LWS})?=(?:{RE_LWS})?"
    rf"(?:({RE_TOKEN})|({RE_QUOTED_STRING}))"
)
_QUOTED_PAIR_RE = re.compile(r"\\([\x00-\x7f])")
_CONTENT_ENCODING_RE = re.compile(
    rf"(?:{RE_LWS})?{RE_TOKEN}(?:{RE_LWS})?(?:,(?:{RE_LWS})?{RE_TOKEN}(?:{RE_LWS})?)*"
)
_TOKEN_RE = re.compile(RE_TOKEN)

Status = Tuple[int, str]


class ResponseMetadata:
    """
    Status, headers and base locator of a fetched resource.

    Header names are case-normalized to lowercase. ``metas`` keeps every
    value of a field as an ordered list; ``meta`` exposes the same fields as
    comma-joined strings.
    """

    def __init__(self) -> None:
        self.status: Optional[Status] = None
        self.base_uri: Optional[Any] = None
        self._metas: Dict[str, List[str]] = {}
        self._meta: Dict[str, str] = {}
        self._byte_encoding: Optional[str] = None

    @property
    def metas(self) -> Dict[str, List[str]]:
        """Header fields as name -> list of values (a copy)."""
        return {name: list(values) for name, values in self._metas.items()}

    @property
    def meta(self) -> Dict[str, str]:
        """Header fields as name -> comma-joined value (a copy)."""
        return dict(self._meta)

    @property
    def byte_encoding(self) -> Optional[str]:
        """Python codec name derived from the charset, None for binary."""
        return self._byte_encoding

    def add_header(self, name: str, values: Sequence[str]) -> None:
        """
        Store all values of one header field, replacing earlier values.

        Adding ``Content-Type`` re-derives the byte encoding of the content.
        """
        name = name.lower()
        self._metas[name] = list(values)
        self._meta[name] = ", ".join(values)
        if name == "content-type":
            self._setup_encoding()

    def add_field(self, name: str, value: str) -> None:
        self.add_header(name, [value])

    def header(self, name: str) -> Optional[str]:
        return self._meta.get(name.lower())

    def header_values(self, name: str) -> List[str]:
        return list(self._metas.get(name.lower(), []))

    def _setup_encoding(self) -> None:
        charset = self.charset()
        encoding = None
        if charset:
            try:
                encoding = codecs.lookup(charset).name
            except LookupError:
                logger.debug("Unknown charset %r, treating content as binary", charset)
        self._byte_encoding = encoding

    def last_modified(self) -> Optional[datetime]:
        """Last-Modified as an aware datetime, None when absent or invalid."""
        values = self._metas.get("last-modified")
        if not values:
            return None
        try:
            return parsedate_to_datetime(", ".join(values))
        except (TypeError, ValueError, IndexError):
            return None

    def _content_type_parse(self) -> Optional[Tuple[str, List[Tuple[str, str]]]]:
        values = self._metas.get("content-type")
        if not values:
            return None
        match = _CONTENT_TYPE_RE.fullmatch(", ".join(values))
        if not match:
            return None

        parameters = []
        for attribute, value, quoted in _PARAMETER_RE.findall(match.group(3)):
            if quoted:
                value = _QUOTED_PAIR_RE.sub(r"\1", quoted[1:-1])
            parameters.append((attribute.lower(), value))
        return f"{match.group(1).lower()}/{match.group(2).lower()}", parameters

    def content_type(self) -> str:
        """MIME ``type/subtype``, lowercased, without parameters."""
        parsed = self._content_type_parse()
        return parsed[0] if parsed else DEFAULT_CONTENT_TYPE

    def charset(self, fallback: Optional[Callable[[], Optional[str]]] = None) -> Optional[str]:
        """
        The ``charset`` parameter of Content-Type, lowercased.

        Args:
            fallback: Called when no charset parameter is present; its result
                is returned as is. Useful for guessing a charset.

        Returns:
            The charset; otherwise the fallback result; otherwise ``"utf-8"``
            for ``text/*`` (RFC 6838 section 4.2.1); otherwise None.
        """
        parsed = self._content_type_parse()
        if parsed:
            for attribute, value in parsed[1]:
                if attribute == "charset":
                    return value.lower()
        if fallback is not None:
            return fallback()
        if parsed and parsed[0].startswith("text/"):
            return "utf-8"
        return None

    def content_encoding(self) -> List[str]:
        """Codings listed in Content-Encoding, lowercased."""
        values = self._metas.get("content-encoding")
        if not values:
            return []
        value = ", ".join(values)
        if not _CONTENT_ENCODING_RE.fullmatch(value):
            return []
        return [coding.lower() for coding in _TOKEN_RE.findall(value)]

    def copy(self) -> "ResponseMetadata":
        other = ResponseMetadata()
        other.status = self.status
        other.base_uri = self.base_uri
        for name, values in self._metas.items():
            other.add_header(name, values)
        return other

    def __repr__(self) -> str:
        return (
            f"ResponseMetadata(status={self.status!r}, base_uri={str(self.base_uri)!r}, "
            f"content_type={self.content_type()!r})"
        )
