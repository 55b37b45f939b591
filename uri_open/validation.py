"""
Option and access-mode validation for uri_open.

Validation runs once, before the redirect loop starts. Every problem found
here is a ConfigurationError and no network activity has happened yet.
"""

from __future__ import annotations

import codecs
import os
import re
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models.options import FetchOptions

_READ_MODE_RE = re.compile(r"rb?(?:\Z|:([^:]+)\Z)")


def lookup_encoding(name: str) -> str:
    """
    Canonical codec name for ``name``.

    Raises:
        ConfigurationError: If Python has no such codec
    """
    try:
        return codecs.lookup(name).name
    except LookupError as e:
        raise ConfigurationError(f"unknown encoding name - {name}", option="encoding") from e


def parse_mode(mode: Union[str, int, None]) -> Optional[str]:
    """
    Check that ``mode`` requests read-only access.

    Accepted modes are None, ``"r"``, ``"rb"``, ``"r:<encoding>"``,
    ``"rb:<encoding>"`` and ``os.O_RDONLY``.

    Returns:
        The encoding named in the mode, or None

    Raises:
        ConfigurationError: For write/append modes or unknown encodings
    """
    if mode is None:
        return None
    if isinstance(mode, str):
        match = _READ_MODE_RE.match(mode)
        if match:
            return lookup_encoding(match.group(1)) if match.group(1) else None
    elif isinstance(mode, int) and not isinstance(mode, bool) and mode == os.O_RDONLY:
        return None
    raise ConfigurationError(
        f"invalid access mode {mode!r} (resource is read only.)", option="mode"
    )


def validate_options(raw: Optional[Mapping[str, Any]] = None) -> FetchOptions:
    """
    Build FetchOptions from a raw mapping.

    Raises:
        ConfigurationError: Naming the first unrecognized or invalid option
    """
    raw = dict(raw or {})
    for key in raw:
        if not isinstance(key, str):
            raise ConfigurationError(f"unrecognized option: {key!r}", option=repr(key))

    try:
        options = FetchOptions(**raw)
    except ValidationError as e:
        error = e.errors()[0]
        key = ".".join(str(part) for part in error["loc"][:1])
        if error["type"] == "extra_forbidden":
            raise ConfigurationError(f"unrecognized option: {key}", option=key) from e
        raise ConfigurationError(
            f"invalid option {key}: {error['msg']}", option=key
        ) from e

    if options.encoding is not None:
        lookup_encoding(options.encoding)
    return options


def resolve_encoding(mode_encoding: Optional[str], options: FetchOptions) -> Optional[str]:
    """
    Merge the encoding named by the mode with the ``encoding`` option.

    Raises:
        ConfigurationError: If both name an encoding
    """
    if options.is_given("encoding"):
        if mode_encoding is not None:
            raise ConfigurationError("encoding specified twice", option="encoding")
        return lookup_encoding(options.encoding) if options.encoding else None
    return mode_encoding
