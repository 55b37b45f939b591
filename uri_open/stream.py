"""
Metadata-carrying stream types returned by uri_open.

MetaStream wraps the binary store produced by a StreamingBuffer (in memory or
a temporary file) together with the ResponseMetadata of the response. It is a
scoped resource: closing it removes the temporary file, if any.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterator, List, Optional, Union

import aiofiles

from .models.metadata import ResponseMetadata, Status

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


class _MetadataAccessors:
    """Read access to the response metadata shared by streams and results."""

    meta_data: ResponseMetadata
    _encoding_override: Optional[str] = None

    @property
    def status(self) -> Optional[Status]:
        return self.meta_data.status

    @property
    def base_uri(self) -> Any:
        """The locator the content finally came from, after redirects."""
        return self.meta_data.base_uri

    @property
    def meta(self) -> Dict[str, str]:
        return self.meta_data.meta

    @property
    def metas(self) -> Dict[str, List[str]]:
        return self.meta_data.metas

    def header(self, name: str) -> Optional[str]:
        return self.meta_data.header(name)

    def header_values(self, name: str) -> List[str]:
        return self.meta_data.header_values(name)

    def content_type(self) -> str:
        return self.meta_data.content_type()

    def charset(self, fallback: Optional[Callable[[], Optional[str]]] = None) -> Optional[str]:
        return self.meta_data.charset(fallback)

    def content_encoding(self) -> List[str]:
        return self.meta_data.content_encoding()

    def last_modified(self) -> Optional[datetime]:
        return self.meta_data.last_modified()

    @property
    def encoding(self) -> Optional[str]:
        """
        Text encoding of the content.

        An explicit encoding (read mode or ``encoding`` option) wins over the
        charset announced by the server; None means binary.
        """
        return self._encoding_override or self.meta_data.byte_encoding

    def set_encoding(self, encoding: Optional[str]) -> None:
        self._encoding_override = encoding


class MetaStream(_MetadataAccessors):
    """
    Readable, seekable byte stream with response metadata attached.

    Example:
        ```python
        async with open_uri("https://www.example.com/") as f:
            print(f.status, f.content_type(), f.charset())
            body = f.read()
        ```
    """

    def __init__(
        self,
        raw: BinaryIO,
        meta_data: Optional[ResponseMetadata] = None,
        path: Optional[str] = None,
    ) -> None:
        self._raw = raw
        self.meta_data = meta_data or ResponseMetadata()
        self._path = path
        self._encoding_override: Optional[str] = None

    @property
    def path(self) -> Optional[str]:
        """Path of the backing temporary file, None when held in memory."""
        return self._path

    # File protocol

    def read(self, size: int = -1) -> bytes:
        return self._raw.read(size)

    def readline(self, size: int = -1) -> bytes:
        return self._raw.readline(size)

    def readlines(self, hint: int = -1) -> List[bytes]:
        return self._raw.readlines(hint)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._raw.readline, b"")

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        return self._raw.seek(offset, whence)

    def tell(self) -> int:
        return self._raw.tell()

    def rewind(self) -> None:
        self._raw.seek(0)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    @property
    def closed(self) -> bool:
        return self._raw.closed

    def close(self) -> None:
        """Close the stream and remove the backing temporary file."""
        if not self._raw.closed:
            self._raw.close()
        if self._path is not None:
            Path(self._path).unlink(missing_ok=True)
            logger.debug("Removed temporary file %s", self._path)

    def read_text(self, errors: str = "strict") -> str:
        """Decode the rest of the stream, utf-8 when no encoding is known."""
        return self.read().decode(self.encoding or "utf-8", errors)

    async def save(self, path: Union[str, Path]) -> int:
        """
        Copy the whole content to ``path``.

        The stream position is preserved.

        Returns:
            Number of bytes written
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        position = self.tell()
        written = 0
        self.seek(0)
        try:
            async with aiofiles.open(target, "wb") as output:
                while chunk := self.read(COPY_CHUNK_SIZE):
                    await output.write(chunk)
                    written += len(chunk)
        finally:
            self.seek(position)
        return written

    # Scoped use

    def __enter__(self) -> "MetaStream":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    async def __aenter__(self) -> "MetaStream":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<MetaStream base_uri={str(self.base_uri)!r} status={self.status!r}>"


@dataclass
class FetchedContent(_MetadataAccessors):
    """Whole content of a resource read into memory, with its metadata."""

    content: bytes
    meta_data: ResponseMetadata = field(default_factory=ResponseMetadata)
    _encoding_override: Optional[str] = None

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", "replace")

    def __len__(self) -> int:
        return len(self.content)
