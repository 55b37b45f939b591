"""
Streaming buffer with memory-to-disk spill-over.

A StreamingBuffer is the sink a transport adapter writes response bytes into.
Small responses stay in memory; once the cumulative size exceeds the
threshold the buffer moves everything into a named temporary file and keeps
appending there.
"""

from __future__ import annotations

import io
import logging
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from .models.metadata import ResponseMetadata
from .stream import MetaStream

logger = logging.getLogger(__name__)

STRING_MAX = 10240
TEMPFILE_PREFIX = "uri-open"


class StreamingBuffer:
    """
    Append-only byte sink that starts in memory and spills to disk.

    The buffer also owns the ResponseMetadata that the transport adapter fills
    in while receiving the response. ``finalize`` hands both over to a
    MetaStream; ``discard`` releases them.

    Attributes:
        threshold: Size in bytes above which content moves to a file
        meta: Metadata of the response being received
    """

    def __init__(self, threshold: int = STRING_MAX) -> None:
        self.threshold = threshold
        self.meta = ResponseMetadata()
        self._io: BinaryIO = io.BytesIO()
        self._size = 0
        self._path: Optional[str] = None
        self._released = False

    @property
    def size(self) -> int:
        """Cumulative number of bytes appended."""
        return self._size

    @property
    def in_memory(self) -> bool:
        return self._path is None

    @property
    def path(self) -> Optional[str]:
        """Path of the temporary file, None while held in memory."""
        return self._path

    def append(self, data: bytes) -> None:
        """
        Append a chunk.

        Raises:
            OSError: If the temporary file cannot be created or written
        """
        self._io.write(data)
        self._size += len(data)
        if self.in_memory and self._size > self.threshold:
            self._spill()

    def _spill(self) -> None:
        memory = self._io
        spooled = tempfile.NamedTemporaryFile(prefix=TEMPFILE_PREFIX, delete=False)
        try:
            spooled.write(memory.getvalue())  # type: ignore[attr-defined]
        except BaseException:
            spooled.close()
            self._remove(spooled.name)
            raise
        self._io = spooled  # type: ignore[assignment]
        self._path = spooled.name
        memory.close()
        logger.debug("Buffer exceeded %d bytes, spilled to %s", self.threshold, self._path)

    def finalize(self) -> MetaStream:
        """
        Transfer the content and metadata to a MetaStream positioned at 0.

        The buffer must not be used afterwards.
        """
        self._released = True
        self._io.flush()
        self._io.seek(0)
        return MetaStream(self._io, self.meta, path=self._path)

    def discard(self) -> None:
        """Close the store and remove the temporary file, if any."""
        if self._released:
            return
        self._released = True
        self._io.close()
        if self._path is not None:
            self._remove(self._path)

    @staticmethod
    def _remove(path: str) -> None:
        Path(path).unlink(missing_ok=True)
        logger.debug("Removed temporary file %s", path)
