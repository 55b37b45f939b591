"""
Tests for the spilling StreamingBuffer.
"""

import os

from uri_open.buffer import STRING_MAX, StreamingBuffer
from uri_open.stream import MetaStream


class TestStreamingBuffer:
    """Test memory and temporary file storage."""

    def test_threshold_boundary_stays_in_memory(self):
        buffer = StreamingBuffer()
        buffer.append(b"a" * STRING_MAX)
        assert buffer.in_memory
        assert buffer.path is None
        assert buffer.size == STRING_MAX
        buffer.discard()

    def test_one_byte_over_spills(self):
        buffer = StreamingBuffer()
        buffer.append(b"a" * STRING_MAX)
        buffer.append(b"b")
        assert not buffer.in_memory
        assert os.path.basename(buffer.path).startswith("uri-open")
        assert os.path.exists(buffer.path)

        stream = buffer.finalize()
        try:
            assert stream.read() == b"a" * STRING_MAX + b"b"
        finally:
            stream.close()
        assert not os.path.exists(buffer.path)

    def test_content_preserved_across_chunks(self):
        buffer = StreamingBuffer(threshold=16)
        chunks = [b"0123456789"] * 5
        for chunk in chunks:
            buffer.append(chunk)

        with buffer.finalize() as stream:
            assert stream.read() == b"".join(chunks)
            assert stream.path is not None

    def test_finalize_transfers_metadata(self):
        buffer = StreamingBuffer()
        buffer.meta.status = (200, "OK")
        buffer.meta.add_field("content-type", "text/plain")
        buffer.append(b"hello")

        stream = buffer.finalize()
        assert isinstance(stream, MetaStream)
        assert stream.tell() == 0
        assert stream.status == (200, "OK")
        assert stream.content_type() == "text/plain"
        assert stream.read() == b"hello"
        stream.close()

    def test_discard_removes_file(self):
        buffer = StreamingBuffer()
        buffer.append(b"x" * (STRING_MAX + 1))
        path = buffer.path
        buffer.discard()
        assert not os.path.exists(path)

    def test_discard_after_finalize_is_noop(self):
        buffer = StreamingBuffer(threshold=4)
        buffer.append(b"123456")
        stream = buffer.finalize()
        buffer.discard()
        assert stream.read() == b"123456"
        stream.close()

    def test_empty(self):
        with StreamingBuffer().finalize() as stream:
            assert stream.read() == b""
