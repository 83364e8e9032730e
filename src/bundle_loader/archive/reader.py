"""
Block archive decoder.

An archive is a sequence of frames, each prefixed by its length as an
unsigned varint. The first frame is the canonical JSON header. Every
following frame holds a content identifier and the block data it names.
"""

import threading
from typing import BinaryIO, Optional, Tuple

from ..errors import ArchiveDecodeError, InvalidReferenceError, LoadCancelledError
from ..integrity.canonical import parse_canonical_json
from ..integrity.varint import read_uvarint
from ..integrity.verification import verify_block_integrity
from ..logging_config import get_logger
from ..model.cid import ContentId
from ..model.header import ArchiveHeader

logger = get_logger(__name__)

# Upper bound on a single frame, to reject garbage lengths before reading.
MAX_FRAME_SIZE = 32 << 20


class ArchiveReader:
    """
    Streaming reader over a block archive.

    Tracks the byte offset so decode errors point at the bad frame.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.offset = 0

    def read_frame(self) -> Optional[bytes]:
        """
        Read the next length-prefixed frame.

        Returns None at a clean end of stream.
        Raises ArchiveDecodeError on truncation or oversized frames.
        """
        start = self.offset
        try:
            prefix = read_uvarint(self.stream)
        except ValueError as e:
            raise ArchiveDecodeError(str(e), start)

        if prefix is None:
            return None

        length, consumed = prefix
        self.offset += consumed

        if length > MAX_FRAME_SIZE:
            raise ArchiveDecodeError(f"frame of {length} bytes exceeds limit", start)

        payload = self._read_exact(length)
        if len(payload) != length:
            raise ArchiveDecodeError(
                f"truncated frame: expected {length} bytes, got {len(payload)}",
                start,
            )
        self.offset += length
        return payload

    def _read_exact(self, length: int) -> bytes:
        """
        Read exactly length bytes unless the stream ends first.

        Raw streams (pipes, sockets) may return fewer bytes than asked for.
        """
        chunks = []
        remaining = length
        while remaining > 0:
            chunk = self.stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def read_header(self) -> ArchiveHeader:
        """Read and parse the header frame."""
        payload = self.read_frame()
        if not payload:
            raise ArchiveDecodeError("missing header", 0)

        try:
            data = parse_canonical_json(payload)
        except ValueError as e:
            raise ArchiveDecodeError(f"invalid header: {e}", 0)

        return ArchiveHeader.from_dict(data)

    def read_block(self) -> Optional[Tuple[ContentId, bytes]]:
        """
        Read the next block frame.

        Returns (cid, data), or None when the archive is exhausted.
        """
        start = self.offset
        payload = self.read_frame()
        if payload is None:
            return None

        try:
            cid, end = ContentId.decode_prefix(payload)
        except InvalidReferenceError as e:
            raise ArchiveDecodeError(f"invalid block identifier: {e.reason}", start)

        return cid, payload[end:]


def read_archive(
    stream: BinaryIO,
    store,
    cancel: Optional[threading.Event] = None,
) -> ArchiveHeader:
    """
    Decode a block archive into a store.

    Each block is verified against its identifier and written as soon as
    it is read, so a failure part way through leaves the earlier blocks
    in the store.

    Args:
        stream: readable binary stream positioned at the archive start
        store: block store receiving the blocks
        cancel: optional event; when set, decoding stops before the next block

    Returns:
        ArchiveHeader: the decoded header

    Raises:
        ArchiveDecodeError: malformed or truncated archive
        ObjectCorruptedError: block data does not match its identifier
        LoadCancelledError: cancel was set during decoding
    """
    reader = ArchiveReader(stream)
    header = reader.read_header()

    blocks = 0
    while True:
        if cancel is not None and cancel.is_set():
            raise LoadCancelledError(blocks)

        block = reader.read_block()
        if block is None:
            break

        cid, data = block
        verify_block_integrity(cid, data)
        store.put(cid, data)
        blocks += 1

    logger.debug(
        "bundle_archive_decoded",
        roots=header.root_count(),
        blocks=blocks,
        size_bytes=reader.offset,
    )
    return header
