"""
Unsigned LEB128 varints used by content identifiers and archive frames.
"""

from typing import BinaryIO, Optional, Tuple

# Varints longer than this cannot describe anything in a bundle.
MAX_VARINT_BYTES = 9


def encode_uvarint(value: int) -> bytes:
    """Encode a non-negative integer as an unsigned varint."""
    if value < 0:
        raise ValueError(f"Varint must be non-negative, got {value}")

    out = bytearray()
    while True:
        byte = value & 0x7f
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_uvarint(buf: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Decode an unsigned varint from a buffer.

    Returns (value, new_offset).
    Raises ValueError if the buffer ends mid-varint or the varint is too long.
    """
    value = 0
    shift = 0
    pos = offset

    while True:
        if pos >= len(buf):
            raise ValueError("buffer ends inside varint")
        if pos - offset >= MAX_VARINT_BYTES:
            raise ValueError("varint too long")

        byte = buf[pos]
        pos += 1
        value |= (byte & 0x7f) << shift
        if not byte & 0x80:
            return value, pos
        shift += 7


def read_uvarint(stream: BinaryIO) -> Optional[Tuple[int, int]]:
    """
    Read an unsigned varint from a stream.

    Returns (value, bytes_consumed), or None at a clean end of stream.
    Raises ValueError if the stream ends mid-varint or the varint is too long.
    """
    value = 0
    shift = 0
    consumed = 0

    while True:
        chunk = stream.read(1)
        if not chunk:
            if consumed == 0:
                return None
            raise ValueError("stream ends inside varint")
        if consumed >= MAX_VARINT_BYTES:
            raise ValueError("varint too long")

        byte = chunk[0]
        consumed += 1
        value |= (byte & 0x7f) << shift
        if not byte & 0x80:
            return value, consumed
        shift += 7
