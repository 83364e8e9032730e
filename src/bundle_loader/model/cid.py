"""
Content identifier model.

A content identifier names a block by the hash of its data and records
which codec and hash function were used.
"""

import base64
from typing import Tuple

from ..errors import InvalidReferenceError
from ..integrity.hashing import (
    DEFAULT_HASH_CODE,
    HASH_NAMES,
    compute_digest,
    is_supported_hash,
)
from ..integrity.varint import decode_uvarint, encode_uvarint

CID_VERSION = 1

RAW = 0x55
DAG_JSON = 0x0129

CODEC_NAMES = {
    RAW: 'raw',
    DAG_JSON: 'dag-json',
}

# Multibase prefix for lowercase base32 without padding.
BASE32_PREFIX = 'b'


class ContentId:
    """
    Immutable, self-describing reference to a block.

    Encoded form:
        uvarint(version) || uvarint(codec) || uvarint(hash code)
        || uvarint(digest length) || digest

    Two identifiers are equal when their encoded forms are equal.
    """

    __slots__ = ('_codec', '_hash_code', '_digest', '_encoded')

    def __init__(self, codec: int, hash_code: int, digest: bytes):
        """
        Create a content identifier.

        Args:
            codec: multicodec code of the block data
            hash_code: multihash code of the hash function
            digest: raw digest bytes
        """
        if codec not in CODEC_NAMES:
            raise InvalidReferenceError(f"unsupported codec 0x{codec:x}")
        if not is_supported_hash(hash_code):
            raise InvalidReferenceError(f"unsupported hash function 0x{hash_code:x}")
        if not digest:
            raise InvalidReferenceError("empty digest")

        self._codec = codec
        self._hash_code = hash_code
        self._digest = bytes(digest)
        self._encoded = (
            encode_uvarint(CID_VERSION)
            + encode_uvarint(codec)
            + encode_uvarint(hash_code)
            + encode_uvarint(len(self._digest))
            + self._digest
        )

    @classmethod
    def for_data(
        cls,
        data: bytes,
        codec: int = RAW,
        hash_code: int = DEFAULT_HASH_CODE,
    ) -> 'ContentId':
        """Compute the identifier of a block's data."""
        return cls(codec, hash_code, compute_digest(data, hash_code))

    @classmethod
    def decode_prefix(cls, buf: bytes, offset: int = 0) -> Tuple['ContentId', int]:
        """
        Decode an identifier from the start of a buffer.

        Returns (cid, new_offset). Trailing bytes are left for the caller.
        Raises InvalidReferenceError if the bytes are not a valid identifier.
        """
        try:
            version, pos = decode_uvarint(buf, offset)
            if version != CID_VERSION:
                raise InvalidReferenceError(f"unsupported CID version {version}")
            codec, pos = decode_uvarint(buf, pos)
            hash_code, pos = decode_uvarint(buf, pos)
            length, pos = decode_uvarint(buf, pos)
        except ValueError as e:
            raise InvalidReferenceError(f"truncated identifier: {e}")

        end = pos + length
        if end > len(buf):
            raise InvalidReferenceError(
                f"digest needs {length} bytes, only {len(buf) - pos} available"
            )

        return cls(codec, hash_code, buf[pos:end]), end

    @classmethod
    def from_bytes(cls, buf: bytes) -> 'ContentId':
        """
        Decode an identifier from its exact encoded form.

        Raises InvalidReferenceError on trailing bytes.
        """
        cid, end = cls.decode_prefix(buf)
        if end != len(buf):
            raise InvalidReferenceError(f"{len(buf) - end} trailing bytes after identifier")
        return cid

    @classmethod
    def parse(cls, text: str) -> 'ContentId':
        """
        Parse the multibase text form of an identifier.

        Raises InvalidReferenceError if the text is malformed.
        """
        if not isinstance(text, str) or not text.startswith(BASE32_PREFIX):
            raise InvalidReferenceError(f"expected base32 identifier, got {text!r}")

        body = text[1:].upper()
        padding = '=' * (-len(body) % 8)
        try:
            raw = base64.b32decode(body + padding)
        except (ValueError, TypeError) as e:
            raise InvalidReferenceError(f"invalid base32 in {text!r}: {e}")

        return cls.from_bytes(raw)

    @property
    def codec(self) -> int:
        return self._codec

    @property
    def hash_code(self) -> int:
        return self._hash_code

    @property
    def digest(self) -> bytes:
        return self._digest

    def to_bytes(self) -> bytes:
        """Return the binary encoded form."""
        return self._encoded

    def encode(self) -> str:
        """Return the multibase base32 text form."""
        text = base64.b32encode(self._encoded).decode('ascii').rstrip('=').lower()
        return BASE32_PREFIX + text

    def matches(self, data: bytes) -> bool:
        """Check whether data hashes to this identifier's digest."""
        return compute_digest(data, self._hash_code) == self._digest

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContentId):
            return NotImplemented
        return self._encoded == other._encoded

    def __hash__(self) -> int:
        return hash(self._encoded)

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        codec = CODEC_NAMES[self._codec]
        hash_name = HASH_NAMES[self._hash_code]
        return f"ContentId({codec}, {hash_name}, {self.encode()[:16]}...)"
