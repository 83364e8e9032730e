"""
Shared fixtures.

Bundles are written here for tests only; the package never writes archives.
"""

from typing import List, Sequence, Tuple

import pytest

from bundle_loader import ArchiveHeader, ContentId, MemoryBlockstore
from bundle_loader.integrity.varint import encode_uvarint


def encode_frame(payload: bytes) -> bytes:
    return encode_uvarint(len(payload)) + payload


def encode_archive(roots: Sequence[ContentId], blocks: Sequence[bytes]) -> bytes:
    """Encode blocks and roots in the block archive format."""
    out = encode_frame(ArchiveHeader(list(roots)).to_bytes())
    for data in blocks:
        cid = ContentId.for_data(data)
        out += encode_frame(cid.to_bytes() + data)
    return out


class BundleFactory:
    """Builds single-root bundles whose root is their first block."""

    def make(self, *blocks: bytes) -> Tuple[bytes, ContentId]:
        """Return (archive bytes, root cid)."""
        root = ContentId.for_data(blocks[0])
        return encode_archive([root], blocks), root

    def frame(self, payload: bytes) -> bytes:
        return encode_frame(payload)

    def with_roots(self, roots: List[ContentId], *blocks: bytes) -> bytes:
        return encode_archive(roots, blocks)

    def write(self, path, *blocks: bytes) -> ContentId:
        """Write a bundle file and return its root."""
        data, root = self.make(*blocks)
        path.write_bytes(data)
        return root


@pytest.fixture
def bundles() -> BundleFactory:
    return BundleFactory()


@pytest.fixture
def memory_store() -> MemoryBlockstore:
    return MemoryBlockstore()
