"""
Integrity verification for blocks and bundle roots.
"""

from typing import TYPE_CHECKING

from ..errors import ManifestMismatchError, ObjectCorruptedError, RootCountError
from .hashing import compute_digest

if TYPE_CHECKING:
    from ..model.cid import ContentId
    from ..model.header import ArchiveHeader


def verify_block_integrity(cid: 'ContentId', data: bytes) -> None:
    """
    Verify that a block's data matches its identifier.

    Raises ObjectCorruptedError if mismatch detected.
    """
    actual = compute_digest(data, cid.hash_code)
    if actual != cid.digest:
        raise ObjectCorruptedError(cid.encode(), cid.digest.hex(), actual.hex())


def single_root(header: 'ArchiveHeader') -> 'ContentId':
    """
    Return the only root of an archive.

    A bundle represents exactly one manifest tree.
    Raises RootCountError otherwise.
    """
    if header.root_count() != 1:
        raise RootCountError(header.root_count())
    return header.roots[0]


def verify_manifest_root(version: int, expected: 'ContentId', actual: 'ContentId') -> None:
    """
    Verify that a loaded bundle's root is the registered manifest.

    Raises ManifestMismatchError naming both identifiers.
    """
    if actual != expected:
        raise ManifestMismatchError(version, expected.encode(), actual.encode())
