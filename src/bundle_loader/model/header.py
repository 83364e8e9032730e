"""
Archive header model.

The header is the first frame of a block archive and lists its roots.
"""

from typing import Iterable

from .cid import ContentId
from ..errors import ArchiveDecodeError, InvalidReferenceError
from ..integrity.canonical import canonical_json

ARCHIVE_VERSION = 1


class ArchiveHeader:
    """
    Immutable header of a decoded block archive.

    Holds the archive format version and the ordered list of root
    identifiers. Headers are transient: the loader reads the roots and
    discards the header.
    """

    def __init__(self, roots: Iterable[ContentId], version: int = ARCHIVE_VERSION):
        self.roots = tuple(roots)
        self.version = version

    def to_dict(self) -> dict:
        """Convert header to its JSON representation."""
        return {
            'roots': [root.encode() for root in self.roots],
            'version': self.version,
        }

    def to_bytes(self) -> bytes:
        """Encode header as canonical JSON bytes."""
        return canonical_json(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> 'ArchiveHeader':
        """
        Reconstruct header from its JSON representation.

        Raises ArchiveDecodeError if data is invalid.
        """
        if not isinstance(data, dict):
            raise ArchiveDecodeError("header must be a JSON object")

        version = data.get('version')
        if version != ARCHIVE_VERSION:
            raise ArchiveDecodeError(f"unsupported archive version: {version!r}")

        if 'roots' not in data:
            raise ArchiveDecodeError("header missing roots field")

        roots = data['roots']
        if not isinstance(roots, list):
            raise ArchiveDecodeError("header roots must be a list")

        try:
            parsed = [ContentId.parse(root) for root in roots]
        except InvalidReferenceError as e:
            raise ArchiveDecodeError(f"invalid root in header: {e.reason}")

        return cls(parsed, version)

    def root_count(self) -> int:
        """Get number of roots declared by this archive."""
        return len(self.roots)

    def __repr__(self) -> str:
        return f"ArchiveHeader(version={self.version}, roots={len(self.roots)})"
