"""
Content-addressed block storage.

Blocks are stored by their content identifier. Once written, blocks
never change and are never deleted by this package.
"""

import os
import tempfile
from pathlib import Path
from typing import Dict, Protocol

from ..errors import ObjectNotFoundError, StorageError
from ..integrity.verification import verify_block_integrity
from ..model.cid import ContentId
from .layout import StorageLayout


class Blockstore(Protocol):
    """Interface the loader needs from a block store."""

    def has(self, cid: ContentId) -> bool:
        ...

    def put(self, cid: ContentId, data: bytes) -> None:
        ...

    def get(self, cid: ContentId) -> bytes:
        ...


class MemoryBlockstore:
    """
    In-memory block store.

    Useful for inspecting bundles without touching disk.
    """

    def __init__(self):
        self._blocks: Dict[ContentId, bytes] = {}

    def has(self, cid: ContentId) -> bool:
        return cid in self._blocks

    def put(self, cid: ContentId, data: bytes) -> None:
        """Store a block. Writing an existing block is a no-op."""
        verify_block_integrity(cid, data)
        if cid not in self._blocks:
            self._blocks[cid] = bytes(data)

    def get(self, cid: ContentId) -> bytes:
        try:
            return self._blocks[cid]
        except KeyError:
            raise ObjectNotFoundError(cid.encode())

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, cid: ContentId) -> bool:
        return self.has(cid)


class FileBlockstore:
    """
    Filesystem block store with immutable blocks.

    Blocks are written atomically and verified against their
    identifier on read.
    """

    def __init__(self, layout: StorageLayout):
        """Initialize block store with given layout."""
        self.layout = layout

    @classmethod
    def open(cls, store_path: str | Path) -> 'FileBlockstore':
        """Create the directory structure at store_path and return a store for it."""
        layout = StorageLayout(Path(store_path))
        layout.initialize()
        return cls(layout)

    def has(self, cid: ContentId) -> bool:
        """Check if a block exists in the store."""
        return self.layout.block_exists(cid)

    def put(self, cid: ContentId, data: bytes) -> None:
        """
        Store a block under its identifier.

        - Data must hash to the identifier
        - Block is written atomically
        - If a valid block already exists, no action (idempotent)

        Raises ObjectCorruptedError if data does not match cid.
        """
        verify_block_integrity(cid, data)

        block_path = self.layout.get_block_path(cid)
        if block_path.exists():
            existing = self._read_block_file(block_path)
            if cid.matches(existing):
                return  # Already exists and valid
            # Existing file is corrupted, will overwrite

        self.layout.ensure_block_directory(cid)
        self._write_block_atomic(block_path, data)

    def get(self, cid: ContentId, verify: bool = True) -> bytes:
        """
        Retrieve a block by its identifier.

        If verify=True (default), verifies integrity before returning.

        Raises ObjectNotFoundError if block doesn't exist.
        Raises ObjectCorruptedError if verification fails.
        """
        block_path = self.layout.get_block_path(cid)

        if not block_path.exists():
            raise ObjectNotFoundError(cid.encode())

        data = self._read_block_file(block_path)

        if verify:
            verify_block_integrity(cid, data)

        return data

    def list_all_blocks(self) -> list[str]:
        """List the text form of all block identifiers in the store."""
        return self.layout.list_all_blocks()

    def get_stats(self) -> dict:
        """Get storage statistics."""
        return self.layout.get_storage_stats()

    def _read_block_file(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError("read_file", str(path), e)

    def _write_block_atomic(self, path: Path, data: bytes) -> None:
        """
        Write block file atomically.

        Uses temp file + rename for atomicity.
        """
        fd = None
        temp_path = None
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=str(path.parent),
                prefix='.tmp_',
            )

            with os.fdopen(fd, 'wb') as f:
                fd = None  # Owned by the file object now
                f.write(data)

            # Atomic replace (works cross-platform including Windows)
            os.replace(temp_path, path)
            temp_path = None

        except OSError as e:
            if fd is not None:
                os.close(fd)
            if temp_path is not None and os.path.exists(temp_path):
                os.unlink(temp_path)
            raise StorageError("write_file", str(path), e)

    def __repr__(self) -> str:
        return f"FileBlockstore(path={self.layout.store_root})"

