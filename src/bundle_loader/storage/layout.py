"""
Filesystem layout for block storage.

Implements content-addressed storage with directory sharding.
"""

from pathlib import Path

from ..errors import StorageError
from ..integrity.hashing import get_hash_prefix
from ..model.cid import ContentId

# Every base32 identifier starts with the same few characters, so shard
# on the tail of the text form instead.
SHARD_LENGTH = 2


class StorageLayout:
    """
    Manages filesystem layout for content-addressed blocks.

    Layout:
        store_root/
            blocks/
                <shard>/
                    <cid>        # block data
    """

    def __init__(self, store_root: Path):
        """Initialize storage layout at given root."""
        self.store_root = Path(store_root).resolve()
        self.blocks_dir = self.store_root / "blocks"

    def initialize(self) -> None:
        """
        Initialize storage directory structure.

        Idempotent - safe to call multiple times.
        """
        try:
            self.store_root.mkdir(parents=True, exist_ok=True)
            self.blocks_dir.mkdir(exist_ok=True)
        except OSError as e:
            raise StorageError("initialize", str(self.store_root), e)

    @staticmethod
    def _shard(cid_text: str) -> str:
        return get_hash_prefix(cid_text[::-1], SHARD_LENGTH)

    def get_block_path(self, cid: ContentId) -> Path:
        """Get filesystem path for a block by its identifier."""
        cid_text = cid.encode()
        return self.blocks_dir / self._shard(cid_text) / cid_text

    def ensure_block_directory(self, cid: ContentId) -> None:
        """Ensure the shard directory for a block exists."""
        shard_dir = self.get_block_path(cid).parent
        try:
            shard_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError("mkdir", str(shard_dir), e)

    def block_exists(self, cid: ContentId) -> bool:
        """Check if a block exists in storage."""
        path = self.get_block_path(cid)
        try:
            return path.is_file()
        except OSError as e:
            raise StorageError("stat", str(path), e)

    def list_all_blocks(self) -> list[str]:
        """
        List the text form of every stored block identifier.

        Scans all shard directories. Temporary files are skipped.
        """
        blocks = []

        if not self.blocks_dir.exists():
            return blocks

        try:
            for shard_dir in self.blocks_dir.iterdir():
                if not shard_dir.is_dir():
                    continue

                for block_file in shard_dir.iterdir():
                    if block_file.is_file() and not block_file.name.startswith('.tmp_'):
                        blocks.append(block_file.name)

        except OSError as e:
            raise StorageError("list_blocks", str(self.blocks_dir), e)

        return blocks

    def get_storage_stats(self) -> dict:
        """
        Get storage statistics.

        Returns dict with:
        - total_blocks: number of blocks
        - total_size_bytes: total size in bytes
        """
        stats = {
            'total_blocks': 0,
            'total_size_bytes': 0,
        }

        for name in self.list_all_blocks():
            path = self.blocks_dir / self._shard(name) / name
            try:
                stats['total_size_bytes'] += path.stat().st_size
            except OSError as e:
                raise StorageError("stat", str(path), e)
            stats['total_blocks'] += 1

        return stats
