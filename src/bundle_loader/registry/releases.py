"""
Release catalogue.

For each bundle version, records where the bundle lives on each network
and, optionally, an embedded copy shipped with the release.
"""

from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from ..errors import LoaderConfigError, StorageError
from .manifests import parse_version, read_json_table


class ReleaseEntry:
    """
    Immutable release record for one version.

    paths maps network name -> bundle path. An empty path means the
    network has no pinned file.
    """

    def __init__(
        self,
        version: int,
        paths: Optional[Mapping[str, str]] = None,
        embedded: Optional[bytes] = None,
    ):
        self.version = version
        self.paths: Mapping[str, str] = MappingProxyType(dict(paths or {}))
        self.embedded = bytes(embedded) if embedded is not None else None

    def path_for(self, network: str) -> str:
        """Get the bundle path for a network, or '' if none."""
        return self.paths.get(network, '')

    def has_embedded(self) -> bool:
        return self.embedded is not None

    def __repr__(self) -> str:
        networks = sorted(self.paths)
        return (
            f"ReleaseEntry(v{self.version}, networks={networks}, "
            f"embedded={self.has_embedded()})"
        )


class ReleaseCatalogue:
    """
    Immutable table of version -> ReleaseEntry.
    """

    def __init__(self, entries: Iterable[ReleaseEntry]):
        table: Dict[int, ReleaseEntry] = {}
        for entry in entries:
            if entry.version in table:
                raise LoaderConfigError(f"duplicate release entry for v{entry.version}")
            table[entry.version] = entry
        self._entries: Mapping[int, ReleaseEntry] = MappingProxyType(table)

    @classmethod
    def from_json(cls, path: str | Path) -> 'ReleaseCatalogue':
        """
        Load a catalogue from a JSON file.

        Format:
            {"8": {"paths": {"mainnet": "/path/v8.bundle"}, "embedded": "v8.bundle"}}

        Relative bundle paths and embedded files are resolved against the
        catalogue file's directory. Embedded files are read once, here.
        """
        path = Path(path)
        data = read_json_table(path, 'catalogue')

        entries = []
        for key, value in data.items():
            version = parse_version(key)
            if not isinstance(value, dict):
                raise LoaderConfigError(f"release entry for v{version} must be an object")

            paths = value.get('paths', {})
            if not isinstance(paths, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in paths.items()
            ):
                raise LoaderConfigError(f"release paths for v{version} must map names to strings")
            paths = {
                network: str(path.parent / bundle) if bundle else bundle
                for network, bundle in paths.items()
            }

            embedded = None
            embedded_name = value.get('embedded')
            if embedded_name is not None and not isinstance(embedded_name, str):
                raise LoaderConfigError(f"embedded file for v{version} must be a string")
            if embedded_name:
                embedded = _read_embedded(path.parent / embedded_name)

            entries.append(ReleaseEntry(version, paths, embedded))

        return cls(entries)

    def lookup(self, version: int) -> Optional[ReleaseEntry]:
        """Get the release entry for a version, or None."""
        return self._entries.get(version)

    def get_embedded(self, version: int) -> Optional[bytes]:
        """Get the embedded bundle bytes for a version, or None."""
        entry = self._entries.get(version)
        return entry.embedded if entry is not None else None

    def versions(self) -> List[int]:
        """List catalogued versions in ascending order."""
        return sorted(self._entries)

    def __contains__(self, version: int) -> bool:
        return version in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ReleaseCatalogue(versions={self.versions()})"


def _read_embedded(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError("read_embedded", str(path), e)
