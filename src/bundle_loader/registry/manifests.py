"""
Manifest registry.

Maps each bundle version to the content identifier of its manifest.
Built once at start-up and never modified.
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional

from ..errors import LoaderConfigError, StorageError
from ..model.cid import ContentId


def parse_version(key) -> int:
    """
    Parse a version key from a registry or catalogue file.

    Accepts 8, "8" and "v8".
    Raises LoaderConfigError for anything else.
    """
    if isinstance(key, bool):
        raise LoaderConfigError(f"invalid version key: {key!r}")
    if isinstance(key, int):
        return key

    text = str(key).strip()
    if text[:1] in ('v', 'V'):
        text = text[1:]
    try:
        return int(text)
    except ValueError:
        raise LoaderConfigError(f"invalid version key: {key!r}")


def read_json_table(path: Path, what: str) -> dict:
    """Read a JSON object from a registry file."""
    try:
        with path.open('r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise StorageError(f"read_{what}", str(path), e)
    except ValueError as e:
        raise LoaderConfigError(f"{what} file {path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise LoaderConfigError(f"{what} file {path} must contain a JSON object")
    return data


class ManifestRegistry:
    """
    Immutable table of version -> expected manifest root.
    """

    def __init__(self, manifests: Mapping[int, ContentId]):
        self._manifests: Mapping[int, ContentId] = MappingProxyType(dict(manifests))

    @classmethod
    def from_json(cls, path: str | Path) -> 'ManifestRegistry':
        """
        Load a registry from a JSON file.

        Format: {"8": "<cid>", "9": "<cid>"}

        Raises InvalidReferenceError if an identifier is malformed.
        Raises LoaderConfigError if two keys name the same version.
        """
        data = read_json_table(Path(path), 'manifests')

        manifests: Dict[int, ContentId] = {}
        for key, value in data.items():
            version = parse_version(key)
            if version in manifests:
                raise LoaderConfigError(f"duplicate manifest entry for v{version}")
            manifests[version] = ContentId.parse(value)

        return cls(manifests)

    def lookup(self, version: int) -> Optional[ContentId]:
        """Get the expected manifest root for a version, or None."""
        return self._manifests.get(version)

    def versions(self) -> List[int]:
        """List registered versions in ascending order."""
        return sorted(self._manifests)

    def __contains__(self, version: int) -> bool:
        return version in self._manifests

    def __len__(self) -> int:
        return len(self._manifests)

    def __iter__(self) -> Iterator[int]:
        return iter(self.versions())

    def __repr__(self) -> str:
        return f"ManifestRegistry(versions={self.versions()})"
