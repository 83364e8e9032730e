"""
Bundle Loader - versioned, integrity-checked bundle loading for content-addressed block stores.

This package provides:
- A single-archive loader that decodes a bundle into a block store
- A multi-version engine that resolves each version's bundle source
  (override path, catalogue path, embedded data) and verifies its root
  against the registered manifest
- Filesystem and in-memory block stores

Example usage:
    from bundle_loader import BundleLoader, FileBlockstore, ManifestRegistry, ReleaseCatalogue

    loader = BundleLoader(
        ManifestRegistry.from_json('manifests.json'),
        ReleaseCatalogue.from_json('catalogue.json'),
    )
    loader.load_bundles(FileBlockstore.open('/path/to/store'), [8, 9])
"""

from .config import LoaderConfig, MIN_BUNDLE_VERSION
from .engine import BundleLoader, load_bundles
from .loader import load_bundle, load_bundle_from_file
from .model.cid import ContentId
from .model.header import ArchiveHeader
from .registry.manifests import ManifestRegistry
from .registry.releases import ReleaseCatalogue, ReleaseEntry
from .sources import BundleSource
from .storage.blockstore import Blockstore, FileBlockstore, MemoryBlockstore
from .errors import (
    BundleLoaderError,
    StorageError,
    ObjectNotFoundError,
    ObjectCorruptedError,
    InvalidReferenceError,
    ArchiveDecodeError,
    LoadCancelledError,
    BundleLoadError,
    RootCountError,
    LoaderConfigError,
    UnknownVersionError,
    BlockstoreError,
    BundleNotFoundError,
    ManifestMismatchError,
)

__all__ = [
    'LoaderConfig',
    'MIN_BUNDLE_VERSION',
    'BundleLoader',
    'load_bundles',
    'load_bundle',
    'load_bundle_from_file',
    'ContentId',
    'ArchiveHeader',
    'ManifestRegistry',
    'ReleaseCatalogue',
    'ReleaseEntry',
    'BundleSource',
    'Blockstore',
    'FileBlockstore',
    'MemoryBlockstore',
    'BundleLoaderError',
    'StorageError',
    'ObjectNotFoundError',
    'ObjectCorruptedError',
    'InvalidReferenceError',
    'ArchiveDecodeError',
    'LoadCancelledError',
    'BundleLoadError',
    'RootCountError',
    'LoaderConfigError',
    'UnknownVersionError',
    'BlockstoreError',
    'BundleNotFoundError',
    'ManifestMismatchError',
]
