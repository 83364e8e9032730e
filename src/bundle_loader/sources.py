"""
Bundle source resolution.

A resolver looks at one version and its release entry and either names a
source for the bundle or returns None. The orchestrator tries resolvers in
order and uses the first source found.
"""

import io
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Mapping, Optional

from .config import LoaderConfig
from .loader import load_bundle, load_bundle_from_file
from .model.cid import ContentId
from .registry.releases import ReleaseEntry
from .storage.blockstore import Blockstore

OVERRIDE = 'override'
CATALOGUE = 'catalogue'
EMBEDDED = 'embedded'


@dataclass(frozen=True)
class BundleSource:
    """Where a version's bundle bytes come from."""

    kind: str
    path: Optional[Path] = None
    data: Optional[bytes] = None

    def __post_init__(self):
        if (self.path is None) == (self.data is None):
            raise ValueError("BundleSource needs exactly one of path or data")

    def load_into(
        self,
        store: Blockstore,
        cancel: Optional[threading.Event] = None,
    ) -> ContentId:
        """Load this source into the store and return the bundle root."""
        if self.path is not None:
            return load_bundle_from_file(store, self.path, cancel)
        return load_bundle(store, io.BytesIO(self.data), cancel)

    def describe(self) -> str:
        if self.path is not None:
            return f"{self.kind}:{self.path}"
        return f"{self.kind}:{len(self.data)} bytes"


Resolver = Callable[[int, ReleaseEntry], Optional[BundleSource]]


def override_resolver(
    config: LoaderConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> Resolver:
    """Resolve from the per-version override environment variable."""
    env = os.environ if environ is None else environ

    def resolve(version: int, entry: ReleaseEntry) -> Optional[BundleSource]:
        path = env.get(config.override_var(version), '')
        if not path:
            return None
        return BundleSource(OVERRIDE, path=Path(path))

    return resolve


def catalogue_resolver(config: LoaderConfig) -> Resolver:
    """Resolve from the release entry's path for the configured network."""

    def resolve(version: int, entry: ReleaseEntry) -> Optional[BundleSource]:
        path = entry.path_for(config.network)
        if not path:
            return None
        return BundleSource(CATALOGUE, path=Path(path))

    return resolve


def embedded_resolver(version: int, entry: ReleaseEntry) -> Optional[BundleSource]:
    """Resolve from the bundle embedded in the release entry."""
    if entry.embedded is None:
        return None
    return BundleSource(EMBEDDED, data=entry.embedded)


def default_resolvers(
    config: LoaderConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> List[Resolver]:
    """Override first, then the catalogue path, then embedded data."""
    return [
        override_resolver(config, environ),
        catalogue_resolver(config),
        embedded_resolver,
    ]


def resolve_source(
    resolvers: List[Resolver],
    version: int,
    entry: ReleaseEntry,
) -> Optional[BundleSource]:
    """Return the first source any resolver finds, or None."""
    for resolver in resolvers:
        source = resolver(version, entry)
        if source is not None:
            return source
    return None
