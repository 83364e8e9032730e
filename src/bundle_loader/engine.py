"""
Bundle loading engine.

Loads the bundle for each requested version into a block store and checks
it against the registered manifest.
"""

import threading
from typing import Iterable, List, Mapping, Optional

from .config import LoaderConfig
from .errors import (
    BlockstoreError,
    BundleLoaderError,
    BundleNotFoundError,
    StorageError,
    UnknownVersionError,
)
from .integrity.verification import verify_manifest_root
from .logging_config import get_logger
from .registry.manifests import ManifestRegistry
from .registry.releases import ReleaseCatalogue
from .sources import Resolver, default_resolvers, resolve_source
from .storage.blockstore import Blockstore

logger = get_logger(__name__)


class BundleLoader:
    """
    Loads versioned bundles into a block store.

    For each version, in the order given:
    - versions below config.min_version are skipped
    - the expected manifest root comes from the registry
    - if the store already has that root, the version is skipped
    - otherwise the first resolver with a source supplies the bundle
    - the loaded root must equal the expected manifest root

    The first error stops the whole run. Versions after it are not touched.
    """

    def __init__(
        self,
        manifests: ManifestRegistry,
        releases: ReleaseCatalogue,
        config: Optional[LoaderConfig] = None,
        resolvers: Optional[List[Resolver]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            manifests: expected manifest root per version
            releases: bundle locations per version
            config: loader configuration, defaults to LoaderConfig()
            resolvers: ordered source resolvers, defaults to
                override -> catalogue path -> embedded
            environ: mapping holding override variables, defaults to os.environ
        """
        self.manifests = manifests
        self.releases = releases
        self.config = config or LoaderConfig()
        if resolvers is None:
            resolvers = default_resolvers(self.config, environ)
        self.resolvers = list(resolvers)

    def load_bundles(
        self,
        store: Blockstore,
        versions: Iterable[int],
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """
        Load and verify the bundles for the given versions.

        Raises the first BundleLoaderError encountered.
        """
        for version in versions:
            self.load_version(store, version, cancel)

    def load_version(
        self,
        store: Blockstore,
        version: int,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """Load and verify the bundle for a single version."""
        if version < self.config.min_version:
            logger.debug("bundle_version_skipped", version=version, reason="below_minimum")
            return

        manifest_cid = self.manifests.lookup(version)
        if manifest_cid is None:
            # All manifests are registered at start-up.
            raise UnknownVersionError(version, "manifest registry")

        try:
            present = store.has(manifest_cid)
        except (StorageError, OSError) as e:
            raise BlockstoreError(manifest_cid.encode(), e) from e

        if present:
            # Having the manifest means having everything under it.
            logger.debug("bundle_already_present", version=version, manifest=str(manifest_cid))
            return

        entry = self.releases.lookup(version)
        if entry is None:
            raise UnknownVersionError(version, "release catalogue")

        source = resolve_source(self.resolvers, version, entry)
        if source is None:
            raise BundleNotFoundError(version)

        logger.info("bundle_source_resolved", version=version, source=source.describe())

        try:
            root = source.load_into(store, cancel)
        except BundleLoaderError as e:
            raise e.for_version(version)

        verify_manifest_root(version, manifest_cid, root)

        logger.info("bundle_loaded", version=version, manifest=str(manifest_cid))


def load_bundles(
    store: Blockstore,
    versions: Iterable[int],
    manifests: ManifestRegistry,
    releases: ReleaseCatalogue,
    config: Optional[LoaderConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
    cancel: Optional[threading.Event] = None,
) -> None:
    """Load bundles for versions with the default resolver chain."""
    loader = BundleLoader(manifests, releases, config=config, environ=environ)
    loader.load_bundles(store, versions, cancel)
