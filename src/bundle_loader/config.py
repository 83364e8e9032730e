"""
Runtime configuration for bundle loading.

This module owns all environment variable parsing and validation.
Other modules consume a LoaderConfig instead of raw env reads.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .errors import LoaderConfigError

# No bundles exist before this version.
MIN_BUNDLE_VERSION = 8

DEFAULT_NETWORK = "mainnet"
DEFAULT_OVERRIDE_ENV_TEMPLATE = "BUNDLE_LOADER_V{version}_BUNDLE"

NETWORK_ENV = "BUNDLE_LOADER_NETWORK"
MIN_VERSION_ENV = "BUNDLE_LOADER_MIN_VERSION"
STORE_ENV = "BUNDLE_LOADER_STORE"


@dataclass(frozen=True)
class LoaderConfig:
    """
    Validated loader configuration.

    Attributes:
        network: name used to pick a path from each release entry
        min_version: versions below this have no bundle and are skipped
        override_env_template: per-version override variable, formatted with version
        store_path: optional default block store location
    """

    network: str = DEFAULT_NETWORK
    min_version: int = MIN_BUNDLE_VERSION
    override_env_template: str = DEFAULT_OVERRIDE_ENV_TEMPLATE
    store_path: Optional[Path] = None

    def __post_init__(self):
        if not self.network:
            raise LoaderConfigError("network name must not be empty")
        if '{version}' not in self.override_env_template:
            raise LoaderConfigError(
                f"override template {self.override_env_template!r} must contain {{version}}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'LoaderConfig':
        """
        Build config from environment variables.

        Args:
            environ: mapping to read from, defaults to os.environ

        Raises:
            LoaderConfigError: if a value is invalid
        """
        if environ is None:
            environ = os.environ

        network = environ.get(NETWORK_ENV) or DEFAULT_NETWORK
        min_version = _parse_min_version(environ.get(MIN_VERSION_ENV))

        store_value = environ.get(STORE_ENV)
        store_path = Path(store_value).expanduser().resolve() if store_value else None

        return cls(
            network=network,
            min_version=min_version,
            store_path=store_path,
        )

    def override_var(self, version: int) -> str:
        """Name of the environment variable that overrides a version's bundle path."""
        return self.override_env_template.format(version=version)


def _parse_min_version(raw_value: Optional[str]) -> int:
    if not raw_value:
        return MIN_BUNDLE_VERSION
    try:
        return int(raw_value)
    except ValueError as e:
        raise LoaderConfigError(
            f"{MIN_VERSION_ENV} must be an integer, got {raw_value!r}"
        ) from e
