"""
Command line entry points.

Maps argparse commands onto the loader API.
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .config import LoaderConfig
from .engine import BundleLoader
from .errors import BundleLoaderError, LoaderConfigError
from .loader import load_bundle_from_file
from .registry.manifests import ManifestRegistry
from .registry.releases import ReleaseCatalogue
from .storage.blockstore import FileBlockstore, MemoryBlockstore


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser."""
    parser = argparse.ArgumentParser(
        prog="bundle-loader",
        description="Load and verify versioned block bundles",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    load = subparsers.add_parser("load", help="Load bundles for versions into a store")
    load.add_argument("--store", help="Block store directory (default: BUNDLE_LOADER_STORE)")
    load.add_argument("--manifests", required=True, help="Manifest registry JSON file")
    load.add_argument("--catalogue", required=True, help="Release catalogue JSON file")
    load.add_argument("--network", help="Network name (default: BUNDLE_LOADER_NETWORK or mainnet)")
    load.add_argument("versions", nargs="+", type=int, help="Versions to load")

    inspect = subparsers.add_parser("inspect", help="Decode a bundle and print its root")
    inspect.add_argument("bundle", help="Bundle file")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the CLI.

    Returns process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "load":
            return _run_load(args)
        if args.command == "inspect":
            return _run_inspect(args)
    except BundleLoaderError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    parser.error(f"Unsupported command: {args.command}")
    return 2


def _run_load(args: argparse.Namespace) -> int:
    config = LoaderConfig.from_env()
    if args.network:
        config = replace(config, network=args.network)

    store_path = Path(args.store) if args.store else config.store_path
    if store_path is None:
        raise LoaderConfigError("no store given: pass --store or set BUNDLE_LOADER_STORE")

    manifests = ManifestRegistry.from_json(args.manifests)
    releases = ReleaseCatalogue.from_json(args.catalogue)
    store = FileBlockstore.open(store_path)

    BundleLoader(manifests, releases, config=config).load_bundles(store, args.versions)

    print(f"loaded versions {' '.join(str(v) for v in args.versions)} into {store_path}")
    return 0


def _run_inspect(args: argparse.Namespace) -> int:
    store = MemoryBlockstore()
    root = load_bundle_from_file(store, args.bundle)
    print(f"root: {root}")
    print(f"blocks: {len(store)}")
    return 0
