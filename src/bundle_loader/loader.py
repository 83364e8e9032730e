"""
Single-archive loader.

Decodes one bundle into a block store and returns its root.
"""

import threading
from pathlib import Path
from typing import BinaryIO, Optional

from .archive.reader import read_archive
from .errors import (
    ArchiveDecodeError,
    BundleLoadError,
    ObjectCorruptedError,
    StorageError,
)
from .integrity.verification import single_root
from .model.cid import ContentId
from .storage.blockstore import Blockstore


def load_bundle(
    store: Blockstore,
    stream: BinaryIO,
    cancel: Optional[threading.Event] = None,
) -> ContentId:
    """
    Load a bundle from a stream into the store.

    Returns the bundle's root identifier.

    Raises:
        BundleLoadError: the archive could not be decoded or written
        RootCountError: the archive does not have exactly one root
        LoadCancelledError: cancel was set while decoding
    """
    try:
        header = read_archive(stream, store, cancel)
    except (ArchiveDecodeError, ObjectCorruptedError, StorageError, OSError) as e:
        raise BundleLoadError(e) from e

    return single_root(header)


def load_bundle_from_file(
    store: Blockstore,
    path: str | Path,
    cancel: Optional[threading.Event] = None,
) -> ContentId:
    """
    Load a bundle file into the store.

    Raises StorageError naming the path if the file cannot be opened.
    """
    try:
        f = open(path, 'rb')
    except OSError as e:
        raise StorageError("open_bundle", str(path), e)

    with f:
        return load_bundle(store, f, cancel)
