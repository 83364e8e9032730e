"""
Error types for bundle loading operations.

All errors are explicit and never silent.
"""


class BundleLoaderError(Exception):
    """Base exception for all bundle loader errors."""

    # Network version being loaded when the error was raised, if known.
    version = None

    def for_version(self, version: int) -> "BundleLoaderError":
        """
        Attach the network version to this error.

        The message gains a version prefix once. Returns self so callers
        can re-raise it.
        """
        if self.version is None:
            self.version = version
            self.args = (f"bundle version v{version}: {self}",)
        return self


class StorageError(BundleLoaderError):
    """Raised when filesystem operations fail."""

    def __init__(self, operation: str, path: str, cause: Exception = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        msg = f"Storage error during {operation}: {path}"
        if cause:
            msg += f"\nCause: {cause}"
        super().__init__(msg)


class ObjectNotFoundError(BundleLoaderError):
    """Raised when a requested block does not exist."""

    def __init__(self, cid: str):
        self.cid = cid
        super().__init__(f"Block not found: {cid}")


class ObjectCorruptedError(BundleLoaderError):
    """Raised when a block's content does not match its identifier."""

    def __init__(self, cid: str, expected: str, actual: str):
        self.cid = cid
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Block corrupted: {cid}\n"
            f"Expected digest: {expected}\n"
            f"Actual digest: {actual}"
        )


class InvalidReferenceError(BundleLoaderError):
    """Raised when a content identifier is malformed."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid reference: {reason}")


class ArchiveDecodeError(BundleLoaderError):
    """Raised when a block archive is malformed or truncated."""

    def __init__(self, reason: str, offset: int = None):
        self.reason = reason
        self.offset = offset
        msg = f"Malformed archive: {reason}"
        if offset is not None:
            msg += f" (offset: {offset})"
        super().__init__(msg)


class LoadCancelledError(BundleLoaderError):
    """Raised when a caller cancels a load while the archive is decoding."""

    def __init__(self, blocks_written: int):
        self.blocks_written = blocks_written
        super().__init__(f"Bundle load cancelled after {blocks_written} blocks")


class BundleLoadError(BundleLoaderError):
    """Raised when an archive cannot be loaded into the store."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"error loading bundle: {cause}")


class RootCountError(BundleLoaderError):
    """Raised when an archive does not declare exactly one root."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(f"expected one root when loading bundle, got {count}")


class LoaderConfigError(BundleLoaderError):
    """Raised for invalid runtime configuration or registry files."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid configuration: {reason}")


class UnknownVersionError(BundleLoaderError):
    """Raised when a version is missing from the manifest registry or release catalogue."""

    def __init__(self, version: int, table: str):
        self.version = version
        self.table = table
        super().__init__(f"unknown bundle version v{version} (not in {table})")


class BlockstoreError(BundleLoaderError):
    """Raised when the block store fails while checking for a manifest."""

    def __init__(self, manifest_cid: str, cause: Exception):
        self.manifest_cid = manifest_cid
        self.cause = cause
        super().__init__(f"blockstore error when loading manifest {manifest_cid}: {cause}")


class BundleNotFoundError(BundleLoaderError):
    """Raised when no source supplies the bundle for a version."""

    def __init__(self, version: int):
        self.version = version
        super().__init__(f"bundle for version v{version} not found")


class ManifestMismatchError(BundleLoaderError):
    """Raised when a loaded bundle's root differs from the registered manifest."""

    def __init__(self, version: int, expected: str, actual: str):
        self.version = version
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"expected manifest for version {version} does not match actual: "
            f"{expected} != {actual}"
        )
