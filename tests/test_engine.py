"""
Test the multi-version bundle engine.

Verifies skip rules, source priority, manifest verification, fail-fast
behaviour and idempotence.
"""

import threading

import pytest

from bundle_loader import (
    BlockstoreError,
    BundleLoader,
    BundleLoadError,
    BundleNotFoundError,
    ContentId,
    FileBlockstore,
    LoadCancelledError,
    LoaderConfig,
    ManifestMismatchError,
    ManifestRegistry,
    MemoryBlockstore,
    ReleaseCatalogue,
    ReleaseEntry,
    StorageError,
    UnknownVersionError,
    load_bundles,
)
from bundle_loader.sources import BundleSource, EMBEDDED


class RecordingStore(MemoryBlockstore):
    """Memory store that records has() queries and put() calls."""

    def __init__(self):
        super().__init__()
        self.has_calls = []
        self.put_calls = 0

    def has(self, cid):
        self.has_calls.append(cid)
        return super().has(cid)

    def put(self, cid, data):
        self.put_calls += 1
        super().put(cid, data)


class FailingStore(MemoryBlockstore):
    def has(self, cid):
        raise StorageError("stat", "/store/blocks", OSError("disk gone"))


class RecordingRegistry(ManifestRegistry):
    """Registry that records which versions were looked up."""

    def __init__(self, manifests):
        super().__init__(manifests)
        self.lookups = []

    def lookup(self, version):
        self.lookups.append(version)
        return super().lookup(version)


def make_loader(manifests, entries, environ=None, **config):
    return BundleLoader(
        manifests,
        ReleaseCatalogue(entries),
        config=LoaderConfig(**config),
        environ=environ or {},
    )


class TestScenarios:
    """End-to-end version scenarios."""

    def test_two_embedded_versions(self, bundles):
        """Versions 8 and 9 load from embedded data into an empty store."""
        v8, r8 = bundles.make(b'manifest-v8', b'code-v8')
        v9, r9 = bundles.make(b'manifest-v9', b'code-v9')
        store = MemoryBlockstore()
        loader = make_loader(
            ManifestRegistry({8: r8, 9: r9}),
            [ReleaseEntry(8, embedded=v8), ReleaseEntry(9, embedded=v9)],
        )

        loader.load_bundles(store, [8, 9])

        for block in (b'manifest-v8', b'code-v8', b'manifest-v9', b'code-v9'):
            assert store.has(ContentId.for_data(block))

    def test_below_minimum_never_looked_up(self, bundles):
        """Version 7 is skipped without touching the registry."""
        v8, r8 = bundles.make(b'manifest-v8')
        registry = RecordingRegistry({8: r8})
        store = RecordingStore()
        loader = make_loader(registry, [ReleaseEntry(8, embedded=v8)])

        loader.load_bundles(store, [7, 8])

        assert registry.lookups == [8]
        assert store.has_calls == [r8]
        assert store.has(r8)

    def test_embedded_root_mismatch(self, bundles):
        """A bundle with the wrong root fails naming both identifiers."""
        v8, actual = bundles.make(b'not-the-manifest')
        expected = ContentId.for_data(b'manifest-v8')
        loader = make_loader(
            ManifestRegistry({8: expected}),
            [ReleaseEntry(8, embedded=v8)],
        )

        with pytest.raises(ManifestMismatchError) as exc_info:
            loader.load_bundles(MemoryBlockstore(), [8])

        error = exc_info.value
        assert error.version == 8
        assert error.expected == expected.encode()
        assert error.actual == actual.encode()
        assert expected.encode() in str(error)
        assert actual.encode() in str(error)


class TestSkipRules:
    """Test minimum version and already-present skips."""

    def test_below_minimum_writes_nothing(self):
        """Versions below the minimum need no registry or catalogue entry."""
        store = RecordingStore()
        loader = make_loader(ManifestRegistry({}), [])

        loader.load_bundles(store, [0, 5, 7])

        assert store.has_calls == []
        assert store.put_calls == 0

    def test_configurable_minimum(self, bundles):
        v9, r9 = bundles.make(b'manifest-v9')
        registry = RecordingRegistry({9: r9})
        loader = make_loader(registry, [ReleaseEntry(9, embedded=v9)], min_version=9)

        loader.load_bundles(MemoryBlockstore(), [8, 9])

        assert registry.lookups == [9]

    def test_present_manifest_skips_source(self, bundles, tmp_path):
        """A present manifest means no source is read, even a broken one."""
        r8 = ContentId.for_data(b'manifest-v8')
        store = RecordingStore()
        store.put(r8, b'manifest-v8')
        store.put_calls = 0
        broken = tmp_path / 'broken.bundle'
        broken.write_bytes(b'garbage')
        loader = make_loader(
            ManifestRegistry({8: r8}),
            [ReleaseEntry(8, paths={'mainnet': str(broken)}, embedded=b'garbage')],
            environ={'BUNDLE_LOADER_V8_BUNDLE': str(tmp_path / 'missing.bundle')},
        )

        loader.load_bundles(store, [8])

        assert store.put_calls == 0

    def test_present_manifest_needs_no_catalogue_entry(self):
        """The presence check runs before the catalogue lookup."""
        r8 = ContentId.for_data(b'manifest-v8')
        store = MemoryBlockstore()
        store.put(r8, b'manifest-v8')
        loader = make_loader(ManifestRegistry({8: r8}), [])

        loader.load_bundles(store, [8])

    def test_second_run_is_noop(self, bundles, tmp_path):
        """Loading the same versions twice succeeds without reading sources."""
        path = tmp_path / 'v8.bundle'
        r8 = bundles.write(path, b'manifest-v8', b'code-v8')
        store = RecordingStore()
        loader = make_loader(
            ManifestRegistry({8: r8}),
            [ReleaseEntry(8, paths={'mainnet': str(path)})],
        )

        loader.load_bundles(store, [8])
        writes = store.put_calls
        path.unlink()
        loader.load_bundles(store, [8])

        assert store.put_calls == writes
        assert len(store) == 2

    def test_duplicate_versions_each_processed(self, bundles):
        """Duplicates are not collapsed; the second finds the manifest present."""
        v8, r8 = bundles.make(b'manifest-v8')
        store = RecordingStore()
        loader = make_loader(ManifestRegistry({8: r8}), [ReleaseEntry(8, embedded=v8)])

        loader.load_bundles(store, [8, 8])

        assert store.has_calls == [r8, r8]
        assert store.put_calls == 1


class TestSourcePriority:
    """Test override -> catalogue -> embedded ordering."""

    @pytest.fixture
    def sources(self, bundles, tmp_path):
        """Three distinct bundles for version 8, one per source."""
        override_path = tmp_path / 'override.bundle'
        catalogue_path = tmp_path / 'catalogue.bundle'
        roots = {
            'override': bundles.write(override_path, b'override-manifest'),
            'catalogue': bundles.write(catalogue_path, b'catalogue-manifest'),
        }
        embedded, roots['embedded'] = bundles.make(b'embedded-manifest')
        return {
            'override_path': override_path,
            'catalogue_path': catalogue_path,
            'embedded': embedded,
            'roots': roots,
        }

    def _loader(self, sources, expected, environ, paths):
        return make_loader(
            ManifestRegistry({8: sources['roots'][expected]}),
            [ReleaseEntry(8, paths=paths, embedded=sources['embedded'])],
            environ=environ,
        )

    def test_override_wins(self, sources):
        store = MemoryBlockstore()
        loader = self._loader(
            sources,
            'override',
            {'BUNDLE_LOADER_V8_BUNDLE': str(sources['override_path'])},
            {'mainnet': str(sources['catalogue_path'])},
        )

        loader.load_bundles(store, [8])

        assert store.has(sources['roots']['override'])
        assert not store.has(sources['roots']['catalogue'])
        assert not store.has(sources['roots']['embedded'])

    def test_catalogue_without_override(self, sources):
        store = MemoryBlockstore()
        loader = self._loader(
            sources, 'catalogue', {}, {'mainnet': str(sources['catalogue_path'])}
        )

        loader.load_bundles(store, [8])

        assert store.has(sources['roots']['catalogue'])
        assert not store.has(sources['roots']['embedded'])

    def test_empty_override_ignored(self, sources):
        """An empty override variable counts as unset."""
        store = MemoryBlockstore()
        loader = self._loader(
            sources,
            'catalogue',
            {'BUNDLE_LOADER_V8_BUNDLE': ''},
            {'mainnet': str(sources['catalogue_path'])},
        )

        loader.load_bundles(store, [8])

        assert store.has(sources['roots']['catalogue'])

    def test_embedded_last(self, sources):
        store = MemoryBlockstore()
        loader = self._loader(sources, 'embedded', {}, {})

        loader.load_bundles(store, [8])

        assert store.has(sources['roots']['embedded'])

    def test_other_network_path_ignored(self, sources):
        """Only the configured network's path is used."""
        store = MemoryBlockstore()
        loader = self._loader(
            sources, 'embedded', {}, {'calibnet': str(sources['catalogue_path'])}
        )

        loader.load_bundles(store, [8])

        assert store.has(sources['roots']['embedded'])

    def test_configured_network(self, sources):
        store = MemoryBlockstore()
        loader = make_loader(
            ManifestRegistry({8: sources['roots']['catalogue']}),
            [ReleaseEntry(8, paths={'calibnet': str(sources['catalogue_path'])})],
            network='calibnet',
        )

        loader.load_bundles(store, [8])

        assert store.has(sources['roots']['catalogue'])

    def test_missing_override_file_is_fatal(self, sources, tmp_path):
        """A bad override path fails instead of falling back."""
        loader = self._loader(
            sources,
            'catalogue',
            {'BUNDLE_LOADER_V8_BUNDLE': str(tmp_path / 'nope.bundle')},
            {'mainnet': str(sources['catalogue_path'])},
        )

        with pytest.raises(StorageError):
            loader.load_bundles(MemoryBlockstore(), [8])

    def test_custom_resolvers(self, sources):
        """Callers may supply their own ordered resolvers."""
        store = MemoryBlockstore()
        loader = BundleLoader(
            ManifestRegistry({8: sources['roots']['embedded']}),
            ReleaseCatalogue([ReleaseEntry(8)]),
            resolvers=[
                lambda version, entry: None,
                lambda version, entry: BundleSource(EMBEDDED, data=sources['embedded']),
            ],
        )

        loader.load_bundles(store, [8])

        assert store.has(sources['roots']['embedded'])


class TestFailures:
    """Test fail-fast error handling."""

    def test_mismatch_stops_later_versions(self, bundles):
        """A mismatch on version 8 leaves version 9 unprocessed."""
        bad_v8, _ = bundles.make(b'wrong-manifest')
        v9, r9 = bundles.make(b'manifest-v9')
        store = RecordingStore()
        loader = make_loader(
            ManifestRegistry({8: ContentId.for_data(b'manifest-v8'), 9: r9}),
            [ReleaseEntry(8, embedded=bad_v8), ReleaseEntry(9, embedded=v9)],
        )

        with pytest.raises(ManifestMismatchError):
            loader.load_bundles(store, [8, 9])

        assert r9 not in store.has_calls
        assert not store.has(r9)

    def test_unknown_manifest(self, bundles):
        v9, r9 = bundles.make(b'manifest-v9')
        store = RecordingStore()
        loader = make_loader(ManifestRegistry({9: r9}), [ReleaseEntry(9, embedded=v9)])

        with pytest.raises(UnknownVersionError) as exc_info:
            loader.load_bundles(store, [8, 9])

        assert exc_info.value.version == 8
        assert exc_info.value.table == 'manifest registry'
        assert store.has_calls == []

    def test_unknown_release(self):
        loader = make_loader(ManifestRegistry({8: ContentId.for_data(b'm')}), [])

        with pytest.raises(UnknownVersionError, match='release catalogue'):
            loader.load_bundles(MemoryBlockstore(), [8])

    def test_no_source(self):
        loader = make_loader(
            ManifestRegistry({8: ContentId.for_data(b'm')}),
            [ReleaseEntry(8, paths={'mainnet': ''})],
        )

        with pytest.raises(BundleNotFoundError, match='v8 not found'):
            loader.load_bundles(MemoryBlockstore(), [8])

    def test_store_error_is_fatal(self):
        loader = make_loader(ManifestRegistry({8: ContentId.for_data(b'm')}), [])

        with pytest.raises(BlockstoreError) as exc_info:
            loader.load_bundles(FailingStore(), [8])

        assert isinstance(exc_info.value.cause, StorageError)

    def test_malformed_source(self):
        loader = make_loader(
            ManifestRegistry({8: ContentId.for_data(b'm')}),
            [ReleaseEntry(8, embedded=b'\x10short')],
        )

        with pytest.raises(BundleLoadError):
            loader.load_bundles(MemoryBlockstore(), [8])

    def test_load_error_names_version(self, bundles):
        """A failed load reports which version it was loading."""
        v8, r8 = bundles.make(b'manifest-v8')
        loader = make_loader(
            ManifestRegistry({8: r8, 9: ContentId.for_data(b'manifest-v9')}),
            [ReleaseEntry(8, embedded=v8), ReleaseEntry(9, embedded=b'\x10short')],
        )

        with pytest.raises(BundleLoadError) as exc_info:
            loader.load_bundles(MemoryBlockstore(), [8, 9])

        assert exc_info.value.version == 9
        assert str(exc_info.value).startswith('bundle version v9: error loading bundle')

    def test_missing_file_names_version(self, tmp_path):
        loader = make_loader(
            ManifestRegistry({8: ContentId.for_data(b'm')}),
            [ReleaseEntry(8, paths={'mainnet': str(tmp_path / 'absent.bundle')})],
        )

        with pytest.raises(StorageError) as exc_info:
            loader.load_bundles(MemoryBlockstore(), [8])

        assert exc_info.value.version == 8
        assert 'v8' in str(exc_info.value)

    def test_cancel_propagates(self, bundles):
        v8, r8 = bundles.make(b'manifest-v8')
        loader = make_loader(ManifestRegistry({8: r8}), [ReleaseEntry(8, embedded=v8)])
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(LoadCancelledError):
            loader.load_bundles(MemoryBlockstore(), [8], cancel)


class TestFileStore:
    """Test loading into the filesystem block store."""

    def test_load_into_file_store(self, bundles, tmp_path):
        v8, r8 = bundles.make(b'manifest-v8', b'code-v8')
        store = FileBlockstore.open(tmp_path / 'store')

        load_bundles(
            store,
            [8],
            ManifestRegistry({8: r8}),
            ReleaseCatalogue([ReleaseEntry(8, embedded=v8)]),
            environ={},
        )

        assert store.has(r8)
        assert store.get(ContentId.for_data(b'code-v8')) == b'code-v8'

        # A fresh store object over the same directory sees the bundle.
        reopened = FileBlockstore.open(tmp_path / 'store')
        load_bundles(
            reopened,
            [8],
            ManifestRegistry({8: r8}),
            ReleaseCatalogue([]),
            environ={},
        )


class TestBundleSource:
    """Test source construction."""

    def test_needs_path_or_data(self):
        with pytest.raises(ValueError):
            BundleSource(EMBEDDED)

    def test_rejects_path_and_data(self, tmp_path):
        with pytest.raises(ValueError):
            BundleSource(EMBEDDED, path=tmp_path / 'v8.bundle', data=b'bundle')

    def test_describe(self, tmp_path):
        assert BundleSource(EMBEDDED, data=b'bundle').describe() == 'embedded:6 bytes'
        path = tmp_path / 'v8.bundle'
        assert BundleSource(EMBEDDED, path=path).describe() == f'embedded:{path}'
