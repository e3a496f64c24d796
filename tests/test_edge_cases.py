# Tests for AQF manifest edge cases:
# 1. Self-reference: the manifest never hashes a partial copy of itself
# 2. Non-regular entries: symlinks and FIFOs are skipped
# 3. Failure policy: any walk or read error aborts with no manifest left behind

import hashlib
import os
import tempfile
from unittest.mock import patch

import pytest

from aqf.core.errors import WalkError
from aqf.core.hashing import sha256_file
from aqf.core.manifest import ManifestBuilder, read_manifest


def _tree(tmpdir):
    storage = os.path.join(tmpdir, "session")
    os.makedirs(os.path.join(storage, "apks"))
    with open(os.path.join(storage, "a.txt"), "wb") as f:
        f.write(b"alpha")
    with open(os.path.join(storage, "apks", "b.apk"), "wb") as f:
        f.write(b"bravo")
    return storage


# ═══════════════════════════════════════════════════════════════════════
# Self-reference tests
# ═══════════════════════════════════════════════════════════════════════

class TestManifestSelfReference:
    def test_manifest_absent_from_tree_during_walk(self):
        """While files are hashed the manifest must not exist inside the tree."""
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            manifest = os.path.join(storage, "hashes.csv")
            seen = []

            def _observing_hash(path, *args, **kwargs):
                seen.append(os.path.exists(manifest))
                return sha256_file(path, *args, **kwargs)

            with patch("aqf.core.manifest.sha256_file", side_effect=_observing_hash):
                ManifestBuilder(storage).build()

            assert seen == [False, False]
            assert os.path.isfile(manifest)

    def test_stale_manifest_and_signature_excluded(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            with open(os.path.join(storage, "hashes.csv"), "w", encoding="utf-8") as f:
                f.write("stale\n")
            with open(os.path.join(storage, "hashes.csv.sig"), "wb") as f:
                f.write(b"stale-signature")

            records = ManifestBuilder(storage).build()
            names = {os.path.basename(r.path) for r in records}
            assert names == {"a.txt", "b.apk"}
            assert len(read_manifest(os.path.join(storage, "hashes.csv"))) == 2

    def test_similar_names_not_excluded(self):
        """Only the manifest at the tree root is excluded, not look-alikes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            nested = os.path.join(storage, "apks", "hashes.csv")
            with open(nested, "w", encoding="utf-8") as f:
                f.write("app data")
            paths = {r.path for r in ManifestBuilder(storage).build()}
            assert nested in paths

    def test_custom_manifest_name(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            builder = ManifestBuilder(storage, manifest_name="sha256.csv")
            builder.build()
            assert os.path.isfile(os.path.join(storage, "sha256.csv"))
            assert builder.manifest_path not in {r.path for r in builder.build()}


# ═══════════════════════════════════════════════════════════════════════
# Non-regular entry tests
# ═══════════════════════════════════════════════════════════════════════

class TestNonRegularEntries:
    def test_symlinks_skipped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            os.symlink(os.path.join(storage, "a.txt"), os.path.join(storage, "link.txt"))
            os.symlink(os.path.join(storage, "apks"), os.path.join(storage, "apks-link"))
            os.symlink("/nonexistent/target", os.path.join(storage, "dangling"))

            names = {os.path.basename(r.path) for r in ManifestBuilder(storage).build()}
            assert names == {"a.txt", "b.apk"}

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs not supported")
    def test_fifo_skipped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            os.mkfifo(os.path.join(storage, "pipe"))
            names = {os.path.basename(r.path) for r in ManifestBuilder(storage).build()}
            assert names == {"a.txt", "b.apk"}

    def test_digest_matches_content(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            big = os.path.join(storage, "big.bin")
            data = os.urandom(3 * 1024 * 1024 + 17)
            with open(big, "wb") as f:
                f.write(data)
            digests = {r.path: r.sha256 for r in ManifestBuilder(storage).build()}
            assert digests[big] == hashlib.sha256(data).hexdigest()


# ═══════════════════════════════════════════════════════════════════════
# Failure policy tests
# ═══════════════════════════════════════════════════════════════════════

class TestManifestFailurePolicy:
    def test_read_error_aborts(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            with patch(
                "aqf.core.manifest.sha256_file",
                side_effect=PermissionError(13, "Permission denied"),
            ):
                with pytest.raises(WalkError, match="Failed to hash") as exc:
                    ManifestBuilder(storage).build()

            assert exc.value.path is not None
            assert not os.path.exists(os.path.join(storage, "hashes.csv"))
            # No temporary manifest left next to the tree
            assert os.listdir(tmpdir) == ["session"]

    def test_traversal_error_aborts(self):
        def _failing_walk(top, onerror=None, **kwargs):
            yield top, ["apks"], ["a.txt"]
            onerror(PermissionError(13, "Permission denied", os.path.join(top, "apks")))

        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            with patch("aqf.core.manifest.os.walk", side_effect=_failing_walk):
                with pytest.raises(WalkError, match="Permission denied") as exc:
                    ManifestBuilder(storage).build()

            assert exc.value.path == os.path.join(storage, "apks")
            assert not os.path.exists(os.path.join(storage, "hashes.csv"))
            assert os.listdir(tmpdir) == ["session"]

    def test_failed_run_removes_previous_manifest(self):
        """An outdated manifest must not survive a failed rerun."""
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            manifest = os.path.join(storage, "hashes.csv")
            ManifestBuilder(storage).build()
            with open(manifest + ".sig", "wb") as f:
                f.write(b"old-signature")
            with open(os.path.join(storage, "late.txt"), "wb") as f:
                f.write(b"collected after the first manifest")

            with patch("aqf.core.manifest.sha256_file", side_effect=OSError("I/O error")):
                with pytest.raises(WalkError):
                    ManifestBuilder(storage).build()

            assert not os.path.exists(manifest)
            assert not os.path.exists(manifest + ".sig")
            assert os.listdir(tmpdir) == ["session"]

    def test_manifest_published_world_readable(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            ManifestBuilder(storage).build()
            mode = os.stat(os.path.join(storage, "hashes.csv")).st_mode & 0o777
            assert mode == 0o644

    def test_unwritable_parent(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            storage = _tree(tmpdir)
            with patch(
                "aqf.core.manifest.tempfile.mkstemp",
                side_effect=PermissionError(13, "Permission denied"),
            ):
                with pytest.raises(WalkError, match="Failed to open manifest output"):
                    ManifestBuilder(storage).build()
