# Author: Futhark1393
# Description: Artifact integrity recorder: walks the evidence tree, hashes every
#              regular file with SHA-256 and writes the hashes.csv manifest.
# Design: the manifest is staged in a temporary file next to (not inside) the
#         evidence tree and moved into place only after the walk completes, so
#         it can never hash a partial copy of itself.

import csv
import os
import stat
import tempfile
from dataclasses import dataclass
from typing import Iterator

from aqf.core.errors import WalkError
from aqf.core.hashing import sha256_file

MANIFEST_NAME = "hashes.csv"
SIGNATURE_SUFFIX = ".sig"
MANIFEST_MODE = 0o644


@dataclass(frozen=True)
class HashRecord:
    """One manifest row: absolute file path and lowercase SHA-256 hex digest."""
    path: str
    sha256: str


class ManifestBuilder:
    """
    Builds the integrity manifest for one evidence directory.

    Usage::

        records = ManifestBuilder("/evidence/<uuid>").build()

    Any traversal, read or write error raises WalkError and leaves no
    manifest behind. There is no partial-success mode.
    """

    def __init__(self, storage_path: str, manifest_name: str = MANIFEST_NAME):
        self.storage_path = os.path.abspath(storage_path)
        self.manifest_name = manifest_name

    @property
    def manifest_path(self) -> str:
        return os.path.join(self.storage_path, self.manifest_name)

    def _excluded_paths(self) -> set[str]:
        # Also covers a stale manifest/signature left by an earlier run.
        return {self.manifest_path, self.manifest_path + SIGNATURE_SUFFIX}

    def iter_files(self) -> Iterator[str]:
        """Yield every regular file under the evidence tree in walk order."""
        if not os.path.isdir(self.storage_path):
            raise WalkError(
                f"Evidence directory does not exist: {self.storage_path}",
                path=self.storage_path,
            )

        def _on_error(err: OSError) -> None:
            raise WalkError(
                f"Failed to walk {err.filename}: {err.strerror or err}",
                path=err.filename,
            ) from err

        excluded = self._excluded_paths()

        for root, _dirs, files in os.walk(self.storage_path, onerror=_on_error):
            for name in files:
                file_path = os.path.join(root, name)
                if file_path in excluded:
                    continue
                try:
                    mode = os.lstat(file_path).st_mode
                except OSError as e:
                    raise WalkError(f"Failed to stat {file_path}: {e}", path=file_path) from e
                # Symlinks, FIFOs, sockets and device nodes are not evidence content.
                if not stat.S_ISREG(mode):
                    continue
                yield file_path

    def build(self) -> list[HashRecord]:
        """Walk the tree once, hash every regular file and write the manifest.

        Returns the records in the order they were written. A manifest or
        signature left by an earlier run is removed first, so a failed run
        never leaves an outdated manifest in the evidence tree.
        """
        for stale in sorted(self._excluded_paths()):
            try:
                _discard(stale)
            except OSError as e:
                raise WalkError(f"Failed to remove previous manifest {stale}: {e}", path=stale) from e

        parent = os.path.dirname(self.storage_path)
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{os.path.basename(self.storage_path)}.",
                suffix=f".{self.manifest_name}.tmp",
                dir=parent,
            )
        except OSError as e:
            raise WalkError(f"Failed to open manifest output: {e}", path=parent) from e

        records: list[HashRecord] = []
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f, lineterminator="\n")
                for file_path in self.iter_files():
                    try:
                        digest = sha256_file(file_path)
                    except OSError as e:
                        raise WalkError(f"Failed to hash {file_path}: {e}", path=file_path) from e
                    writer.writerow([file_path, digest])
                    records.append(HashRecord(file_path, digest))
                f.flush()
                os.fsync(f.fileno())
            # mkstemp creates 0600; publish with the same mode as other artifacts.
            os.chmod(tmp_path, MANIFEST_MODE)
            os.replace(tmp_path, self.manifest_path)
        except WalkError:
            _discard(tmp_path)
            raise
        except OSError as e:
            _discard(tmp_path)
            raise WalkError(f"Failed to write manifest: {e}", path=self.manifest_path) from e

        return records


def _discard(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass


def read_manifest(manifest_path: str) -> list[HashRecord]:
    """Parse a hashes.csv manifest. Raises ValueError on a malformed row."""
    records = []
    with open(manifest_path, "r", newline="", encoding="utf-8") as f:
        for line_number, row in enumerate(csv.reader(f), start=1):
            if not row:
                continue
            if len(row) != 2:
                raise ValueError(
                    f"Malformed manifest row at line {line_number}: expected 2 columns, got {len(row)}"
                )
            records.append(HashRecord(row[0], row[1]))
    return records


class ManifestVerifier:
    """Re-hashes the files listed in a manifest and reports any divergence."""

    @staticmethod
    def find_mismatches(manifest_path: str) -> list[dict]:
        mismatches = []
        for record in read_manifest(manifest_path):
            if not os.path.isfile(record.path):
                mismatches.append({
                    "path": record.path,
                    "expected": record.sha256,
                    "actual": None,
                    "status": "MISSING",
                })
                continue
            try:
                actual = sha256_file(record.path)
            except OSError as e:
                mismatches.append({
                    "path": record.path,
                    "expected": record.sha256,
                    "actual": None,
                    "status": f"UNREADABLE: {e}",
                })
                continue
            if actual != record.sha256:
                mismatches.append({
                    "path": record.path,
                    "expected": record.sha256,
                    "actual": actual,
                    "status": "ALTERED",
                })
        return mismatches

    @staticmethod
    def verify(manifest_path: str) -> tuple[bool, str]:
        if not os.path.exists(manifest_path):
            return False, "Manifest not found."

        try:
            total = len(read_manifest(manifest_path))
            mismatches = ManifestVerifier.find_mismatches(manifest_path)
        except (OSError, ValueError) as e:
            return False, f"Verification error: {e}"

        if mismatches:
            first = mismatches[0]
            return False, (
                f"Integrity check failed: {len(mismatches)} of {total} files diverge "
                f"(first: {first['path']} {first['status']})."
            )
        return True, f"Manifest verified successfully. {total} files intact."
