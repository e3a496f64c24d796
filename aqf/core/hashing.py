# Author: Futhark1393
# Description: Incremental SHA-256 hashing for collected evidence files.

import hashlib

CHUNK_SIZE = 64 * 1024


class StreamHasher:
    """Incremental SHA-256 hasher for evidence streams."""

    def __init__(self):
        self._sha256 = hashlib.sha256()

    def update(self, data: bytes) -> None:
        self._sha256.update(data)

    @property
    def sha256_hex(self) -> str:
        return self._sha256.hexdigest()


def sha256_file(path: str, chunk_size: int = CHUNK_SIZE) -> str:
    """Stream the whole file at *path* through SHA-256 and return the lowercase hex digest.

    Raises OSError if the file cannot be opened or read.
    """
    hasher = StreamHasher()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hasher.update(chunk)
    return hasher.sha256_hex
