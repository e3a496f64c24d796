# Author: Futhark1393
# Description: Process-wide cache of helper binaries (collector builds, adb).
# Binaries are copied from the assets source folder into a private scratch
# folder on first use and removed again by clean_assets().

import os
import shutil
import sys
import tempfile


def _program_dir() -> str:
    return os.path.dirname(os.path.abspath(sys.argv[0]))


class AssetCache:
    """
    Materializes named assets into a scratch folder.

    Usage::

        cache = AssetCache("/opt/aqf/assets")
        local = cache.get("collector_arm64")
        ...
        cache.clean_all()
    """

    def __init__(self, source_dir: str | None = None):
        self.source_dir = source_dir or os.path.join(_program_dir(), "assets")
        self._cache_dir: str | None = None
        self._materialized: dict[str, str] = {}

    @property
    def cache_dir(self) -> str | None:
        return self._cache_dir

    def has(self, name: str) -> bool:
        return name in self._materialized or os.path.isfile(os.path.join(self.source_dir, name))

    def get(self, name: str) -> str:
        """Return a local, executable copy of asset *name*.

        Raises FileNotFoundError if the assets folder does not provide it.
        """
        if name in self._materialized:
            return self._materialized[name]

        source = os.path.join(self.source_dir, name)
        if not os.path.isfile(source):
            raise FileNotFoundError(f"Asset not found: {source}")

        if self._cache_dir is None:
            self._cache_dir = tempfile.mkdtemp(prefix="aqf-assets-")

        target = os.path.join(self._cache_dir, name)
        shutil.copy2(source, target)
        os.chmod(target, 0o755)
        self._materialized[name] = target
        return target

    def clean_all(self) -> None:
        """Remove every materialized asset. Safe to call repeatedly."""
        cache_dir = self._cache_dir
        self._cache_dir = None
        self._materialized = {}
        if cache_dir and os.path.isdir(cache_dir):
            shutil.rmtree(cache_dir)


_default_cache: AssetCache | None = None


def configure(source_dir: str | None) -> AssetCache:
    """Replace the process-wide cache, cleaning the previous one first."""
    global _default_cache
    if _default_cache is not None:
        _default_cache.clean_all()
    _default_cache = AssetCache(source_dir)
    return _default_cache


def default_cache() -> AssetCache:
    global _default_cache
    if _default_cache is None:
        _default_cache = AssetCache()
    return _default_cache


def clean_assets() -> None:
    """Remove all assets materialized by the process-wide cache."""
    if _default_cache is not None:
        _default_cache.clean_all()
