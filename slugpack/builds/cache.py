"""Cross-build cache of build-tree subtrees.

This module handles:
- Restoring a cached subtree into the build tree (``load``)
- Persisting a build-tree subtree for later builds (``store``)

Entries are keyed by their path relative to the build directory and are not
content-addressed. Callers decide whether a subtree is fresh enough to store;
the expected order within one build is load, populate, store.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from slugpack.types import BuildError

logger = logging.getLogger(__name__)


class CacheError(BuildError):
    """Raised when a cache path is unusable."""

    def __init__(self, message: str, code: str = "cache_error") -> None:
        super().__init__(message, code=code)


def _resolve_within(base: Path, relative_path: str) -> Path:
    """Join ``relative_path`` onto ``base``, refusing escapes.

    Raises:
        CacheError: If the path is absolute or leaves ``base``.
    """
    rel = Path(relative_path)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise CacheError(
            f"Cache path must be a relative path inside the build: {relative_path!r}",
            code="path_traversal",
        )
    return base / rel


def _remove(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)


def _copy(source: Path, dest: Path) -> None:
    """Copy a file or directory tree preserving modes and symlinks."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir() and not source.is_symlink():
        shutil.copytree(source, dest, symlinks=True)
    else:
        shutil.copy2(source, dest, follow_symlinks=False)


class BuildCache:
    """Cache of build subtrees stored under ``cache_dir``.

    Args:
        cache_dir: Persistent cache root shared between builds.
        build_dir: Build tree the cached paths are relative to.
    """

    def __init__(self, cache_dir: Path, build_dir: Path) -> None:
        self.cache_dir = cache_dir
        self.build_dir = build_dir

    def __repr__(self) -> str:
        return f"BuildCache(cache_dir={self.cache_dir!s}, build_dir={self.build_dir!s})"

    def cached_path(self, relative_path: str) -> Path:
        return _resolve_within(self.cache_dir, relative_path)

    def exists(self, relative_path: str) -> bool:
        path = self.cached_path(relative_path)
        return path.exists() or path.is_symlink()

    def load(self, relative_path: str) -> bool:
        """Restore a cached subtree into the build tree.

        Whatever is at the destination is replaced. A cache miss leaves the
        build tree untouched.

        Args:
            relative_path: Path relative to the build directory.

        Returns:
            True if a cached copy was restored, False on a miss.
        """
        source = self.cached_path(relative_path)
        dest = _resolve_within(self.build_dir, relative_path)

        if not (source.exists() or source.is_symlink()):
            logger.debug("Cache miss for %s", relative_path)
            return False

        _remove(dest)
        _copy(source, dest)
        logger.info("Restored %s from cache", relative_path)
        return True

    def store(self, relative_path: str) -> bool:
        """Persist a build-tree subtree, replacing any stored copy.

        Args:
            relative_path: Path relative to the build directory.

        Returns:
            True if the subtree was stored. False if it does not exist in the
            build tree, in which case any stale stored copy is dropped.
        """
        source = _resolve_within(self.build_dir, relative_path)
        dest = self.cached_path(relative_path)

        _remove(dest)
        if not (source.exists() or source.is_symlink()):
            logger.debug("Nothing to cache at %s", relative_path)
            return False

        _copy(source, dest)
        logger.info("Stored %s in cache", relative_path)
        return True

    def clear(self, relative_path: str) -> bool:
        """Drop a stored subtree.

        Returns:
            True if something was removed.
        """
        path = self.cached_path(relative_path)
        if not (path.exists() or path.is_symlink()):
            return False
        _remove(path)
        return True


__all__ = ["BuildCache", "CacheError"]
