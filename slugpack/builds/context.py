"""Build context shared by every pipeline stage."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from slugpack.builds.cache import BuildCache
from slugpack.builds.lockfile import LOCKFILE_NAME, LockFileDescriptor, parse_lockfile
from slugpack.config import Settings
from slugpack.environment import Environment
from slugpack.vendor.catalog import VersionCatalog, fetch_catalog
from slugpack.vendor.fetch import FetchResult, fetch_archive

logger = logging.getLogger(__name__)


class BuildContext:
    """Mutable state of one build invocation.

    Holds the build directory, the build environment and the cache handle,
    plus the lazily loaded version catalog and lock-file metadata. Stages
    receive the context and use its paths explicitly; nothing relies on the
    process working directory.

    Args:
        build_dir: Application tree being turned into a slug.
        cache: Cross-build cache handle.
        env: Build environment. Defaults to a snapshot of the process env.
        settings: Application settings.
        client: HTTP client for the artifact store.
    """

    def __init__(
        self,
        build_dir: Path,
        cache: BuildCache,
        env: Environment | None = None,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.build_dir = build_dir
        self.cache = cache
        self.env = env if env is not None else Environment()
        self.settings = settings if settings is not None else Settings()
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client(follow_redirects=True)
        self._catalog: VersionCatalog | None = None
        self._lockfile: LockFileDescriptor | None = None

    @classmethod
    def create(
        cls,
        build_dir: Path,
        cache_dir: Path | None = None,
        env: Environment | None = None,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
    ) -> BuildContext:
        """Create a context with a cache rooted at ``cache_dir``.

        ``cache_dir`` defaults to the configured cache directory.
        """
        settings = settings if settings is not None else Settings()
        build_dir = build_dir.resolve()
        cache_root = (cache_dir if cache_dir is not None else settings.cache_dir).resolve()
        return cls(
            build_dir=build_dir,
            cache=BuildCache(cache_root, build_dir),
            env=env,
            settings=settings,
            client=client,
        )

    def path(self, relative: str) -> Path:
        """Return a path inside the build directory."""
        return self.build_dir / relative

    def fetch(self, name: str, dest_dir: Path) -> FetchResult:
        """Fetch and extract ``<name>.tgz`` from the artifact store."""
        return fetch_archive(
            self.client,
            name,
            dest_dir,
            base_url=self.settings.vendor_url,
            timeout=self.settings.http_timeout,
        )

    @property
    def catalog(self) -> VersionCatalog:
        """The runtime version catalog, fetched once per build."""
        if self._catalog is None:
            self._catalog = fetch_catalog(self.client, self.settings.vendor_url)
        return self._catalog

    @property
    def lockfile_path(self) -> Path:
        return self.build_dir / LOCKFILE_NAME

    @property
    def lockfile(self) -> LockFileDescriptor:
        """Lock-file metadata, parsed on first use and kept for the build.

        The parsed descriptor outlives the lock file itself, which the
        platform fallback deletes.
        """
        if self._lockfile is None:
            self._lockfile = parse_lockfile(self.lockfile_path.read_text(encoding="utf-8"))
            logger.debug(
                "Parsed %s: platforms=%s, %d specs",
                LOCKFILE_NAME,
                self._lockfile.platforms,
                len(self._lockfile.specs),
            )
        return self._lockfile

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> BuildContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["BuildContext"]
