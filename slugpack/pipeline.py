"""Pipeline entry point.

``run`` detects the pack for a build directory and compiles it. Any fatal
stage failure propagates as a BuildError; completed stages are not rolled
back.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from slugpack.builds.context import BuildContext
from slugpack.config import Settings, get_settings
from slugpack.environment import Environment
from slugpack.packs import NoPackDetectedError, RubyPack, detect

logger = logging.getLogger(__name__)


def select_pack(build_dir: Path) -> type[RubyPack]:
    """Detect the pack for ``build_dir``.

    Raises:
        NoPackDetectedError: If no pack applies.
    """
    pack_cls = detect(build_dir)
    if pack_cls is None:
        raise NoPackDetectedError(f"No language pack applies to {build_dir}")
    logger.info("Detected %s app", pack_cls.name)
    return pack_cls


def run(
    build_dir: Path,
    cache_dir: Path | None = None,
    settings: Settings | None = None,
    env: Environment | None = None,
    client: httpx.Client | None = None,
) -> RubyPack:
    """Compile ``build_dir`` into a slug.

    Args:
        build_dir: Application tree to compile in place.
        cache_dir: Cross-build cache root (defaults to settings).
        settings: Application settings (defaults to environment).
        env: Build environment (defaults to a snapshot of os.environ).
        client: HTTP client for the artifact store.

    Returns:
        The pack instance that compiled the build.

    Raises:
        BuildError: If detection or any stage fails.
    """
    settings = settings if settings is not None else get_settings()
    if not build_dir.is_dir():
        raise NoPackDetectedError(f"Build directory not found: {build_dir}", code="no_build_dir")

    pack_cls = select_pack(build_dir)
    with BuildContext.create(
        build_dir,
        cache_dir=cache_dir,
        env=env,
        settings=settings,
        client=client,
    ) as ctx:
        pack = pack_cls(ctx)
        pack.compile()
    return pack


__all__ = ["run", "select_pack"]
