"""Runtime resolution and install.

This module handles:
- Reading the requested runtime version from the build environment
- Validating it against the published version catalog
- Installing the build-time toolchain and the slug runtime
- Exposing the runtime executables under the slug's bin/

Nothing happens unless RUBY_VERSION is set.
"""

from __future__ import annotations

import logging
import shutil
import stat
from pathlib import Path

from slugpack import output
from slugpack.builds.context import BuildContext
from slugpack.environment import Environment
from slugpack.types import BuildError

logger = logging.getLogger(__name__)

VERSION_VAR = "RUBY_VERSION"
BIN_DIR = "bin"

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class RuntimeInstallError(BuildError):
    """Raised when the requested runtime cannot be installed."""

    def __init__(self, message: str, code: str = "invalid_version") -> None:
        super().__init__(message, code=code)


def requested_version(env: Environment) -> str | None:
    """Return the requested runtime version, or None if none was requested."""
    return env.get(VERSION_VAR) or None


def toolchain_archive_name(version: str) -> str:
    """Name of the build-time toolchain archive for ``version``."""
    return version.replace("ruby", "ruby-build", 1)


def slug_runtime_dir(version: str) -> str:
    """Relative path of the vendored runtime inside the slug."""
    return f"vendor/{version}"


def build_runtime_dir(scratch_dir: Path, version: str) -> Path:
    """Absolute path of the build-time toolchain."""
    return scratch_dir / version


def invalid_version_message(version: str, valid_versions: str) -> str:
    return f"Invalid {VERSION_VAR} specified: {version}\nValid versions: {valid_versions}\n"


def make_executable(path: Path) -> None:
    """Add the execute bits for owner, group and other."""
    mode = path.stat().st_mode
    path.chmod(stat.S_IMODE(mode) | EXECUTE_BITS)


def copy_executables(source_dir: Path, bin_dir: Path) -> list[Path]:
    """Copy the files of ``source_dir`` into ``bin_dir`` as executables.

    Subdirectories are omitted, as a plain ``cp dir/*`` would.

    Returns:
        The copied paths.
    """
    bin_dir.mkdir(parents=True, exist_ok=True)
    copied: list[Path] = []
    if not source_dir.is_dir():
        logger.warning("Runtime has no bin directory at %s", source_dir)
        return copied

    for entry in sorted(source_dir.iterdir()):
        if entry.is_dir():
            logger.debug("Omitting directory %s", entry)
            continue
        dest = bin_dir / entry.name
        shutil.copy2(entry, dest)
        make_executable(dest)
        copied.append(dest)
        logger.debug("Installed executable %s", dest)
    return copied


def install_runtime(ctx: BuildContext) -> str | None:
    """Install the requested runtime into the build.

    The version is checked against the catalog before anything is fetched, so
    an unknown version leaves the build tree untouched.

    Args:
        ctx: Build context.

    Returns:
        The installed version, or None if no version was requested.

    Raises:
        RuntimeInstallError: If the version is unknown or an archive fails
            to extract.
        CatalogError: If the catalog cannot be loaded.
    """
    version = requested_version(ctx.env)
    if version is None:
        logger.debug("%s not set, using the stack runtime", VERSION_VAR)
        return None

    catalog = ctx.catalog
    message = invalid_version_message(version, catalog.joined())

    if version not in catalog:
        logger.error("Requested runtime %s is not in the catalog", version)
        raise RuntimeInstallError(message)

    toolchain_dir = build_runtime_dir(ctx.settings.runtime_scratch_dir, version)
    result = ctx.fetch(toolchain_archive_name(version), toolchain_dir)
    if not result.success:
        raise RuntimeInstallError(message)

    runtime_dir = ctx.path(slug_runtime_dir(version))
    result = ctx.fetch(version, runtime_dir)
    if not result.success:
        raise RuntimeInstallError(message)

    copy_executables(runtime_dir / BIN_DIR, ctx.path(BIN_DIR))

    output.topic(f"Using {VERSION_VAR}: {version}")
    logger.info("Installed runtime %s", version)
    return version


__all__ = [
    "BIN_DIR",
    "RuntimeInstallError",
    "VERSION_VAR",
    "build_runtime_dir",
    "copy_executables",
    "install_runtime",
    "invalid_version_message",
    "make_executable",
    "requested_version",
    "slug_runtime_dir",
    "toolchain_archive_name",
]
