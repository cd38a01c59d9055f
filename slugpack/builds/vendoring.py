"""Vendored gems and binaries.

Language-pack gems (Bundler itself) are unpacked straight into the slug's gem
directory; binaries are unpacked into the slug's bin/.
"""

from __future__ import annotations

import logging
from pathlib import Path

from slugpack.builds.context import BuildContext
from slugpack.builds.runtime import BIN_DIR, make_executable
from slugpack.types import BuildError

logger = logging.getLogger(__name__)

# Gem directory of the slug; matches GEM_HOME
SLUG_VENDOR_BASE = "vendor/bundle/ruby/1.9.1"

BUNDLER_VERSION = "1.1.rc"
BUNDLER_GEM_PATH = f"bundler-{BUNDLER_VERSION}"


class VendoringError(BuildError):
    """Raised when a vendored archive cannot be installed."""

    def __init__(self, message: str, code: str = "fetch_failed") -> None:
        super().__init__(message, code=code)


def _chmod_entries(directory: Path, mode: int | None = None) -> None:
    if not directory.is_dir():
        return
    for path in sorted(directory.iterdir()):
        if path.is_symlink():
            continue
        if mode is None:
            make_executable(path)
        else:
            path.chmod(mode)


def install_language_pack_gems(ctx: BuildContext, gems: list[str]) -> None:
    """Unpack language-pack gems into the slug's gem directory.

    Args:
        ctx: Build context.
        gems: Archive names (e.g., 'bundler-1.1.rc').

    Raises:
        VendoringError: If an archive fails to extract.
    """
    vendor_dir = ctx.path(SLUG_VENDOR_BASE)
    vendor_dir.mkdir(parents=True, exist_ok=True)

    for gem in gems:
        result = ctx.fetch(gem, vendor_dir)
        if not result.success:
            raise VendoringError(f"Failed to install language pack gem {gem}")
        logger.info("Vendored %s", gem)

    _chmod_entries(vendor_dir / BIN_DIR, 0o755)


def install_binary(ctx: BuildContext, name: str) -> None:
    """Unpack a binary archive into the slug's bin/.

    Args:
        ctx: Build context.
        name: Archive name in the artifact store (e.g., 'node-0.4.7').

    Raises:
        VendoringError: If the archive fails to extract.
    """
    result = ctx.fetch(name, ctx.path(BIN_DIR))
    if not result.success:
        raise VendoringError(f"Failed to install binary {name}")
    logger.info("Installed binary %s", name)


def install_binaries(ctx: BuildContext, names: list[str]) -> None:
    """Install binaries and make everything under bin/ executable."""
    for name in names:
        install_binary(ctx, name)
    _chmod_entries(ctx.path(BIN_DIR))


def uninstall_binary(ctx: BuildContext, path: str) -> bool:
    """Remove a binary from the slug's bin/.

    Args:
        ctx: Build context.
        path: Path of the binary; only its basename is used.

    Returns:
        True if a file was removed.
    """
    target = ctx.path(BIN_DIR) / Path(path).name
    if not (target.exists() or target.is_symlink()):
        return False
    target.unlink()
    logger.info("Removed binary %s", target.name)
    return True


__all__ = [
    "BUNDLER_GEM_PATH",
    "BUNDLER_VERSION",
    "SLUG_VENDOR_BASE",
    "VendoringError",
    "install_binaries",
    "install_binary",
    "install_language_pack_gems",
    "uninstall_binary",
]
