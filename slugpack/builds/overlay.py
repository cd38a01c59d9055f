"""External source overlay for builds.

This module handles:
- Cloning an external git repository into a scratch directory
- Moving the application's own files under a local-content directory
- Moving the merged tree back into the build directory

After the overlay the build directory holds the external repository with the
original application nested under ``local-roms/``. Hidden entries are never
moved, which keeps the clone's ``.git`` out of the build and leaves cached
hidden directories like ``.bundle`` in place.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from slugpack import output
from slugpack.builds.context import BuildContext
from slugpack.builds.runner import run_command
from slugpack.types import BuildError

logger = logging.getLogger(__name__)

# Where the application's original files end up
LOCAL_CONTENT_DIR = "local-roms"


class OverlayError(BuildError):
    """Raised when the external source overlay fails."""

    def __init__(self, message: str, code: str = "overlay_error") -> None:
        super().__init__(message, code=code)


def visible_entries(directory: Path) -> list[Path]:
    """List the non-hidden top-level entries of a directory, sorted."""
    return sorted(p for p in directory.iterdir() if not p.name.startswith("."))


def _validate_path_within_base(path: Path, base: Path) -> None:
    """Refuse to move anything that resolves outside ``base``.

    Raises:
        OverlayError: If ``path`` escapes ``base``.
    """
    try:
        path.resolve().relative_to(base.resolve())
    except ValueError:
        raise OverlayError(
            f"Path traversal detected: {path} resolves outside {base}",
            code="path_traversal",
        ) from None


def move_entries(source_dir: Path, dest_dir: Path) -> list[Path]:
    """Move every non-hidden entry of ``source_dir`` into ``dest_dir``.

    Args:
        source_dir: Directory to empty.
        dest_dir: Directory receiving the entries; created if absent.

    Returns:
        The new paths of the moved entries.

    Raises:
        OverlayError: If an entry already exists at the destination.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    moved: list[Path] = []

    for entry in visible_entries(source_dir):
        if entry.resolve() == dest_dir.resolve():
            continue
        target = dest_dir / entry.name
        if target.exists() or target.is_symlink():
            raise OverlayError(
                f"Refusing to overwrite {target} while moving {entry}",
                code="entry_conflict",
            )
        shutil.move(str(entry), str(target))
        moved.append(target)

    logger.debug("Moved %d entries from %s to %s", len(moved), source_dir, dest_dir)
    return moved


def clone_repository(ctx: BuildContext, git_url: str, dest_dir: Path) -> None:
    """Clone ``git_url`` into ``dest_dir``.

    Raises:
        OverlayError: If git exits nonzero.
    """
    result = run_command(
        ["git", "clone", git_url, "."],
        cwd=dest_dir,
        env=ctx.env,
    )
    if not result.success:
        logger.error("git clone of %s failed:\n%s", git_url, result.output)
        raise OverlayError(
            f"Failed to clone {git_url} (exit code {result.exit_code})",
            code="clone_failed",
        )


def overlay_external_source(
    ctx: BuildContext,
    git_url: str,
    local_dir: str = LOCAL_CONTENT_DIR,
) -> Path:
    """Merge an external repository into the build directory.

    Should run with GIT_DIR cleared, since an inherited GIT_DIR would point
    git at the wrong repository.

    Args:
        ctx: Build context.
        git_url: Repository to overlay.
        local_dir: Name of the directory receiving the original files.

    Returns:
        Path of the local-content directory inside the build.

    Raises:
        OverlayError: If cloning or moving fails.
    """
    output.topic(f"Fetching {git_url}")

    with tempfile.TemporaryDirectory(prefix="jsnes-") as tmpdir:
        scratch = Path(tmpdir)
        clone_repository(ctx, git_url, scratch)

        local_path = scratch / local_dir
        _validate_path_within_base(local_path, scratch)
        local_path.mkdir(parents=True, exist_ok=True)

        move_entries(ctx.build_dir, local_path)
        move_entries(scratch, ctx.build_dir)

    logger.info("Overlaid %s onto %s", git_url, ctx.build_dir)
    return ctx.path(local_dir)


__all__ = [
    "LOCAL_CONTENT_DIR",
    "OverlayError",
    "clone_repository",
    "move_entries",
    "overlay_external_source",
    "visible_entries",
]
