"""Dependency install through Bundler.

This module handles:
- Gating the install on a committed Gemfile.lock
- Falling back to a plain install for lock files generated on Windows
- Restoring and storing the Bundler config and gem caches
- Running ``bundle install`` with a per-invocation compile environment

Bundler is driven as an external program; success is its exit status.
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from slugpack import output
from slugpack.builds.context import BuildContext
from slugpack.builds.lockfile import LOCKFILE_NAME
from slugpack.builds.runner import CommandResult, run_command
from slugpack.types import BuildError

logger = logging.getLogger(__name__)

# Auxiliary library needed to compile psych
LIBYAML_VERSION = "0.1.4"
LIBYAML_PATH = f"libyaml-{LIBYAML_VERSION}"

WITHOUT_VAR = "BUNDLE_WITHOUT"
DEFAULT_BUNDLE_WITHOUT = "development:test"

# Cached paths, relative to the build directory
BUNDLE_CONFIG_DIR = ".bundle"
BUNDLE_VENDOR_DIR = "vendor/bundle"

DEPLOYMENT_FLAG = "--deployment"

LOCKFILE_REQUIRED_MESSAGE = (
    'Gemfile.lock is required. Please run "bundle install" locally\n'
    "and commit your Gemfile.lock."
)
BUNDLE_FAILED_MESSAGE = "Failed to install gems via Bundler."
SQLITE3_NOTE = """

Detected sqlite3 gem which is not supported on Heroku.
http://devcenter.heroku.com/articles/how-do-i-use-sqlite3-for-development
"""

# Dependencies that cannot work in a slug, with the note explaining why
UNSUPPORTED_GEMS = {"sqlite3": SQLITE3_NOTE}


class DependencyInstallError(BuildError):
    """Raised when dependencies cannot be installed."""

    def __init__(self, message: str, code: str = "bundle_failed") -> None:
        super().__init__(message, code=code)


def compose_bundle_command(without: str, deployment: bool) -> list[str]:
    """Compose the ``bundle install`` command.

    Args:
        without: Colon-separated groups to skip.
        deployment: Whether to install in deployment mode.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = ["bundle", "install", "--without", without, "--path", BUNDLE_VENDOR_DIR]
    if deployment:
        cmd.append(DEPLOYMENT_FLAG)
    return cmd


def compose_install_env(
    ctx: BuildContext,
    libyaml_dir: Path,
) -> dict[str, str]:
    """Environment overrides for a single ``bundle install``.

    Points Bundler at the build's Gemfile and config, and puts libyaml on the
    compiler search paths.
    """
    include_dir = str((libyaml_dir / "include").resolve())
    lib_dir = str((libyaml_dir / "lib").resolve())
    return {
        "BUNDLE_GEMFILE": str(ctx.path("Gemfile")),
        "BUNDLE_CONFIG": str(ctx.path(f"{BUNDLE_CONFIG_DIR}/config")),
        "CPATH": ctx.env.prepend_path("CPATH", include_dir),
        "CPPATH": ctx.env.prepend_path("CPPATH", include_dir),
        "LIBRARY_PATH": ctx.env.prepend_path("LIBRARY_PATH", lib_dir),
    }


def has_incompatible_lockfile(ctx: BuildContext) -> bool:
    """Whether the lock file declares a platform that cannot build here."""
    incompatible = ctx.lockfile.incompatible_platforms()
    if incompatible:
        logger.info("Lock file declares incompatible platforms: %s", incompatible)
    return bool(incompatible)


def failure_message(ctx: BuildContext) -> str:
    """Build the fatal message for a failed install."""
    message = BUNDLE_FAILED_MESSAGE
    for gem, note in UNSUPPORTED_GEMS.items():
        if ctx.lockfile.has_spec(gem):
            message += note
    return message


def _bundle_version(ctx: BuildContext) -> str:
    result = run_command(["bundle", "version"], cwd=ctx.build_dir, env=ctx.env)
    return result.output.strip()


def _run_install(ctx: BuildContext, cmd: list[str]) -> CommandResult:
    with tempfile.TemporaryDirectory(prefix="libyaml-") as tmpdir:
        libyaml_dir = Path(tmpdir) / LIBYAML_PATH
        result = ctx.fetch(LIBYAML_PATH, libyaml_dir)
        if not result.success:
            logger.warning("Could not fetch %s; psych may fail to compile", LIBYAML_PATH)

        install_env = ctx.env.overlay(compose_install_env(ctx, libyaml_dir))
        output.echo(f"Running: {' '.join(cmd)}")
        return run_command(
            [*cmd, "--no-clean"],
            cwd=ctx.build_dir,
            env=install_env,
            echo=True,
        )


def install_dependencies(ctx: BuildContext) -> CommandResult:
    """Install the application's gems with Bundler.

    Args:
        ctx: Build context.

    Returns:
        CommandResult of the successful ``bundle install``.

    Raises:
        DependencyInstallError: If the lock file is missing or the install
            fails.
    """
    without = ctx.env.get(WITHOUT_VAR) or DEFAULT_BUNDLE_WITHOUT

    if not ctx.lockfile_path.is_file():
        logger.error("%s not found in %s", LOCKFILE_NAME, ctx.build_dir)
        raise DependencyInstallError(LOCKFILE_REQUIRED_MESSAGE, code="lockfile_missing")

    if has_incompatible_lockfile(ctx):
        logger.info("Removing %s generated on an incompatible platform", LOCKFILE_NAME)
        ctx.lockfile_path.unlink()
        deployment = False
    else:
        deployment = True
        ctx.cache.load(BUNDLE_CONFIG_DIR)

    ctx.cache.load(BUNDLE_VENDOR_DIR)

    cmd = compose_bundle_command(without, deployment)

    output.topic(f"Installing dependencies using {_bundle_version(ctx)}")
    result = _run_install(ctx, cmd)

    if not result.success:
        logger.error("bundle install failed with exit code %d", result.exit_code)
        raise DependencyInstallError(failure_message(ctx), code="bundle_failed")

    logger.info("bundle install succeeded")
    output.echo("Cleaning up the bundler cache.")
    run_command(["bundle", "clean"], cwd=ctx.build_dir, env=ctx.env, echo=True)
    ctx.cache.store(BUNDLE_CONFIG_DIR)
    ctx.cache.store(BUNDLE_VENDOR_DIR)
    return result


__all__ = [
    "BUNDLE_CONFIG_DIR",
    "BUNDLE_VENDOR_DIR",
    "DEFAULT_BUNDLE_WITHOUT",
    "DEPLOYMENT_FLAG",
    "DependencyInstallError",
    "LIBYAML_PATH",
    "compose_bundle_command",
    "compose_install_env",
    "failure_message",
    "has_incompatible_lockfile",
    "install_dependencies",
]
