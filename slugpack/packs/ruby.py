"""Ruby pack: the base pipeline for any Bundler-managed Ruby app."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from slugpack.builds.bundler import install_dependencies
from slugpack.builds.context import BuildContext
from slugpack.builds.runner import run_command
from slugpack.builds.runtime import build_runtime_dir, install_runtime, requested_version
from slugpack.builds.vendoring import (
    BUNDLER_GEM_PATH,
    SLUG_VENDOR_BASE,
    install_binaries,
    install_language_pack_gems,
)
from slugpack.environment import compose_environment
from slugpack.types import BuildError

logger = logging.getLogger(__name__)


class RubyPack:
    """Pack for a plain Ruby app with a Gemfile.

    Subclasses customize the defaults and hook into ``prepare_sources`` and
    ``finalize``; the stage order in ``compile`` is fixed.
    """

    name = "Ruby"

    def __init__(self, ctx: BuildContext) -> None:
        self.ctx = ctx

    @classmethod
    def use(cls, build_dir: Path) -> bool:
        return (build_dir / "Gemfile").exists()

    # Release metadata

    def default_addons(self) -> list[str]:
        return []

    def default_config_vars(self) -> dict[str, str]:
        return {
            "LANG": "en_US.UTF-8",
            "PATH": self.default_path(),
            "GEM_PATH": SLUG_VENDOR_BASE,
        }

    def default_process_types(self) -> dict[str, str]:
        return {
            "rake": "bundle exec rake",
            "console": "bundle exec irb",
        }

    def release(self) -> str:
        """Render release metadata as YAML."""
        data: dict[str, Any] = {
            "addons": self.default_addons(),
            "config_vars": self.default_config_vars(),
            "default_process_types": self.default_process_types(),
        }
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    # Paths

    def default_path(self) -> str:
        return f"bin:{SLUG_VENDOR_BASE}/bin:/usr/local/bin:/usr/bin:/bin"

    def gems(self) -> list[str]:
        return [BUNDLER_GEM_PATH]

    def binaries(self) -> list[str]:
        return []

    # Pipeline

    def setup_environment(self) -> None:
        version = requested_version(self.ctx.env)
        runtime_bin = None
        if version:
            scratch = self.ctx.settings.runtime_scratch_dir
            runtime_bin = str(build_runtime_dir(scratch, version) / "bin")
        compose_environment(
            self.ctx.env,
            self.default_config_vars(),
            gem_home=SLUG_VENDOR_BASE,
            default_path=self.default_path(),
            runtime_bin_dir=runtime_bin,
        )

    def prepare_sources(self) -> None:
        """Hook run first inside the git-isolated region."""

    def finalize(self) -> None:
        """Hook run last inside the git-isolated region."""

    def compile(self) -> None:
        """Run the full pipeline on the build directory.

        Raises:
            BuildError: On any fatal stage failure.
        """
        logger.info("Compiling %s app in %s", self.name, self.ctx.build_dir)
        self.setup_environment()
        install_runtime(self.ctx)
        with self.ctx.env.without("GIT_DIR"):
            self.prepare_sources()
            install_language_pack_gems(self.ctx, self.gems())
            install_dependencies(self.ctx)
            install_binaries(self.ctx, self.binaries())
            self.finalize()
        logger.info("Compiled %s app", self.name)

    def run_task(self, cmd: list[str], code: str) -> None:
        """Run a build task, echoing its output.

        Raises:
            BuildError: If the task exits nonzero.
        """
        result = run_command(cmd, cwd=self.ctx.build_dir, env=self.ctx.env, echo=True)
        if not result.success:
            raise BuildError(
                f"{result.command} failed with exit code {result.exit_code}",
                code=code,
            )


__all__ = ["RubyPack"]
