"""JSNES pack: serves the JSNES emulator with the pushed ROMs.

The pushed directory only needs ROM files. The emulator repository is
overlaid on top, the ROMs move under local-roms/, the emulator's JavaScript
is built with jake and an index listing the ROMs is generated.
"""

from __future__ import annotations

import logging
from pathlib import Path

from slugpack import output
from slugpack.builds.artifacts import generate_rom_index
from slugpack.builds.overlay import overlay_external_source
from slugpack.packs.ruby import RubyPack

logger = logging.getLogger(__name__)


class JsnesPack(RubyPack):
    """Pack building the JSNES emulator around the app's ROMs."""

    name = "JSNES"

    @classmethod
    def use(cls, build_dir: Path) -> bool:
        return True

    def default_config_vars(self) -> dict[str, str]:
        return {**super().default_config_vars(), "RACK_ENV": "production"}

    def default_process_types(self) -> dict[str, str]:
        return {"web": "bundle exec rackup config.ru -p $PORT"}

    def prepare_sources(self) -> None:
        overlay_external_source(self.ctx, self.ctx.settings.jsnes_git_url)

    def finalize(self) -> None:
        self.run_jake()
        generate_rom_index(self.ctx.build_dir, self.ctx.settings.artifact_mode)

    def run_jake(self) -> None:
        """Build the emulator's JavaScript."""
        output.topic("Running jake")
        self.run_task(["bundle", "exec", "jake"], code="jake_failed")


__all__ = ["JsnesPack"]
