"""Rack pack for non-Rails Rack apps such as Sinatra."""

from __future__ import annotations

from pathlib import Path

from slugpack.packs.ruby import RubyPack


class RackPack(RubyPack):
    """Pack for a Rack app: a Ruby app with a config.ru."""

    name = "Ruby/Rack"

    @classmethod
    def use(cls, build_dir: Path) -> bool:
        return super().use(build_dir) and (build_dir / "config.ru").exists()

    def default_config_vars(self) -> dict[str, str]:
        return {**super().default_config_vars(), "RACK_ENV": "production"}

    def default_process_types(self) -> dict[str, str]:
        return {
            **super().default_process_types(),
            "web": "bundle exec rackup config.ru -p $PORT",
        }


__all__ = ["RackPack"]
