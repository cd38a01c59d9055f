"""Language packs.

A pack decides whether it applies to a build directory and composes the build
stages into its ``compile`` pipeline. Detection tries the packs in order.
"""

from __future__ import annotations

from pathlib import Path

from slugpack.packs.jsnes import JsnesPack
from slugpack.packs.rack import RackPack
from slugpack.packs.ruby import RubyPack
from slugpack.types import BuildError

# Most specific first; JSNES accepts any directory
PACKS: list[type[RubyPack]] = [RackPack, RubyPack, JsnesPack]


class NoPackDetectedError(BuildError):
    """Raised when no pack applies to a build directory."""

    def __init__(self, message: str, code: str = "no_pack") -> None:
        super().__init__(message, code=code)


def detect(build_dir: Path) -> type[RubyPack] | None:
    """Return the first pack that applies to ``build_dir``."""
    for pack in PACKS:
        if pack.use(build_dir):
            return pack
    return None


__all__ = [
    "JsnesPack",
    "NoPackDetectedError",
    "PACKS",
    "RackPack",
    "RubyPack",
    "detect",
]
