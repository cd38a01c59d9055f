"""ROM discovery and index generation.

This module handles:
- Discovering ROM files in the slug's local-content directory
- Deriving display names from ROM file names
- Rendering the emulator index page or a JSON ROM manifest

The generated file is a pure function of the directory listing; ROM contents
are never read.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from jinja2 import Environment, PackageLoader, select_autoescape

from slugpack import output
from slugpack.builds.overlay import LOCAL_CONTENT_DIR
from slugpack.types import ArtifactMode

logger = logging.getLogger(__name__)

ROM_EXTENSION = ".nes"

INDEX_TEMPLATE = "index.html"

# Output file name per mode
OUTPUT_FILES = {
    ArtifactMode.HTML: "index.html",
    ArtifactMode.JSON: "roms.json",
}

# Homebrew ROMs shipped with the emulator repository
HOMEBREW_ROMS = [
    ("Concentration Room", "roms/croom/croom.nes"),
    ("LJ65", "roms/lj65/lj65.nes"),
]

CONTROLS = [
    ("Left", "Left", "Num-4"),
    ("Right", "Right", "Num-6"),
    ("Up", "Up", "Num-8"),
    ("Down", "Down", "Num-2"),
    ("A", "X", "Num-7"),
    ("B", "Z", "Num-9"),
    ("Start", "Enter", "Num-1"),
    ("Select", "Ctrl", "Num-3"),
]

SCRIPTS = [
    "lib/jquery-1.4.2.min.js",
    "lib/dynamicaudio-min.js",
    "source/nes.js",
    "source/utils.js",
    "source/cpu.js",
    "source/keyboard.js",
    "source/mappers.js",
    "source/papu.js",
    "source/ppu.js",
    "source/rom.js",
    "source/ui.js",
]


@dataclass(frozen=True)
class RomEntry:
    """A ROM listed in the generated index.

    Attributes:
        name: Display name (file name without extension).
        path: Path relative to the build directory, posix style.
    """

    name: str
    path: str


def rom_display_name(path: Path, extension: str = ROM_EXTENSION) -> str:
    """Strip the directory prefix and the ROM extension from a path."""
    return path.name.removesuffix(extension)


def discover_roms(
    build_dir: Path,
    rom_dir: str = LOCAL_CONTENT_DIR,
    extension: str = ROM_EXTENSION,
) -> list[RomEntry]:
    """Discover ROMs under ``build_dir/rom_dir``.

    Args:
        build_dir: Build directory.
        rom_dir: Directory to scan, relative to the build directory.
        extension: ROM file extension.

    Returns:
        Sorted list of RomEntry.
    """
    root = build_dir / rom_dir
    if not root.is_dir():
        logger.warning("ROM directory does not exist: %s", root)
        return []

    roms: list[RomEntry] = []
    for path in sorted(root.rglob(f"*{extension}")):
        if not path.is_file():
            continue
        entry = RomEntry(
            name=rom_display_name(path, extension),
            path=path.relative_to(build_dir).as_posix(),
        )
        roms.append(entry)
        logger.debug("Discovered ROM: %s (%s)", entry.name, entry.path)

    logger.info("Discovered %d ROMs in %s", len(roms), root)
    return roms


def _template_env() -> Environment:
    return Environment(
        loader=PackageLoader("slugpack", "templates"),
        autoescape=select_autoescape(["html"]),
        keep_trailing_newline=True,
    )


def render_index_html(roms: list[RomEntry]) -> str:
    """Render the emulator page with ``roms`` in its Local list."""
    template = _template_env().get_template(INDEX_TEMPLATE)
    return template.render(
        roms=roms,
        homebrew=[RomEntry(name, path) for name, path in HOMEBREW_ROMS],
        controls=CONTROLS,
        scripts=SCRIPTS,
    )


def render_rom_manifest(roms: list[RomEntry]) -> str:
    """Render ``roms`` as a JSON document."""
    return json.dumps({"roms": [asdict(r) for r in roms]}, indent=2) + "\n"


def generate_rom_index(
    build_dir: Path,
    mode: ArtifactMode = ArtifactMode.HTML,
    rom_dir: str = LOCAL_CONTENT_DIR,
) -> Path:
    """Scan the ROM directory and write the index for ``mode``.

    Args:
        build_dir: Build directory; the output is written at its root.
        mode: Output format.
        rom_dir: Directory to scan, relative to the build directory.

    Returns:
        Path of the written file.
    """
    mode = ArtifactMode(mode)
    roms = discover_roms(build_dir, rom_dir)
    if mode is ArtifactMode.JSON:
        content = render_rom_manifest(roms)
    else:
        content = render_index_html(roms)

    output_path = build_dir / OUTPUT_FILES[mode]
    output.topic(f"Writing {output_path.name}")
    output_path.write_text(content, encoding="utf-8")
    logger.info("Wrote %s with %d ROMs", output_path, len(roms))
    return output_path


__all__ = [
    "OUTPUT_FILES",
    "ROM_EXTENSION",
    "RomEntry",
    "discover_roms",
    "generate_rom_index",
    "render_index_html",
    "render_rom_manifest",
    "rom_display_name",
]
