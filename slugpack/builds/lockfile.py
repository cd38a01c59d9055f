"""Minimal Gemfile.lock reader.

Only the fields the pipeline consumes are parsed:
- the PLATFORMS section (two-space indented platform identifiers)
- spec names in the GEM, GIT and PATH sections (four-space indented
  ``name (version)`` lines)

Everything else in the lock file is ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

LOCKFILE_NAME = "Gemfile.lock"

# OS part of a platform that marks a lock file generated on Windows
INCOMPATIBLE_OS_PATTERN = re.compile(r"mingw|mswin")

SPEC_SECTIONS = frozenset({"GEM", "GIT", "PATH"})

_SPEC_LINE = re.compile(r"^    (?! )(?P<name>[^\s(]+)(?: \((?P<version>[^)]*)\))?\s*$")
_PLATFORM_LINE = re.compile(r"^  (?! )(?P<platform>\S+)\s*$")


@dataclass(frozen=True)
class LockFileDescriptor:
    """Platforms and dependency names declared by a lock file."""

    platforms: tuple[str, ...] = ()
    specs: tuple[str, ...] = ()

    def has_spec(self, name: str) -> bool:
        return name in self.specs

    def incompatible_platforms(self) -> list[str]:
        """Return declared platforms whose OS cannot be built here."""
        return [p for p in self.platforms if is_incompatible_platform(p)]


def platform_os(platform: str) -> str | None:
    """Extract the OS part of a platform identifier.

    ``x86-mingw32`` -> ``mingw32``, ``x86-mswin32-60`` -> ``mswin32``,
    ``java`` -> ``java``. The generic ``ruby`` platform has no OS.
    """
    if platform == "ruby":
        return None
    parts = platform.split("-")
    if len(parts) == 1:
        return parts[0]
    return parts[1]


def is_incompatible_platform(platform: str) -> bool:
    os_name = platform_os(platform)
    return bool(os_name and INCOMPATIBLE_OS_PATTERN.search(os_name))


def parse_lockfile(content: str) -> LockFileDescriptor:
    """Parse lock-file content into a LockFileDescriptor.

    Args:
        content: Text of a Gemfile.lock.

    Returns:
        Descriptor with platforms and unique spec names in file order.
    """
    platforms: list[str] = []
    specs: list[str] = []
    section: str | None = None

    for line in content.splitlines():
        if not line.strip():
            continue

        if not line.startswith(" "):
            section = line.strip()
            continue

        if section == "PLATFORMS":
            match = _PLATFORM_LINE.match(line)
            if match and match["platform"] not in platforms:
                platforms.append(match["platform"])
        elif section in SPEC_SECTIONS:
            match = _SPEC_LINE.match(line)
            if match and match["name"] not in specs:
                specs.append(match["name"])

    return LockFileDescriptor(platforms=tuple(platforms), specs=tuple(specs))


__all__ = [
    "INCOMPATIBLE_OS_PATTERN",
    "LOCKFILE_NAME",
    "LockFileDescriptor",
    "is_incompatible_platform",
    "parse_lockfile",
    "platform_os",
]
