"""Shared type definitions for slugpack.

This module contains the enums and the base exception shared across
subpackages to avoid circular imports.
"""

from enum import Enum


class ArtifactMode(str, Enum):
    """Output format of the generated ROM listing."""

    HTML = "html"
    JSON = "json"


class BuildError(Exception):
    """Base class for errors that abort the build pipeline.

    Every fatal stage failure surfaces as a subclass of this error. The
    message is meant for humans; ``code`` is a short machine identifier.
    """

    def __init__(self, message: str, code: str = "build_error") -> None:
        super().__init__(message)
        self.code = code


__all__ = [
    "ArtifactMode",
    "BuildError",
]
