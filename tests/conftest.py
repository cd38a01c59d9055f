"""Shared fixtures for slugpack tests."""

import io
import tarfile
from collections.abc import Iterator
from pathlib import Path

import pytest

from slugpack.builds.context import BuildContext
from slugpack.config import Settings
from slugpack.environment import Environment

VENDOR = "https://vendor.example.com"


def build_tgz(files: dict[str, bytes], modes: dict[str, int] | None = None) -> bytes:
    """Build a gzip-compressed tar archive in memory."""
    modes = modes or {}
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = modes.get(name, 0o644)
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


@pytest.fixture
def make_tgz():
    """Factory for in-memory .tgz archives."""
    return build_tgz


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """Empty application directory."""
    path = tmp_path / "build"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at test locations."""
    return Settings(
        vendor_url=VENDOR,
        jsnes_git_url="https://git.example.com/jsnes.git",
        cache_dir=tmp_path / "cache",
        runtime_scratch_dir=tmp_path / "scratch",
    )


@pytest.fixture
def env() -> Environment:
    """Minimal build environment."""
    return Environment({"PATH": "/usr/bin:/bin", "HOME": "/home/app"})


@pytest.fixture
def ctx(build_dir: Path, settings: Settings, env: Environment) -> Iterator[BuildContext]:
    """Build context over the test build directory."""
    with BuildContext.create(build_dir, settings=settings, env=env) as context:
        yield context
