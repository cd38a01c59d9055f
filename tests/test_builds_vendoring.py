"""Tests for builds/vendoring.py module."""

import stat
from unittest.mock import patch

import pytest

from slugpack.builds.vendoring import (
    BUNDLER_GEM_PATH,
    SLUG_VENDOR_BASE,
    VendoringError,
    install_binaries,
    install_language_pack_gems,
    uninstall_binary,
)
from slugpack.vendor.fetch import FetchResult


def fake_fetch(files=(), exit_code=0):
    """Return a ctx.fetch stand-in that writes ``files`` into dest_dir."""

    def _fetch(name, dest_dir):
        dest_dir.mkdir(parents=True, exist_ok=True)
        for relative in files:
            path = dest_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(name)
            path.chmod(0o644)
        return FetchResult(url=name, dest_dir=dest_dir, exit_code=exit_code)

    return _fetch


def mode_of(path):
    return stat.S_IMODE(path.stat().st_mode)


class TestInstallLanguagePackGems:
    """Tests for install_language_pack_gems."""

    def test_unpacks_into_gem_dir(self, ctx):
        """Gems land in the slug gem directory with executable bin/."""
        with patch.object(ctx, "fetch", side_effect=fake_fetch(["bin/bundle", "gems/bundler/lib.rb"])) as fetch:
            install_language_pack_gems(ctx, [BUNDLER_GEM_PATH])

        vendor = ctx.build_dir / SLUG_VENDOR_BASE
        fetch.assert_called_once_with(BUNDLER_GEM_PATH, vendor)
        assert mode_of(vendor / "bin" / "bundle") == 0o755
        assert mode_of(vendor / "gems" / "bundler" / "lib.rb") == 0o644

    def test_failure(self, ctx):
        """A failed extraction is fatal."""
        with patch.object(ctx, "fetch", side_effect=fake_fetch(exit_code=2)):
            with pytest.raises(VendoringError) as exc_info:
                install_language_pack_gems(ctx, [BUNDLER_GEM_PATH])
        assert exc_info.value.code == "fetch_failed"


class TestBinaries:
    """Tests for install_binaries and uninstall_binary."""

    def test_install_makes_bin_executable(self, ctx):
        """Everything under bin/ should be executable afterwards."""
        existing = ctx.build_dir / "bin" / "rails"
        existing.parent.mkdir()
        existing.write_text("#!/bin/sh\n")
        existing.chmod(0o600)

        with patch.object(ctx, "fetch", side_effect=fake_fetch(["node"])) as fetch:
            install_binaries(ctx, ["node-0.4.7"])

        fetch.assert_called_once_with("node-0.4.7", ctx.build_dir / "bin")
        assert mode_of(ctx.build_dir / "bin" / "node") & 0o111 == 0o111
        assert mode_of(existing) & 0o111 == 0o111

    def test_install_none(self, ctx):
        """No binaries means no fetch."""
        with patch.object(ctx, "fetch") as fetch:
            install_binaries(ctx, [])
        fetch.assert_not_called()

    def test_install_failure(self, ctx):
        """A failed binary extraction is fatal."""
        with patch.object(ctx, "fetch", side_effect=fake_fetch(exit_code=1)):
            with pytest.raises(VendoringError):
                install_binaries(ctx, ["node-0.4.7"])

    def test_uninstall(self, ctx):
        """Only the basename of the given path is used."""
        binary = ctx.build_dir / "bin" / "node"
        binary.parent.mkdir()
        binary.write_text("")

        assert uninstall_binary(ctx, "vendor/node-0.4.7/node") is True
        assert not binary.exists()
        assert uninstall_binary(ctx, "node") is False
