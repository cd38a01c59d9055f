"""Tests for builds/runtime.py module.

Archive fetches are mocked; the catalog is served with respx.
"""

import stat
from unittest.mock import patch

import httpx
import pytest
import respx

from slugpack.builds.runtime import (
    RuntimeInstallError,
    copy_executables,
    install_runtime,
    invalid_version_message,
    requested_version,
    toolchain_archive_name,
)
from slugpack.environment import Environment
from slugpack.vendor.catalog import CatalogError
from slugpack.vendor.fetch import FetchResult

VENDOR = "https://vendor.example.com"

CATALOG = "- ruby-1.9.3\n- ruby-1.9.2\n- ruby-1.8.7\n"


def fake_fetch(failing=()):
    """Return a ctx.fetch stand-in that unpacks a tiny runtime."""

    def _fetch(name, dest_dir):
        dest_dir.mkdir(parents=True, exist_ok=True)
        if name in failing:
            return FetchResult(url=name, dest_dir=dest_dir, exit_code=2)
        bin_dir = dest_dir / "bin"
        bin_dir.mkdir(exist_ok=True)
        for tool in ("ruby", "irb"):
            path = bin_dir / tool
            path.write_text(f"#!/bin/sh\n# {name} {tool}\n")
            path.chmod(0o644)
        return FetchResult(url=name, dest_dir=dest_dir, exit_code=0)

    return _fetch


@pytest.fixture
def catalog_route():
    with respx.mock:
        route = respx.get(f"{VENDOR}/ruby_versions.yml").mock(
            return_value=httpx.Response(200, text=CATALOG)
        )
        yield route


class TestHelpers:
    """Tests for naming helpers."""

    def test_requested_version(self):
        """Empty or missing RUBY_VERSION means no override."""
        assert requested_version(Environment({})) is None
        assert requested_version(Environment({"RUBY_VERSION": ""})) is None
        assert requested_version(Environment({"RUBY_VERSION": "ruby-1.9.3"})) == "ruby-1.9.3"

    def test_toolchain_archive_name(self):
        """The toolchain archive replaces the first 'ruby'."""
        assert toolchain_archive_name("ruby-1.9.3-p0") == "ruby-build-1.9.3-p0"

    def test_invalid_version_message(self):
        """Message should name the version and the alternatives."""
        message = invalid_version_message("ruby-9", "ruby-1.8.7, ruby-1.9.2")
        assert message == (
            "Invalid RUBY_VERSION specified: ruby-9\n"
            "Valid versions: ruby-1.8.7, ruby-1.9.2\n"
        )


class TestCopyExecutables:
    """Tests for copy_executables."""

    def test_sets_execute_bits(self, tmp_path):
        """Copied files should be executable by owner, group and other."""
        source = tmp_path / "src"
        source.mkdir()
        (source / "ruby").write_text("x")
        (source / "ruby").chmod(0o600)
        (source / "subdir").mkdir()

        copied = copy_executables(source, tmp_path / "bin")

        assert [p.name for p in copied] == ["ruby"]
        mode = stat.S_IMODE((tmp_path / "bin" / "ruby").stat().st_mode)
        assert mode & 0o111 == 0o111
        assert not (tmp_path / "bin" / "subdir").exists()

    def test_missing_source(self, tmp_path):
        """A runtime without bin/ copies nothing."""
        assert copy_executables(tmp_path / "missing", tmp_path / "bin") == []


class TestInstallRuntime:
    """Tests for install_runtime."""

    def test_no_version_is_noop(self, ctx):
        """Without RUBY_VERSION nothing is fetched."""
        with patch.object(ctx, "fetch") as fetch:
            assert install_runtime(ctx) is None
        fetch.assert_not_called()

    def test_unknown_version_lists_catalog(self, ctx, catalog_route):
        """Unknown versions fail with every catalog entry, installing nothing."""
        ctx.env["RUBY_VERSION"] = "ruby-9.9.9"

        with patch.object(ctx, "fetch") as fetch, pytest.raises(RuntimeInstallError) as exc_info:
            install_runtime(ctx)

        message = str(exc_info.value)
        assert "ruby-9.9.9" in message
        assert "ruby-1.8.7, ruby-1.9.2, ruby-1.9.3" in message
        assert exc_info.value.code == "invalid_version"
        fetch.assert_not_called()
        assert list(ctx.build_dir.iterdir()) == []

    def test_installs_runtime(self, ctx, catalog_route):
        """Should fetch toolchain and runtime, then expose executables."""
        ctx.env["RUBY_VERSION"] = "ruby-1.9.3"

        with patch.object(ctx, "fetch", side_effect=fake_fetch()) as fetch:
            assert install_runtime(ctx) == "ruby-1.9.3"

        names = [c.args[0] for c in fetch.call_args_list]
        dests = [c.args[1] for c in fetch.call_args_list]
        assert names == ["ruby-build-1.9.3", "ruby-1.9.3"]
        assert dests[0] == ctx.settings.runtime_scratch_dir / "ruby-1.9.3"
        assert dests[1] == ctx.build_dir / "vendor" / "ruby-1.9.3"

        ruby = ctx.build_dir / "bin" / "ruby"
        assert "ruby-1.9.3 ruby" in ruby.read_text()
        assert stat.S_IMODE(ruby.stat().st_mode) & 0o111 == 0o111

    @pytest.mark.parametrize("failing", ["ruby-build-1.9.2", "ruby-1.9.2"])
    def test_extraction_failure(self, ctx, catalog_route, failing):
        """A failed extraction of either archive is fatal and lists versions."""
        ctx.env["RUBY_VERSION"] = "ruby-1.9.2"

        with patch.object(ctx, "fetch", side_effect=fake_fetch(failing={failing})):
            with pytest.raises(RuntimeInstallError) as exc_info:
                install_runtime(ctx)

        assert "Valid versions: ruby-1.8.7, ruby-1.9.2, ruby-1.9.3" in str(exc_info.value)
        assert not (ctx.build_dir / "bin").exists()

    def test_catalog_fetched_once(self, ctx, catalog_route):
        """The catalog should be memoized on the context."""
        ctx.env["RUBY_VERSION"] = "ruby-1.9.3"
        with patch.object(ctx, "fetch", side_effect=fake_fetch()):
            install_runtime(ctx)
            install_runtime(ctx)
        assert catalog_route.call_count == 1

    def test_catalog_unavailable(self, ctx):
        """A missing catalog is a distinct fatal error."""
        ctx.env["RUBY_VERSION"] = "ruby-1.9.3"
        with respx.mock:
            respx.get(f"{VENDOR}/ruby_versions.yml").mock(return_value=httpx.Response(404))
            with pytest.raises(CatalogError) as exc_info:
                install_runtime(ctx)
        assert exc_info.value.code == "catalog_unavailable"
