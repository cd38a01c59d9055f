"""Tests for the pipeline entry point."""

from unittest.mock import patch

import httpx
import pytest

from slugpack.packs import JsnesPack, NoPackDetectedError, RackPack
from slugpack.pipeline import run, select_pack


class TestSelectPack:
    """Tests for select_pack."""

    def test_selects_rack(self, build_dir):
        """Rack apps are detected before plain Ruby apps."""
        (build_dir / "Gemfile").write_text("")
        (build_dir / "config.ru").write_text("")
        assert select_pack(build_dir) is RackPack

    def test_no_pack(self, build_dir):
        """With no applicable pack, detection fails."""
        with patch("slugpack.pipeline.detect", return_value=None):
            with pytest.raises(NoPackDetectedError) as exc_info:
                select_pack(build_dir)
        assert exc_info.value.code == "no_pack"


class TestRun:
    """Tests for run."""

    def test_missing_build_dir(self, tmp_path, settings):
        """A missing build directory fails before detection."""
        with pytest.raises(NoPackDetectedError) as exc_info:
            run(tmp_path / "missing", settings=settings)
        assert exc_info.value.code == "no_build_dir"

    def test_compiles_detected_pack(self, build_dir, settings, env, tmp_path):
        """run compiles the detected pack with the given cache and env."""
        (build_dir / "Tetris.nes").write_bytes(b"NES")

        with patch.object(JsnesPack, "compile", autospec=True) as compile_:
            pack = run(build_dir, cache_dir=tmp_path / "other-cache", settings=settings, env=env)

        assert isinstance(pack, JsnesPack)
        compile_.assert_called_once_with(pack)
        assert pack.ctx.env is env
        assert pack.ctx.build_dir == build_dir.resolve()
        assert pack.ctx.cache.cache_dir == (tmp_path / "other-cache").resolve()

    def test_caller_client_stays_open(self, build_dir, settings, env):
        """A client passed in is not closed by the build."""
        (build_dir / "Gemfile").write_text("")
        client = httpx.Client()

        with patch("slugpack.packs.ruby.RubyPack.compile"):
            run(build_dir, settings=settings, env=env, client=client)

        assert not client.is_closed
        client.close()

    def test_failure_propagates(self, build_dir, settings, env):
        """Stage failures reach the caller."""
        (build_dir / "Gemfile").write_text("")
        with patch("slugpack.packs.ruby.install_runtime", side_effect=NoPackDetectedError("x")):
            with pytest.raises(NoPackDetectedError):
                run(build_dir, settings=settings, env=env)
