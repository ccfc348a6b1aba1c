# tests/unit/install/test_resetter.py - v2
"""Tests for install/resetter.py - clean-slate reset."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from ngupgrade.core.errors import ResetError, ResetKind
from ngupgrade.install.resetter import CleanSlateResetter


def _resetter(tmp_path: Path, runner) -> CleanSlateResetter:
    return CleanSlateResetter(
        tmp_path / "node_modules", tmp_path / "package-lock.json", runner, "npm"
    )


class TestReset:
    @pytest.mark.asyncio
    async def test_removes_install_dir_and_lockfile(self, tmp_path: Path, fake_runner):
        (tmp_path / "node_modules" / "@angular" / "core").mkdir(parents=True)
        (tmp_path / "node_modules" / "@angular" / "core" / "index.js").write_text("x")
        (tmp_path / "package-lock.json").write_text("{}")

        result = await _resetter(tmp_path, fake_runner).reset()

        assert not (tmp_path / "node_modules").exists()
        assert not (tmp_path / "package-lock.json").exists()
        assert len(result.removed) == 2
        assert result.cache_cleared

    @pytest.mark.asyncio
    async def test_clears_cache(self, tmp_path: Path, fake_runner):
        await _resetter(tmp_path, fake_runner).reset()
        assert fake_runner.calls == [("npm", "cache", "clean", "--force")]

    @pytest.mark.asyncio
    async def test_idempotent_on_clean_project(self, tmp_path: Path, fake_runner):
        resetter = _resetter(tmp_path, fake_runner)
        first = await resetter.reset()
        second = await resetter.reset()
        assert first.removed == [] and second.removed == []

    @pytest.mark.asyncio
    async def test_leaves_manifest_alone(self, tmp_path: Path, fake_runner, manifest_file):
        original = manifest_file.read_bytes()
        await _resetter(tmp_path, fake_runner).reset()
        assert manifest_file.read_bytes() == original

    @pytest.mark.asyncio
    async def test_cache_clean_failure_not_fatal(self, tmp_path: Path, fake_runner):
        fake_runner.on("npm", "cache", exit_code=1)
        (tmp_path / "package-lock.json").write_text("{}")
        result = await _resetter(tmp_path, fake_runner).reset()
        assert not result.cache_cleared
        assert not (tmp_path / "package-lock.json").exists()

    @pytest.mark.asyncio
    async def test_symlinked_install_dir(self, tmp_path: Path, fake_runner):
        real = tmp_path / "shared_modules"
        real.mkdir()
        (real / "keep.txt").write_text("x")
        (tmp_path / "node_modules").symlink_to(real, target_is_directory=True)

        await _resetter(tmp_path, fake_runner).reset()

        assert not (tmp_path / "node_modules").exists()
        assert (real / "keep.txt").exists()

    @pytest.mark.asyncio
    async def test_remove_failure_is_reset_error(self, tmp_path: Path, fake_runner):
        (tmp_path / "node_modules" / ".bin").mkdir(parents=True)
        with patch(
            "ngupgrade.install.resetter.shutil.rmtree",
            side_effect=PermissionError("EACCES node_modules/.bin"),
        ):
            with pytest.raises(ResetError) as exc_info:
                await _resetter(tmp_path, fake_runner).reset()
        assert exc_info.value.kind is ResetKind.REMOVE_FAILED
        assert "EACCES" in exc_info.value.message
        assert ("npm", "cache", "clean", "--force") not in fake_runner.calls

    @pytest.mark.asyncio
    async def test_lockfile_remove_failure(self, tmp_path: Path, fake_runner):
        (tmp_path / "package-lock.json").write_text("{}")
        with patch.object(Path, "unlink", side_effect=PermissionError("EPERM")):
            with pytest.raises(ResetError):
                await _resetter(tmp_path, fake_runner).reset()
