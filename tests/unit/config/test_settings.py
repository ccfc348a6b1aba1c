# tests/unit/config/test_settings.py - v3
"""Tests for config/settings.py - typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest

from ngupgrade.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_layout(self):
        s = Settings(_env_file=None)
        assert s.manifest_name == "package.json"
        assert s.install_dir_name == "node_modules"
        assert s.lockfile_name == "package-lock.json"

    def test_default_toolchain(self):
        s = Settings(_env_file=None)
        assert s.runtime_executable == "node"
        assert s.package_manager_executable == "npm"
        assert s.command_timeout_s == 900.0

    def test_default_no_retry(self):
        s = Settings(_env_file=None)
        assert s.install_max_retries == 0

    def test_default_backup_enabled(self):
        s = Settings(_env_file=None)
        assert s.skip_backup is False

    def test_paths_follow_project_dir(self, tmp_path: Path):
        s = Settings(_env_file=None, project_dir=tmp_path)
        assert s.manifest_path == tmp_path / "package.json"
        assert s.install_dir == tmp_path / "node_modules"
        assert s.lockfile_path == tmp_path / "package-lock.json"


class TestSettingsValidation:
    def test_zero_timeout(self):
        with pytest.raises(ConfigurationError, match="COMMAND_TIMEOUT_S"):
            Settings(_env_file=None, command_timeout_s=0)

    def test_timeout_disabled(self):
        s = Settings(_env_file=None, command_timeout_s=None)
        assert s.command_timeout_s is None

    def test_negative_retries(self):
        with pytest.raises(ValueError, match="install_max_retries"):
            Settings(_env_file=None, install_max_retries=-1)

    def test_empty_executable(self):
        with pytest.raises(ConfigurationError, match="PACKAGE_MANAGER_EXECUTABLE"):
            Settings(_env_file=None, package_manager_executable="  ")

    def test_bad_rotation(self):
        with pytest.raises(ConfigurationError, match="LOG_ROTATION"):
            Settings(_env_file=None, log_rotation="lots")

    def test_multiple_errors_joined(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(_env_file=None, command_timeout_s=-1, manifest_name="")
        assert "COMMAND_TIMEOUT_S" in str(exc_info.value)
        assert "MANIFEST_NAME" in str(exc_info.value)


class TestEnvironment:
    def test_prefixed_env_var(self, monkeypatch):
        monkeypatch.setenv("NGUPGRADE_INSTALL_MAX_RETRIES", "3")
        assert Settings(_env_file=None).install_max_retries == 3

    def test_unprefixed_env_var_ignored(self, monkeypatch):
        monkeypatch.setenv("INSTALL_MAX_RETRIES", "3")
        assert Settings(_env_file=None).install_max_retries == 0


class TestLoadSettings:
    def test_overrides(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        s = load_settings(skip_backup=True, install_max_retries=2)
        assert s.skip_backup is True
        assert s.install_max_retries == 2

    def test_none_overrides_ignored(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("NGUPGRADE_COMMAND_TIMEOUT_S", "60")
        s = load_settings(command_timeout_s=None, project_dir=None)
        assert s.command_timeout_s == 60
        assert s.project_dir == Path(".")

    def test_invalid_raises(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(ConfigurationError):
            load_settings(command_timeout_s=-5)

    def test_env_file_in_project_dir(self, tmp_path: Path, monkeypatch):
        cwd = tmp_path / "elsewhere"
        project = tmp_path / "app"
        cwd.mkdir()
        project.mkdir()
        (cwd / ".env").write_text("NGUPGRADE_INSTALL_MAX_RETRIES=1\n", encoding="utf-8")
        (project / ".env").write_text(
            "NGUPGRADE_INSTALL_MAX_RETRIES=3\nNGUPGRADE_LOG_LEVEL=DEBUG\n",
            encoding="utf-8",
        )
        monkeypatch.chdir(cwd)
        monkeypatch.delenv("NGUPGRADE_INSTALL_MAX_RETRIES", raising=False)
        monkeypatch.delenv("NGUPGRADE_LOG_LEVEL", raising=False)
        s = load_settings(project_dir=project)
        assert s.install_max_retries == 3
        assert s.log_level == "DEBUG"

    def test_env_file_in_cwd_without_project_dir(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("NGUPGRADE_INSTALL_MAX_RETRIES", raising=False)
        (tmp_path / ".env").write_text("NGUPGRADE_INSTALL_MAX_RETRIES=2\n", encoding="utf-8")
        assert load_settings().install_max_retries == 2
