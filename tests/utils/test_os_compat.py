"""Tests for host operating system helpers."""

from unittest.mock import patch

import pytest

from devkit.utils import os_compat

COMPOSER_VARS = ("COMPOSER_CACHE_DIR", "XDG_CACHE_HOME", "COMPOSER_HOME", "APPDATA")


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    """No composer variables, and a home directory with nothing in it."""
    for var in COMPOSER_VARS:
        monkeypatch.delenv(var, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


class TestPlatform:
    @pytest.mark.parametrize(
        "system,windows,macos,linux,unix",
        [
            ("Linux", False, False, True, True),
            ("Darwin", False, True, False, True),
            ("Windows", True, False, False, False),
        ],
    )
    def test_detection(self, system, windows, macos, linux, unix):
        with patch("devkit.utils.os_compat.platform.system", return_value=system):
            assert os_compat.get_os() == system
            assert os_compat.is_windows() is windows
            assert os_compat.is_macos() is macos
            assert os_compat.is_linux() is linux
            assert os_compat.is_unix() is unix

    def test_windows_uses_fallback_ids(self):
        with patch("devkit.utils.os_compat.platform.system", return_value="Windows"):
            assert os_compat.get_user_id() == os_compat.FALLBACK_ID
            assert os_compat.get_group_id() == os_compat.FALLBACK_ID

    def test_unix_uses_real_ids(self):
        with patch("devkit.utils.os_compat.platform.system", return_value="Linux"), patch(
            "devkit.utils.os_compat.os.getuid", return_value=501, create=True
        ), patch("devkit.utils.os_compat.os.getgid", return_value=20, create=True):
            assert os_compat.get_user_id() == 501
            assert os_compat.get_group_id() == 20


class TestComposerCacheDir:
    """Test finding the host composer cache."""

    def test_explicit_cache_dir(self, clean_env, tmp_path, monkeypatch):
        cache = tmp_path / "cache"
        cache.mkdir()
        monkeypatch.setenv("COMPOSER_CACHE_DIR", str(cache))

        assert os_compat.get_composer_cache_dir() == str(cache.resolve())

    def test_xdg_cache(self, clean_env, tmp_path, monkeypatch):
        (tmp_path / "xdg" / "composer").mkdir(parents=True)
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))

        with patch("devkit.utils.os_compat.platform.system", return_value="Linux"):
            assert os_compat.get_composer_cache_dir() == str((tmp_path / "xdg" / "composer").resolve())

    def test_home_cache(self, clean_env):
        (clean_env / ".cache" / "composer").mkdir(parents=True)

        with patch("devkit.utils.os_compat.platform.system", return_value="Linux"):
            assert os_compat.get_composer_cache_dir() == str((clean_env / ".cache" / "composer").resolve())

    def test_missing_explicit_dir_falls_through(self, clean_env, tmp_path, monkeypatch):
        monkeypatch.setenv("COMPOSER_CACHE_DIR", str(tmp_path / "missing"))
        (clean_env / ".composer" / "cache").mkdir(parents=True)

        with patch("devkit.utils.os_compat.platform.system", return_value="Linux"):
            assert os_compat.get_composer_cache_dir() == str((clean_env / ".composer" / "cache").resolve())

    def test_windows_app_data(self, clean_env, tmp_path, monkeypatch):
        (tmp_path / "AppData" / "Local" / "Composer").mkdir(parents=True)
        monkeypatch.setenv("APPDATA", str(tmp_path / "AppData"))

        with patch("devkit.utils.os_compat.platform.system", return_value="Windows"):
            assert os_compat.get_composer_cache_dir() == str((tmp_path / "AppData" / "Local" / "Composer").resolve())

    def test_nothing_found(self, clean_env):
        with patch("devkit.utils.os_compat.platform.system", return_value="Linux"):
            assert os_compat.get_composer_cache_dir() is None
