"""Tests for configuration management."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from liteshift.config import (
    LiteshiftConfig,
    get_config_path,
    get_liteshift_home,
    normalize_suffix,
)


class TestGetLiteshiftHome:
    """Tests for get_liteshift_home function."""

    def test_returns_default_when_env_unset(self) -> None:
        """Returns ~/.liteshift when LITESHIFT_HOME is not set."""
        with patch.dict(os.environ, {}, clear=True):
            home = get_liteshift_home()
            assert home == Path.home() / ".liteshift"

    def test_returns_env_var_when_set(self, tmp_path: Path) -> None:
        """Returns LITESHIFT_HOME value when set."""
        custom_home = tmp_path / "custom"
        with patch.dict(os.environ, {"LITESHIFT_HOME": str(custom_home)}):
            assert get_liteshift_home() == custom_home

    def test_config_path_in_home(self, tmp_path: Path) -> None:
        """Config path is config.toml in LITESHIFT_HOME."""
        with patch.dict(os.environ, {"LITESHIFT_HOME": str(tmp_path)}):
            assert get_config_path() == tmp_path / "config.toml"


class TestNormalizeSuffix:
    """Tests for normalize_suffix function."""

    @pytest.mark.parametrize(
        ("suffix", "expected"),
        [
            ("sqlite3", ".sqlite3"),
            (".sqlite3", ".sqlite3"),
            ("db", ".db"),
            ("", ""),
        ],
    )
    def test_normalize(self, suffix: str, expected: str) -> None:
        """Suffix gains a leading dot unless empty."""
        assert normalize_suffix(suffix) == expected


class TestLiteshiftConfig:
    """Tests for LiteshiftConfig defaults and validation."""

    def test_defaults(self) -> None:
        """Defaults are liteshift.sqlite3 on disk."""
        with patch.dict(os.environ, {}, clear=True):
            cfg = LiteshiftConfig()
            assert cfg.name == "liteshift"
            assert cfg.suffix == ".sqlite3"
            assert cfg.memory is False
            assert cfg.database_path == "liteshift.sqlite3"

    def test_suffix_normalized(self) -> None:
        """Suffix without a dot is prefixed with one."""
        cfg = LiteshiftConfig(suffix="db")
        assert cfg.suffix == ".db"

    def test_empty_suffix_kept(self) -> None:
        """An empty suffix means no extension."""
        cfg = LiteshiftConfig(name="data", suffix="")
        assert cfg.database_path == "data"

    def test_memory_path(self) -> None:
        """In-memory configuration reports :memory:."""
        cfg = LiteshiftConfig(memory=True)
        assert cfg.database_path == ":memory:"

    def test_empty_name_rejected(self) -> None:
        """Empty database name is rejected."""
        with pytest.raises(ValueError, match="cannot be empty"):
            LiteshiftConfig(name="")


class TestLiteshiftConfigLoad:
    """Tests for the precedence chain of LiteshiftConfig.load."""

    def test_load_without_file_uses_defaults(self, tmp_path: Path) -> None:
        """Missing config file falls back to defaults."""
        with patch.dict(os.environ, {"LITESHIFT_HOME": str(tmp_path)}, clear=True):
            cfg = LiteshiftConfig.load()
            assert cfg.name == "liteshift"

    def test_save_and_load_roundtrip(self, tmp_path: Path) -> None:
        """Saved config is read back by load."""
        with patch.dict(os.environ, {"LITESHIFT_HOME": str(tmp_path)}, clear=True):
            LiteshiftConfig(name="migrations", suffix="db").save()
            assert (tmp_path / "config.toml").exists()

            cfg = LiteshiftConfig.load()
            assert cfg.name == "migrations"
            assert cfg.suffix == ".db"

    def test_env_var_overrides_file(self, tmp_path: Path) -> None:
        """LITESHIFT_NAME wins over the config file."""
        (tmp_path / "config.toml").write_text('name = "from_file"\n')
        env = {"LITESHIFT_HOME": str(tmp_path), "LITESHIFT_NAME": "from_env"}
        with patch.dict(os.environ, env, clear=True):
            cfg = LiteshiftConfig.load()
            assert cfg.name == "from_env"

    def test_memory_from_env(self, tmp_path: Path) -> None:
        """LITESHIFT_MEMORY enables in-memory mode."""
        env = {"LITESHIFT_HOME": str(tmp_path), "LITESHIFT_MEMORY": "true"}
        with patch.dict(os.environ, env, clear=True):
            assert LiteshiftConfig.load().memory is True

    def test_empty_file_ignored(self, tmp_path: Path) -> None:
        """A blank config file is treated as absent."""
        (tmp_path / "config.toml").write_text("\n")
        with patch.dict(os.environ, {"LITESHIFT_HOME": str(tmp_path)}, clear=True):
            assert LiteshiftConfig.load().name == "liteshift"
