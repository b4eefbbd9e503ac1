"""Tests for keeper path resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from session_keeper.paths import HOME_ENV_VAR, resolve_paths


def test_explicit_home(tmp_path: Path) -> None:
    paths = resolve_paths(tmp_path / "home")
    assert paths.keeper_home == (tmp_path / "home").resolve()
    assert paths.config_path == paths.keeper_home / "config" / "config.json"
    assert paths.store_dir == paths.keeper_home / "store"
    assert paths.master_key_path == paths.keeper_home / "keys" / "master.key"
    assert paths.logs_dir == paths.keeper_home / "logs"


def test_env_var_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path / "from-env"))
    assert resolve_paths().keeper_home == (tmp_path / "from-env").resolve()


def test_default_home_under_user_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(HOME_ENV_VAR, raising=False)
    assert resolve_paths().keeper_home == (Path.home() / ".session_keeper").resolve()
