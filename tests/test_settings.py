"""Tests covering settings resolution and path helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from nodectl.adapters.fs.path_provider import PathProvider
from nodectl.config import const
from nodectl.services.settings import Settings


def test_settings_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("NODECTL_BASE_DIR", str(tmp_path / "nc"))
    monkeypatch.setenv("NODECTL_PORT", "5999")
    monkeypatch.setenv("NODECTL_TOKEN", "abc")
    s = Settings.from_sources(env_file=None)
    assert s.base_dir == (tmp_path / "nc").resolve()
    assert s.port == 5999
    assert s.token == "abc"
    assert s.factory == const.DEFAULT_FACTORY
    assert s.url == f"http://{const.DEFAULT_HOST}:5999"


def test_settings_from_env_file(tmp_path, monkeypatch):
    monkeypatch.delenv("NODECTL_PROFILE", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text('# comment\nNODECTL_PROFILE="ci"\nNODECTL_LOG_LEVEL=DEBUG\n', encoding="utf-8")
    s = Settings.from_sources(env_file=str(env_file))
    assert s.profile == "ci"
    assert s.log_level == "DEBUG"


def test_settings_bad_port(monkeypatch):
    monkeypatch.setenv("NODECTL_PORT", "http")
    with pytest.raises(ValueError):
        Settings.from_sources(env_file=None)


def test_with_overrides_ignores_none_and_unknown(tmp_path):
    s = Settings(base_dir=tmp_path)
    s2 = s.with_overrides(port=None, profile="x", bogus=1, base_dir=str(tmp_path / "b"))
    assert s2.port == s.port
    assert s2.profile == "x"
    assert s2.base_dir == (tmp_path / "b").resolve()


def test_path_provider_tree(tmp_path):
    provider = PathProvider(Settings(base_dir=tmp_path / "nodectl-test"))
    provider.ensure_tree()
    assert provider.logs_dir() == (tmp_path / "nodectl-test" / "logs").resolve()
    assert provider.tmp_dir().is_dir()
    assert Path(provider.base_dir()).is_dir()


def test_non_default_profile_gets_own_tree(tmp_path):
    provider = PathProvider(Settings(base_dir=tmp_path, profile="ci"))
    assert provider.base_dir() == (tmp_path / "profiles" / "ci").resolve()
    assert provider.logs_dir() == (tmp_path / "profiles" / "ci" / "logs").resolve()
    assert PathProvider(Settings(base_dir=tmp_path)).base_dir() == tmp_path.resolve()


def test_context_uses_profile_tree(ctx, tmp_path):
    # автофикстура поднимает контекст с profile="test"
    assert ctx.paths.base_dir() == (tmp_path / "base" / "profiles" / "test").resolve()
    assert (ctx.paths.logs_dir() / "nodectl.log").exists()
