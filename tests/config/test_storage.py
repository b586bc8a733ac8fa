from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from prospectminer.config import storage


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv(storage.DATA_DIR_ENV, str(custom))

    config = storage.get_storage_config()

    assert config.resolve_data_dir() == custom.resolve()


def test_default_data_dir_follows_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(storage.os, "name", "posix")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert storage.default_data_dir() == tmp_path / storage.APP_DIR_NAME


def test_database_config_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(storage.DATABASE_URI_ENV, "sqlite:///override.db")

    config = storage.get_database_config()

    assert config.uri == "sqlite:///override.db"
    assert not config.is_memory


def test_database_config_creates_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv(storage.DATABASE_URI_ENV, raising=False)
    monkeypatch.setenv(storage.DATA_DIR_ENV, str(tmp_path / "data-dir"))

    uri = storage.get_database_config().uri

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_http_cache_lives_next_to_database(tmp_path: Path) -> None:
    config = storage.StorageConfig(data_dir=tmp_path)

    assert config.http_cache_path(ensure=False) == tmp_path.resolve() / storage.HTTP_CACHE_FILENAME
    assert config.database_path(ensure=False).parent == config.http_cache_path(ensure=False).parent
