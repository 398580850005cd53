# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskbell.config import config_from_dict, load_config


def test_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TASKBELL_APP_ROOT", str(tmp_path))
    cfg = config_from_dict({})
    assert cfg.port == 8000
    assert cfg.token == ""
    assert cfg.log_level == "INFO"
    assert cfg.reminders_enabled is True
    assert cfg.reminder_check_interval_seconds == 10
    assert cfg.reminder_window_seconds == 60
    assert cfg.default_page_limit == 10
    assert cfg.max_page_limit == 100
    assert Path(cfg.db_path) == (tmp_path / "data" / "tasks.db").resolve()


def test_relative_paths_resolve_under_app_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TASKBELL_APP_ROOT", str(tmp_path))
    cfg = config_from_dict({"db_path": "db/x.db", "log_file_path": "l/app.log"})
    assert Path(cfg.db_path) == (tmp_path / "db" / "x.db").resolve()
    assert Path(cfg.log_file_path) == (tmp_path / "l" / "app.log").resolve()


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="unknown config key"):
        config_from_dict({"prot": 8000})


@pytest.mark.parametrize(
    "data",
    [
        {"port": 0},
        {"reminder_check_interval_seconds": -1},
        {"reminder_window_seconds": "soon"},
        {"max_page_limit": True},
        {"log_level": "LOUD"},
        {"default_page_limit": 50, "max_page_limit": 20},
    ],
)
def test_invalid_values_are_rejected(data: dict) -> None:
    with pytest.raises(ValueError):
        config_from_dict(data)


def test_load_config_reads_toml(tmp_path: Path) -> None:
    path = tmp_path / "setting.toml"
    path.write_text('port = 9001\ntoken = "s3cret"\nlog_level = "debug"\n', encoding="utf-8")
    cfg = load_config(path)
    assert cfg.port == 9001
    assert cfg.token == "s3cret"
    assert cfg.log_level == "DEBUG"


def test_load_config_honours_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "custom.toml"
    path.write_text("port = 8123\n", encoding="utf-8")
    monkeypatch.setenv("TASKBELL_CONFIG", str(path))
    assert load_config().port == 8123


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.toml")
