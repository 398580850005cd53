"""
設定読み込みと設定ストア

TOML設定ファイルの読み込みと、実行時に参照する設定の管理を行う。
設定は起動時に読み込まれ、ConfigStore 経由で各モジュールから参照される。
"""

from __future__ import annotations

import pathlib
import threading
from dataclasses import dataclass
from typing import Any, Mapping

import tomli

from taskbell.infra import paths


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class Config:
    """
    TOML起動設定（起動時のみ使用、変更不可）。
    """
    port: int                 # API の待受ポート
    token: str                # API認証用トークン（空なら認証なし）
    log_level: str            # ログレベル（DEBUG, INFO, WARNING, ERROR）
    log_file_enabled: bool    # ファイルログ有効/無効
    log_file_path: str        # ファイルログの保存先パス（解決済み）
    log_file_max_bytes: int   # ファイルログのローテーションサイズ（bytes）
    db_path: str              # tasks.db の保存先パス（解決済み）
    reminders_enabled: bool   # リマインダーループを起動するか
    reminder_check_interval_seconds: int  # リマインダー判定の間隔（秒）
    reminder_window_seconds: int          # 期限超過を許容する幅（秒）。これより古いものは発火しない
    default_page_limit: int   # 一覧 limit の既定値
    max_page_limit: int       # 一覧 limit の上限


# 許可されたキー（未知のキーは起動時に弾く）
ALLOWED_KEYS = frozenset(
    {
        "port",
        "token",
        "log_level",
        "log_file_enabled",
        "log_file_path",
        "log_file_max_bytes",
        "db_path",
        "reminders_enabled",
        "reminder_check_interval_seconds",
        "reminder_window_seconds",
        "default_page_limit",
        "max_page_limit",
    }
)


class ConfigStore:
    """
    設定ストア。
    スレッドセーフに設定を保持し、各モジュールから参照可能にする。
    """

    def __init__(self, toml_config: Config) -> None:
        self._toml = toml_config
        self._lock = threading.Lock()

    @property
    def config(self) -> Config:
        """現在の設定を返す。"""
        with self._lock:
            return self._toml

    @property
    def token(self) -> str:
        """API認証トークン（空文字なら認証無効）。"""
        return str(self.config.token or "")


def _positive_int(data: Mapping[str, Any], key: str, default: int) -> int:
    """正の整数設定を読む。0以下や非数は起動時に弾く。"""

    raw = data.get(key, default)
    if isinstance(raw, bool):
        raise ValueError(f"{key} must be a positive integer")
    try:
        v = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be a positive integer") from exc
    if v <= 0:
        raise ValueError(f"{key} must be a positive integer")
    return v


def config_from_dict(data: Mapping[str, Any]) -> Config:
    """
    設定辞書から Config を構築する。
    許可されていないキーや範囲外の値が含まれる場合は ValueError。
    """

    # 許可されたキーのみを受け付ける
    unknown_keys = sorted(set(data.keys()) - ALLOWED_KEYS)
    if unknown_keys:
        keys = ", ".join(repr(k) for k in unknown_keys)
        raise ValueError(f"unknown config key(s): {keys} (allowed: {sorted(ALLOWED_KEYS)})")

    # --- ログレベル ---
    log_level = str(data.get("log_level", "INFO") or "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")

    # --- 相対パスは app_root 基準に解決する ---
    raw_log_file_path = str(data.get("log_file_path", str(paths.get_logs_dir() / "taskbell.log")))
    raw_db_path = str(data.get("db_path", str(paths.get_data_dir() / "tasks.db")))

    # --- ページング ---
    # NOTE: default が上限を超えると既定のリクエストが必ず 400 になるため、起動時に弾く。
    default_page_limit = _positive_int(data, "default_page_limit", 10)
    max_page_limit = _positive_int(data, "max_page_limit", 100)
    if default_page_limit > max_page_limit:
        raise ValueError("default_page_limit must be <= max_page_limit")

    return Config(
        port=_positive_int(data, "port", 8000),
        token=str(data.get("token", "") or ""),
        log_level=log_level,
        log_file_enabled=bool(data.get("log_file_enabled", False)),
        log_file_path=str(paths.resolve_path_under_app_root(raw_log_file_path)),
        log_file_max_bytes=_positive_int(data, "log_file_max_bytes", 200_000),
        db_path=str(paths.resolve_path_under_app_root(raw_db_path)),
        reminders_enabled=bool(data.get("reminders_enabled", True)),
        reminder_check_interval_seconds=_positive_int(data, "reminder_check_interval_seconds", 10),
        reminder_window_seconds=_positive_int(data, "reminder_window_seconds", 60),
        default_page_limit=int(default_page_limit),
        max_page_limit=int(max_page_limit),
    )


def load_config(path: str | pathlib.Path | None = None) -> Config:
    """
    TOML設定ファイルを読み込む。
    ファイルが無い場合は FileNotFoundError、内容が不正なら ValueError。
    """
    # --- 既定は config/setting.toml（TASKBELL_CONFIG で上書き可） ---
    config_path = pathlib.Path(paths.get_default_config_file_path() if path is None else path)
    config_path = paths.resolve_path_under_app_root(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    # TOMLファイルをパース
    with config_path.open("rb") as f:
        data = tomli.load(f)

    return config_from_dict(data)


# グローバル設定ストア（シングルトン）
_config_store: ConfigStore | None = None


def set_global_config_store(store: ConfigStore) -> None:
    """グローバルConfigStoreを設定。起動時に一度だけ呼び出される。"""
    global _config_store
    _config_store = store


def get_config_store() -> ConfigStore:
    """
    グローバルConfigStoreを取得。
    初期化されていない場合はRuntimeErrorを発生させる。
    """
    global _config_store
    if _config_store is None:
        raise RuntimeError("ConfigStore not initialized")
    return _config_store


def get_token() -> str:
    """API認証用トークンを返す。"""
    return get_config_store().token
