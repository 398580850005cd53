"""
パス解決ユーティリティ

設定ファイル・DB・ログの既定配置を1箇所で決める。
相対パスはすべて app_root（カレントではなくリポジトリ/実行ディレクトリ）基準で解決する。
"""

from __future__ import annotations

import os
import pathlib


# 設定ファイルの場所を上書きする環境変数
CONFIG_ENV_VAR = "TASKBELL_CONFIG"

# app_root を上書きする環境変数（テストや配布時に使う）
APP_ROOT_ENV_VAR = "TASKBELL_APP_ROOT"


def get_app_root() -> pathlib.Path:
    """
    アプリのルートディレクトリを返す。

    - TASKBELL_APP_ROOT があればそれを使う
    - 無ければカレントディレクトリ
    """

    raw = str(os.environ.get(APP_ROOT_ENV_VAR) or "").strip()
    if raw:
        return pathlib.Path(raw).expanduser().resolve()
    return pathlib.Path.cwd().resolve()


def resolve_path_under_app_root(path: str | pathlib.Path) -> pathlib.Path:
    """相対パスなら app_root 基準で絶対化する（絶対パスはそのまま）。"""

    p = pathlib.Path(path).expanduser()
    if p.is_absolute():
        return p
    return (get_app_root() / p).resolve()


def get_config_dir() -> pathlib.Path:
    return get_app_root() / "config"


def get_data_dir() -> pathlib.Path:
    return get_app_root() / "data"


def get_logs_dir() -> pathlib.Path:
    return get_app_root() / "logs"


def get_default_config_file_path() -> pathlib.Path:
    """
    既定の設定ファイルパスを返す。

    TASKBELL_CONFIG が指定されていればそれを優先する。
    """

    raw = str(os.environ.get(CONFIG_ENV_VAR) or "").strip()
    if raw:
        return resolve_path_under_app_root(raw)
    return get_config_dir() / "setting.toml"
