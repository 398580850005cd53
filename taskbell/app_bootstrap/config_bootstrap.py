"""
起動時の設定・DB初期化。

目的:
    - create_app() から初期化の詳細を切り離す。
    - 設定 -> ログ -> 設定ストア登録 -> タスクDB の順序を1箇所で固定する。
"""

from __future__ import annotations

import logging

from taskbell.config import Config, ConfigStore, load_config, set_global_config_store
from taskbell.runtime.logging import setup_logging
from taskbell.storage.db import get_tasks_db_url, init_tasks_db


logger = logging.getLogger(__name__)


def bootstrap_config(config: Config | None = None) -> ConfigStore:
    """
    起動時の初期化を実行し、登録済みの ConfigStore を返す。

    Args:
        config: 読み込み済みの設定。None なら config/setting.toml を読む。
    """

    # --- 1. TOML 設定を読み込み、ログ設定を先に確定する ---
    toml_config = load_config() if config is None else config
    setup_logging(
        toml_config.log_level,
        log_file_enabled=toml_config.log_file_enabled,
        log_file_path=toml_config.log_file_path,
        log_file_max_bytes=toml_config.log_file_max_bytes,
    )

    # --- 2. グローバル設定ストアへ登録する ---
    config_store = ConfigStore(toml_config)
    set_global_config_store(config_store)

    # --- 3. タスク DB を初期化する ---
    init_tasks_db(get_tasks_db_url(toml_config.db_path))
    logger.info(
        "taskbell configured: port=%s auth=%s reminders=%s",
        int(toml_config.port),
        "on" if toml_config.token else "off",
        "on" if toml_config.reminders_enabled else "off",
    )
    return config_store
