"""
ログ設定

コンソールと（任意で）ローテーション付きファイルへ出力する。
uvicorn の access log は、ヘルスチェック等のノイズになりやすいパスだけ除外できる。
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# ローテーション時に残す世代数
_LOG_FILE_BACKUP_COUNT = 3

# setup_logging が付与したハンドラの目印（再呼び出し時に付け替える）
_HANDLER_MARK = "_taskbell_handler"


def setup_logging(
    level: str = "INFO",
    *,
    log_file_enabled: bool = False,
    log_file_path: str | Path | None = None,
    log_file_max_bytes: int = 200_000,
) -> None:
    """
    ルートロガーを設定する。

    Args:
        level: ログレベル名（DEBUG, INFO, WARNING, ERROR）。
        log_file_enabled: True ならファイルにも出力する。
        log_file_path: ファイルログの保存先。
        log_file_max_bytes: ローテーションサイズ（bytes）。
    """

    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level or "INFO").upper(), logging.INFO))

    # --- 以前に付けたハンドラだけ外す（pytest 等の外部ハンドラは残す） ---
    for h in list(root.handlers):
        if getattr(h, _HANDLER_MARK, False):
            root.removeHandler(h)
            h.close()

    formatter = logging.Formatter(LOG_FORMAT)

    # --- コンソール ---
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    setattr(console, _HANDLER_MARK, True)
    root.addHandler(console)

    # --- ファイル（任意） ---
    if log_file_enabled and log_file_path:
        path = Path(log_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(path),
            maxBytes=int(log_file_max_bytes),
            backupCount=int(_LOG_FILE_BACKUP_COUNT),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARK, True)
        root.addHandler(file_handler)

    # --- SQLAlchemy のエンジンログは WARNING 以上に絞る ---
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class _AccessPathFilter(logging.Filter):
    """uvicorn.access のレコードから特定パスを除外する。"""

    def __init__(self, paths: set[str]) -> None:
        super().__init__()
        self.paths = paths

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn.access の args は (client_addr, method, full_path, http_version, status_code)
        args = record.args
        if not isinstance(args, tuple) or len(args) < 3:
            return True
        full_path = str(args[2] or "")
        path = full_path.split("?", 1)[0]
        return path not in self.paths


def suppress_uvicorn_access_log_paths(*paths: str) -> None:
    """
    uvicorn の access log から指定パスを除外する。

    多重呼び出し時は既存フィルタにパスを追加する。
    """

    access_logger = logging.getLogger("uvicorn.access")
    for f in access_logger.filters:
        if isinstance(f, _AccessPathFilter):
            f.paths.update(str(p) for p in paths)
            return
    access_logger.addFilter(_AccessPathFilter({str(p) for p in paths}))
