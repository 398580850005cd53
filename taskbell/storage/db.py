"""
タスクDB（tasks.db）接続とセッション管理

タスクは単一ユーザー前提なので、SQLite 1ファイルにまとめて保持する。
保存先は設定（db_path）で指定し、相対パスは app_root 基準で解決する。
"""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker


logger = logging.getLogger(__name__)

# tasks.db 用 Base
TasksBase = declarative_base()

# search で使う Unicode 対応の大文字小文字畳み込み（SQLite の lower/LIKE は ASCII のみ）
CASEFOLD_SQL_FUNCTION = "py_casefold"


def _sql_casefold(value):
    """SQL から呼ぶ str.casefold（NULL はそのまま返す）。"""

    if value is None:
        return None
    return str(value).casefold()


# グローバルセッション（tasks.db 用）
TasksSessionLocal: sessionmaker | None = None
_engine: Engine | None = None


def get_tasks_db_url(db_path: str | Path) -> str:
    """tasks.db のSQLAlchemy URLを返す。"""

    p = Path(db_path).resolve()
    return f"sqlite:///{p}"


def init_tasks_db(db_url: str) -> None:
    """
    tasks.db を初期化する（起動時）。

    - セッションファクトリを作成する
    - テーブルを作成する

    NOTE:
        - 再呼び出し時は既存エンジンを破棄して作り直す（テストで DB を差し替えるため）。
    """

    global TasksSessionLocal, _engine

    # --- 既存エンジンがあれば閉じる ---
    dispose_tasks_db()

    # --- 保存先ディレクトリを用意する ---
    if db_url.startswith("sqlite:///"):
        Path(db_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    # SQLiteの場合はスレッドチェックを無効化し、ロック解消を待つ。
    connect_args = {"check_same_thread": False, "timeout": 10.0} if db_url.startswith("sqlite") else {}
    engine = create_engine(db_url, future=True, connect_args=connect_args)

    if db_url.startswith("sqlite"):

        @event.listens_for(engine, "connect")
        def apply_sqlite_pragmas(dbapi_conn, connection_record):
            """SQLite接続ごとに必要なPRAGMAと関数を適用する。"""
            try:
                dbapi_conn.execute("PRAGMA journal_mode=WAL")
                dbapi_conn.execute("PRAGMA synchronous=NORMAL")
            except Exception as exc:  # noqa: BLE001
                logger.warning("SQLite PRAGMAの適用に失敗しました", exc_info=exc)

            # --- search 用の大文字小文字畳み込み関数を登録する ---
            dbapi_conn.create_function(CASEFOLD_SQL_FUNCTION, 1, _sql_casefold, deterministic=True)

    _engine = engine
    TasksSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    # tasks.db のテーブル群を作成（モデル import が必要）
    import taskbell.storage.models  # noqa: F401

    TasksBase.metadata.create_all(bind=engine)
    logger.info("tasks DB initialized: %s", db_url)


def dispose_tasks_db() -> None:
    """エンジンを破棄し、セッションファクトリを未初期化に戻す。"""

    global TasksSessionLocal, _engine

    if _engine is not None:
        _engine.dispose()
    _engine = None
    TasksSessionLocal = None


@contextlib.contextmanager
def tasks_session_scope() -> Iterator[Session]:
    """
    tasks.db のセッションスコープ（with文用）。

    正常終了時はコミット、例外時はロールバックする。
    """

    if TasksSessionLocal is None:
        raise RuntimeError("Tasks database not initialized. Call init_tasks_db() first.")
    session = TasksSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
