# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from taskbell.config import Config, config_from_dict
from taskbell.main import create_app
from taskbell.storage.db import dispose_tasks_db, get_tasks_db_url, init_tasks_db
from taskbell.tasks.repo import TaskRepository

from .fakes import FakeClock


@pytest.fixture()
def config(tmp_path: Path) -> Config:
    """
    Config pointing at a tmp SQLite file.

    The periodic reminder loop is off so API tests drive ticks explicitly.
    """
    return config_from_dict(
        {
            "db_path": str(tmp_path / "tasks.db"),
            "log_level": "WARNING",
            "reminders_enabled": False,
        }
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def repo(config: Config, clock: FakeClock) -> Iterator[TaskRepository]:
    """Real TaskRepository over a fresh SQLite file."""
    init_tasks_db(get_tasks_db_url(config.db_path))
    try:
        yield TaskRepository(clock=clock)
    finally:
        dispose_tasks_db()


@pytest.fixture()
def app(config: Config, clock: FakeClock) -> FastAPI:
    return create_app(config, clock=clock)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as c:
        yield c
