from __future__ import annotations

import os
from pathlib import Path
from sqlmodel import SQLModel, create_engine, Session

# SQLite file databases misbehave with long-lived pooled connections under concurrent
# access; NullPool keeps each request on a fresh connection.
from sqlalchemy.pool import NullPool

DATABASE_URL = os.getenv("TOPICBOARD_DB_URL", "sqlite:///./data/topicboard.db")

# SQLite busy timeout (seconds). Keep it low so writes fail fast under contention.
SQLITE_TIMEOUT_SECONDS = float(os.getenv("TOPICBOARD_SQLITE_TIMEOUT_SECONDS", "3"))

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False, "timeout": SQLITE_TIMEOUT_SECONDS}

engine_kwargs = {"echo": False, "connect_args": connect_args}
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["poolclass"] = NullPool
engine = create_engine(DATABASE_URL, **engine_kwargs)


def init_db() -> None:
    if DATABASE_URL.startswith("sqlite") and ":memory:" not in DATABASE_URL:
        db_path = DATABASE_URL.replace("sqlite:///", "", 1)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    from . import models  # noqa: F401  # registers tables on SQLModel.metadata

    SQLModel.metadata.create_all(engine)

    if DATABASE_URL.startswith("sqlite"):
        # SQLAlchemy's Connection context manager rolls back on close unless committed.
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
            conn.exec_driver_sql("PRAGMA foreign_keys=ON;")
            # Case-insensitive lookups used by topic creation (category name, username, duplicate titles).
            conn.exec_driver_sql(
                "CREATE INDEX IF NOT EXISTS ix_category_name_lower ON category(lower(name));"
            )
            conn.exec_driver_sql(
                "CREATE UNIQUE INDEX IF NOT EXISTS ux_user_username_lower ON users(lower(username));"
            )
            conn.exec_driver_sql(
                "CREATE INDEX IF NOT EXISTS ix_topic_title_lower ON topic(lower(title));"
            )
            conn.commit()


def get_session() -> Session:
    return Session(engine)
