"""
Engine and session wiring.

DATABASE_URL picks the backend (SQLite file by default). SQLite connections
get foreign key enforcement switched on, which SQLite leaves off per connection.
"""
import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./blockrank.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _sqlite_file(url: str):
    """Filesystem path of a file-backed SQLite URL; None for in-memory ones."""
    path = url.split(":///", 1)[1] if ":///" in url else ""
    if not path or path == ":memory:":
        return None
    return Path(path)


def build_engine(url: str, echo: bool = SQL_ECHO) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo)

    db_file = _sqlite_file(url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    sqlite_engine = create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    event.listen(sqlite_engine, "connect", _enable_sqlite_foreign_keys)
    return sqlite_engine


engine: Engine = build_engine(DATABASE_URL)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def init_db(target: Engine = None) -> None:
    """Create every table on target (the app engine by default)."""
    import blockrank.models  # noqa: F401

    SQLModel.metadata.create_all(target or engine)
