from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from sqlstratum import Runner

from rewardlab.config import Config
from rewardlab.errors import ConstraintError, StoreIOError
from rewardlab.schema import SCHEMA_SQL

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.IntegrityError as exc:
        raise ConstraintError(f"{action} rejected by the database: {exc}") from exc
    except OverflowError as exc:
        raise ConstraintError(f"{action} rejected by the database: {exc}") from exc
    except sqlite3.Error as exc:
        raise StoreIOError(f"{action} failed: {exc}") from exc


def init_db(conn: sqlite3.Connection) -> None:
    with _store_errors("schema creation"):
        conn.executescript(SCHEMA_SQL)
        conn.commit()


class Store:
    def __init__(self, runner: Runner) -> None:
        self._runner: Optional[Runner] = runner
        self._depth = 0

    @property
    def runner(self) -> Runner:
        if self._runner is None:
            raise StoreIOError("store is closed")
        return self._runner

    @property
    def closed(self) -> bool:
        return self._runner is None

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def execute(self, query: Any):
        runner = self.runner
        try:
            with _store_errors("write"):
                return runner.execute(query)
        except (ConstraintError, StoreIOError):
            if not self._depth and runner.connection.in_transaction:
                runner.connection.rollback()
            raise

    def fetch_all(self, query: Any) -> list:
        with _store_errors("read"):
            return self.runner.fetch_all(query)

    def fetch_one(self, query: Any):
        with _store_errors("read"):
            return self.runner.fetch_one(query)

    @contextmanager
    def transaction(self) -> Iterator[Store]:
        runner = self.runner
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        if runner.connection.in_transaction:
            runner.connection.commit()
        self._depth = 1
        try:
            with _store_errors("commit"), runner.transaction():
                yield self
        except BaseException as exc:
            # the runner only rolls back on Exception
            if not isinstance(exc, Exception) and runner.connection.in_transaction:
                runner.connection.rollback()
            logger.warning("transaction rolled back")
            raise
        finally:
            self._depth = 0

    def close(self) -> None:
        if self._runner is None:
            return
        try:
            self._runner.connection.close()
        finally:
            self._runner = None
            logger.debug("store closed")

    def __enter__(self) -> Store:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def get_store(db_path: Optional[str] = None) -> Store:
    path = db_path or Config.DB_PATH
    if path != MEMORY_DB:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreIOError(f"cannot prepare database location {path}: {exc}") from exc
    with _store_errors("connect"):
        conn = _connect(path)
    try:
        init_db(conn)
    except (ConstraintError, StoreIOError):
        conn.close()
        raise
    logger.debug("store opened at %s", path)
    return Store(Runner(conn))


@contextmanager
def open_store(db_path: Optional[str] = None) -> Iterator[Store]:
    store = get_store(db_path)
    try:
        yield store
    finally:
        store.close()
