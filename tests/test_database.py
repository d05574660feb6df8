import logging
import sqlite3

import pytest

from wtrivia import database
from wtrivia.database import UserStore, get_db_connection
from wtrivia.errors import PersistenceUnavailableError
from wtrivia.log_handler import SQLiteHandler
from wtrivia.models import ScoreStats


def test_unknown_user_defaults(store) -> None:
    assert store.load_visits("nobody") == 0
    assert store.load_history("nobody") == []
    assert store.load_score_stats("nobody") == ScoreStats()


def test_visits_and_history_roundtrip(store) -> None:
    store.save_visits("u1", 3)
    store.save_history("u1", [4, 2, 9])
    assert store.load_visits("u1") == 3
    assert store.load_history("u1") == [4, 2, 9]


def test_history_update_keeps_visits(store) -> None:
    store.save_visits("u1", 2)
    store.save_history("u1", [1])
    store.save_visits("u1", 5)
    assert store.load_history("u1") == [1]
    assert store.load_visits("u1") == 5


def test_corrupt_history_resets(store, db_path) -> None:
    conn = get_db_connection(db_path)
    with conn:
        conn.execute(
            "INSERT INTO users (user_id, previous_questions) VALUES (?, ?)", ("u2", "not json")
        )
    conn.close()
    assert store.load_history("u2") == []


def test_record_score_statistics(store) -> None:
    store.record_score("u1", 3)
    store.record_score("u1", 1)
    stats = store.record_score("u1", 2)
    assert stats.highest == 3
    assert stats.lowest == 1
    assert stats.total == 6
    assert stats.count == 3
    assert stats.average == pytest.approx(2.0)
    assert store.load_score_stats("u1") == stats


def test_record_score_zero(store) -> None:
    stats = store.record_score("u3", 0)
    assert stats.highest == 0
    assert stats.lowest == 0
    assert stats.count == 1


def test_missing_database_raises_persistence_error(tmp_path) -> None:
    store = UserStore(str(tmp_path / "absent" / "trivia.db"))
    with pytest.raises(PersistenceUnavailableError):
        store.load_visits("u1")
    with pytest.raises(PersistenceUnavailableError):
        store.save_visits("u1", 1)


def test_sqlite_handler_writes_warnings(db_path) -> None:
    logger = logging.getLogger("wtrivia.test_handler")
    handler = SQLiteHandler(db_path)
    logger.addHandler(handler)
    try:
        logger.warning("Something odd")
        logger.info("Not stored")
    finally:
        logger.removeHandler(handler)

    conn = get_db_connection(db_path)
    rows = conn.execute("SELECT level, logger, message FROM logs").fetchall()
    conn.close()
    assert [tuple(row) for row in rows] == [("WARNING", "wtrivia.test_handler", "Something odd")]


class LockedConnection:
    def __init__(self):
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def execute(self, *args):
        raise sqlite3.OperationalError("database is locked")

    def close(self):
        self.closed = True


def test_failed_write_closes_connection(store, monkeypatch) -> None:
    conn = LockedConnection()
    monkeypatch.setattr(database, "get_db_connection", lambda db_path=None: conn)
    with pytest.raises(PersistenceUnavailableError):
        store.save_visits("u1", 1)
    assert conn.closed
