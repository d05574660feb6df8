import json
import logging
import os
import sqlite3
from typing import List, Optional

from .config import settings
from .errors import PersistenceUnavailableError
from .models import ScoreStats

logger = logging.getLogger(__name__)


def default_db_path() -> str:
    return os.path.join(settings.DB_DIR, settings.DB_FILE)


def get_db_connection(db_path: Optional[str] = None):
    """Establishes a connection to the SQLite database."""
    conn = sqlite3.connect(db_path or default_db_path())
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(db_path: Optional[str] = None):
    """Creates the log and users tables if they don't exist."""
    conn = get_db_connection(db_path)
    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                level TEXT,
                logger TEXT,
                message TEXT
            );
        """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                user_id TEXT PRIMARY KEY,
                visits INTEGER NOT NULL DEFAULT 0,
                previous_questions TEXT NOT NULL DEFAULT '[]',
                highest_score INTEGER,
                lowest_score INTEGER,
                average_score REAL,
                total_score INTEGER,
                scores INTEGER NOT NULL DEFAULT 0
            );
        """
        )
    conn.close()


def init_db(db_path: Optional[str] = None):
    """Initializes the database and creates necessary tables."""
    db_dir = os.path.dirname(db_path or default_db_path())
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)
    create_tables(db_path)


class UserStore:
    """Per-user visits, question history and score statistics.

    Every call opens its own connection, so writes may run after the turn's
    response has been sent. Database failures surface as
    ``PersistenceUnavailableError``.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or default_db_path()

    def _fetch(self, user_id: str) -> Optional[sqlite3.Row]:
        try:
            conn = get_db_connection(self.db_path)
            try:
                return conn.execute(
                    "SELECT * FROM users WHERE user_id = ?", (user_id,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceUnavailableError(str(e)) from e

    def _update(self, user_id: str, **columns):
        names = ", ".join(columns)
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{name} = excluded.{name}" for name in columns)
        sql = (
            f"INSERT INTO users (user_id, {names}) VALUES (?, {placeholders}) "
            f"ON CONFLICT(user_id) DO UPDATE SET {updates}"
        )
        try:
            conn = get_db_connection(self.db_path)
            try:
                with conn:
                    conn.execute(sql, (user_id, *columns.values()))
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceUnavailableError(str(e)) from e

    def load_visits(self, user_id: str) -> int:
        row = self._fetch(user_id)
        return row["visits"] if row else 0

    def save_visits(self, user_id: str, visits: int):
        self._update(user_id, visits=visits)

    def load_history(self, user_id: str) -> List[int]:
        row = self._fetch(user_id)
        if not row:
            return []
        try:
            history = json.loads(row["previous_questions"])
        except json.JSONDecodeError:
            logger.error(f"Corrupt question history for {user_id}, resetting")
            return []
        return [int(i) for i in history]

    def save_history(self, user_id: str, history: List[int]):
        self._update(user_id, previous_questions=json.dumps(list(history)))

    def load_score_stats(self, user_id: str) -> ScoreStats:
        row = self._fetch(user_id)
        if not row or not row["scores"]:
            return ScoreStats()
        return ScoreStats(
            highest=row["highest_score"],
            lowest=row["lowest_score"],
            average=row["average_score"],
            total=row["total_score"],
            count=row["scores"],
        )

    def save_score_stats(self, user_id: str, stats: ScoreStats):
        self._update(
            user_id,
            highest_score=stats.highest,
            lowest_score=stats.lowest,
            average_score=stats.average,
            total_score=stats.total,
            scores=stats.count,
        )

    def record_score(self, user_id: str, score: int) -> ScoreStats:
        stats = self.load_score_stats(user_id).record(score)
        self.save_score_stats(user_id, stats)
        logger.info(f"Persisted score {score} for {user_id}")
        return stats
