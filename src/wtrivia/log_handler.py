import logging
import sqlite3
from typing import Optional

from .database import get_db_connection


class SQLiteHandler(logging.Handler):
    """
    Stores warnings and errors from the game modules in the ``logs`` table,
    so failed turns can be inspected next to the user records.
    """

    def __init__(self, db_path: Optional[str] = None, level=logging.WARNING):
        super().__init__(level)
        self.db_path = db_path

    def emit(self, record: logging.LogRecord):
        row = (record.levelname, record.name, self.format(record))
        try:
            conn = get_db_connection(self.db_path)
            with conn:
                conn.execute("INSERT INTO logs (level, logger, message) VALUES (?, ?, ?)", row)
            conn.close()
        except sqlite3.Error:
            self.handleError(record)
