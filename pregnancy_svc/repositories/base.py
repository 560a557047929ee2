"""
SQLite storage shared by the repositories.

Each collection is a table holding one JSON document per row, plus the
columns queries filter and sort on. Get the instance from
``core.dependencies.get_database()``; tests build their own on a temp file.
"""
import sqlite3
import logging
from typing import Optional
from pathlib import Path

from core.config import DATABASE_PATH, DATABASE_BUSY_TIMEOUT

logger = logging.getLogger(__name__)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS patient_records (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        timestamp TEXT NOT NULL,
        document TEXT NOT NULL
    )
    """,
    # newest-first history per patient
    """
    CREATE INDEX IF NOT EXISTS idx_patient_records_user_ts
    ON patient_records (user_id, timestamp DESC)
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT,
        role TEXT NOT NULL DEFAULT 'patient',
        created_at TEXT NOT NULL,
        last_login TEXT NOT NULL
    )
    """,
)


class Database:
    """Owns the database file; hands out short-lived connections."""

    def __init__(self, db_path: Optional[str] = None, busy_timeout: Optional[int] = None):
        self.db_path = db_path or DATABASE_PATH
        self.busy_timeout = DATABASE_BUSY_TIMEOUT if busy_timeout is None else busy_timeout

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._create_schema()

    def get_connection(self) -> sqlite3.Connection:
        """A fresh connection; the caller closes it."""
        conn = sqlite3.connect(self.db_path)
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout}")
        return conn

    def _create_schema(self) -> None:
        conn = self.get_connection()
        try:
            mode = conn.execute("PRAGMA journal_mode = WAL").fetchone()
            if not mode or mode[0].lower() != "wal":
                logger.warning(f"WAL mode not enabled for {self.db_path}, journal mode is {mode}")
            for statement in SCHEMA:
                conn.execute(statement)
            conn.commit()
        finally:
            conn.close()

        logger.info(
            "Record store ready",
            extra={"db_path": self.db_path, "busy_timeout_ms": self.busy_timeout},
        )
