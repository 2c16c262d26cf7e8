"""SQLite-backed settings and alignment record stores."""
import datetime
import json
import logging
import sqlite3
import time
from typing import Any, Iterable, List, Optional

from alignsync.state.models import AlignmentRecord

_logger = logging.getLogger("alignsync")


class SettingsStore:
    """Key/value settings (API credential, last selections). Values are stored as JSON."""

    def __init__(self, db_file: str):
        self.db_file = db_file
        self._init_db()

    def _init_db(self) -> None:
        conn = sqlite3.connect(self.db_file)
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT,
                timestamp TEXT NOT NULL
            )
            """
        )
        conn.commit()
        conn.close()

    def get(self, key: str) -> Optional[Any]:
        try:
            conn = sqlite3.connect(self.db_file)
            cur = conn.cursor()
            cur.execute("SELECT value FROM settings WHERE key = ?", (key,))
            row = cur.fetchone()
            conn.close()
        except sqlite3.Error:
            _logger.exception("Error reading setting key=%s", key)
            return None
        if row is None or row[0] is None:
            return None
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        try:
            conn = sqlite3.connect(self.db_file)
            cur = conn.cursor()
            cur.execute(
                "INSERT OR REPLACE INTO settings (key, value, timestamp) VALUES (?, ?, ?)",
                (key, json.dumps(value), datetime.datetime.now().isoformat()),
            )
            conn.commit()
            conn.close()
            _logger.debug("Saved setting key=%s", key)
        except sqlite3.Error:
            _logger.exception("Error saving setting key=%s", key)


class RecordStore:
    """AlignmentRecord cache keyed by task id. Records are written whole, never patched."""

    def __init__(self, db_file: str):
        self.db_file = db_file
        self._init_db()

    def _init_db(self) -> None:
        conn = sqlite3.connect(self.db_file)
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS alignment_records (
                task_id TEXT PRIMARY KEY,
                audio_url TEXT,
                json_url TEXT,
                source_url TEXT,
                status TEXT NOT NULL,
                updated_at TEXT
            )
            """
        )
        conn.commit()
        conn.close()

    def get_all(self) -> List[AlignmentRecord]:
        start = time.monotonic()
        try:
            conn = sqlite3.connect(self.db_file)
            cur = conn.cursor()
            cur.execute(
                """
                SELECT task_id, audio_url, json_url, source_url, status, updated_at
                FROM alignment_records
                """
            )
            rows = cur.fetchall()
            conn.close()
        except sqlite3.Error:
            _logger.exception("Error loading alignment records db_file=%s", self.db_file)
            return []

        records = [
            AlignmentRecord(
                task_id=task_id,
                audio_url=audio_url,
                json_url=json_url,
                source_url=source_url,
                status=status,
                updated_at=updated_at,
            )
            for task_id, audio_url, json_url, source_url, status, updated_at in rows
        ]
        _logger.debug("Loaded alignment records count=%d elapsed_ms=%d", len(records), int((time.monotonic() - start) * 1000))
        return records

    def put(self, record: AlignmentRecord) -> None:
        self.put_many([record])

    def put_many(self, records: Iterable[AlignmentRecord]) -> None:
        rows = [
            (r.task_id, r.audio_url, r.json_url, r.source_url, r.status, r.updated_at)
            for r in records
        ]
        try:
            conn = sqlite3.connect(self.db_file)
            cur = conn.cursor()
            cur.executemany(
                """
                INSERT OR REPLACE INTO alignment_records
                (task_id, audio_url, json_url, source_url, status, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
            conn.close()
            _logger.debug("Saved alignment records count=%d", len(rows))
        except sqlite3.Error:
            _logger.exception("Error saving alignment records count=%d", len(rows))

    def clear(self) -> None:
        try:
            conn = sqlite3.connect(self.db_file)
            cur = conn.cursor()
            cur.execute("DELETE FROM alignment_records")
            conn.commit()
            conn.close()
        except sqlite3.Error:
            _logger.exception("Error clearing alignment records db_file=%s", self.db_file)

    def replace_all(self, records: Iterable[AlignmentRecord]) -> None:
        """Swap the whole store in one transaction; a failure keeps the old rows."""
        rows = [
            (r.task_id, r.audio_url, r.json_url, r.source_url, r.status, r.updated_at)
            for r in records
        ]
        conn = sqlite3.connect(self.db_file)
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM alignment_records")
            cur.executemany(
                """
                INSERT OR REPLACE INTO alignment_records
                (task_id, audio_url, json_url, source_url, status, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
            _logger.debug("Replaced alignment records count=%d", len(rows))
        except sqlite3.Error:
            conn.rollback()
            _logger.exception("Error replacing alignment records count=%d", len(rows))
        finally:
            conn.close()
