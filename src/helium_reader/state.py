import dataclasses
import json
import logging
import os
import sqlite3
from typing import Dict, List, Optional

from helium_reader.models import AppData, Highlight, Theme

logger = logging.getLogger(__name__)


class PositionStore:
    """
    Persisted reading positions, highlights and app-wide preferences.

    Subclasses only provide the raw key-value access via
    `_get()` and `_set()`. Storage faults never reach the caller:
    a failing read is reported as absent value and a failing write is dropped,
    losing reading position must not block reading.
    """

    THEME_KEY = "theme"
    LAST_BOOK_KEY = "last_book"

    def _get(self, key: str) -> Optional[str]:
        raise NotImplementedError("PositionStore._get() not implemented")

    def _set(self, key: str, value: Optional[str]) -> None:
        raise NotImplementedError("PositionStore._set() not implemented")

    def get_position(self, book_id: str) -> Optional[str]:
        return self._get(f"{book_id}_location") or None

    def set_position(self, book_id: str, ref: str) -> None:
        self._set(f"{book_id}_location", ref)

    def get_last_opened_path(self) -> Optional[str]:
        return self._get(PositionStore.LAST_BOOK_KEY) or None

    def set_last_opened_path(self, path: str) -> None:
        self._set(PositionStore.LAST_BOOK_KEY, path or None)

    def get_theme(self) -> Theme:
        value = self._get(PositionStore.THEME_KEY)
        try:
            return Theme(value)
        except ValueError:
            return Theme.LIGHT

    def set_theme(self, theme: Theme) -> None:
        self._set(PositionStore.THEME_KEY, theme.value)

    def get_highlights(self, book_id: str) -> List[Highlight]:
        raw = self._get(f"{book_id}_highlights")
        if not raw:
            return []
        try:
            return [Highlight(**item) for item in json.loads(raw)]
        except (ValueError, TypeError) as e:
            logger.warning("Discarding unreadable highlights of %s: %s", book_id, e)
            return []

    def set_highlights(self, book_id: str, highlights: List[Highlight]) -> None:
        self._set(
            f"{book_id}_highlights", json.dumps([dataclasses.asdict(i) for i in highlights])
        )


class MemoryPositionStore(PositionStore):
    def __init__(self):
        self.data: Dict[str, str] = dict()

    def _get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def _set(self, key: str, value: Optional[str]) -> None:
        if value is None:
            self.data.pop(key, None)
        else:
            self.data[key] = value


class SqlitePositionStore(PositionStore, AppData):
    """
    Durable store in a single sqlite3 key-value table,
    every call opens its own short-lived connection.
    """

    def __init__(self, filepath: Optional[str] = None):
        self.filepath = filepath or self._default_filepath()
        if not os.path.isfile(self.filepath):
            self.init_db()

    def _default_filepath(self) -> str:
        try:
            prefix = self.prefix
        except OSError as e:
            logger.warning("Cannot create app data directory, positions won't be kept: %s", e)
            return os.devnull
        return os.path.join(prefix, "states.db") if prefix else os.devnull

    def _get(self, key: str) -> Optional[str]:
        conn = None
        try:
            conn = sqlite3.connect(self.filepath)
            cur = conn.cursor()
            cur.execute("SELECT value FROM kv WHERE key=?", (key,))
            result = cur.fetchone()
            return result[0] if result else None
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed reading %r from %s: %s", key, self.filepath, e)
            return None
        finally:
            if conn is not None:
                conn.close()

    def _set(self, key: str, value: Optional[str]) -> None:
        conn = None
        try:
            conn = sqlite3.connect(self.filepath)
            if value is None:
                conn.execute("DELETE FROM kv WHERE key=?", (key,))
            else:
                conn.execute("INSERT OR REPLACE INTO kv VALUES (?, ?)", (key, value))
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed writing %r to %s: %s", key, self.filepath, e)
        finally:
            if conn is not None:
                conn.close()

    def init_db(self) -> None:
        conn = None
        try:
            conn = sqlite3.connect(self.filepath)
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT
                );
                """
            )
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed initializing %s: %s", self.filepath, e)
        finally:
            if conn is not None:
                conn.close()
