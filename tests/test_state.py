import os
import sqlite3

from helium_reader.models import AppData, Highlight, Theme
from helium_reader.state import MemoryPositionStore, SqlitePositionStore


def test_memory_store_position():
    store = MemoryPositionStore()
    assert store.get_position("book_abc") is None
    store.set_position("book_abc", "OEBPS/ch2.xhtml#offset=40")
    assert store.get_position("book_abc") == "OEBPS/ch2.xhtml#offset=40"
    assert store.get_position("book_other") is None


def test_memory_store_last_opened_path():
    store = MemoryPositionStore()
    assert store.get_last_opened_path() is None
    store.set_last_opened_path("/books/dune.epub")
    assert store.get_last_opened_path() == "/books/dune.epub"
    store.set_last_opened_path("")
    assert store.get_last_opened_path() is None


def test_theme_defaults_to_light():
    store = MemoryPositionStore()
    assert store.get_theme() == Theme.LIGHT
    store.set_theme(Theme.DARK)
    assert store.get_theme() == Theme.DARK
    store.data[store.THEME_KEY] = "sepia"
    assert store.get_theme() == Theme.LIGHT


def test_highlights():
    store = MemoryPositionStore()
    assert store.get_highlights("book_abc") == []
    highlights = [Highlight(cfi_range="ch1.xhtml#offset=3"), Highlight("ch2.xhtml#offset=9", "hm")]
    store.set_highlights("book_abc", highlights)
    assert store.get_highlights("book_abc") == highlights


def test_unreadable_highlights_are_absent():
    store = MemoryPositionStore()
    store.data["book_abc_highlights"] = "{not json"
    assert store.get_highlights("book_abc") == []
    store.data["book_abc_highlights"] = '[{"unexpected": 1}]'
    assert store.get_highlights("book_abc") == []


def test_sqlite_store_survives_reopening(tmp_path):
    dbpath = str(tmp_path / "states.db")
    store = SqlitePositionStore(dbpath)
    store.set_position("book_abc", "OEBPS/ch3.xhtml")
    store.set_last_opened_path("/books/dune.epub")
    store.set_theme(Theme.DARK)

    reopened = SqlitePositionStore(dbpath)
    assert reopened.get_position("book_abc") == "OEBPS/ch3.xhtml"
    assert reopened.get_last_opened_path() == "/books/dune.epub"
    assert reopened.get_theme() == Theme.DARK

    reopened.set_position("book_abc", "OEBPS/ch4.xhtml")
    assert store.get_position("book_abc") == "OEBPS/ch4.xhtml"


def test_sqlite_store_swallows_corrupt_database(tmp_path):
    dbpath = tmp_path / "states.db"
    dbpath.write_bytes(b"this is not a sqlite database" * 100)

    store = SqlitePositionStore(str(dbpath))
    assert store.get_position("book_abc") is None
    store.set_position("book_abc", "OEBPS/ch1.xhtml")
    assert store.get_position("book_abc") is None
    assert store.get_theme() == Theme.LIGHT


def test_sqlite_store_swallows_missing_table(tmp_path):
    dbpath = str(tmp_path / "states.db")
    conn = sqlite3.connect(dbpath)
    conn.execute("CREATE TABLE unrelated (x INTEGER)")
    conn.commit()
    conn.close()

    store = SqlitePositionStore(dbpath)
    assert store.get_last_opened_path() is None
    store.set_last_opened_path("/books/dune.epub")
    assert store.get_last_opened_path() is None


def test_sqlite_store_unwritable_location(tmp_path):
    store = SqlitePositionStore(str(tmp_path / "missing" / "dir" / "states.db"))
    assert store.get_position("book_abc") is None
    store.set_position("book_abc", "OEBPS/ch1.xhtml")


def test_sqlite_store_without_app_data_directory(monkeypatch):
    def unwritable_prefix(self):
        raise PermissionError(13, "Permission denied", "/home/reader/.config/helium")

    monkeypatch.setattr(AppData, "prefix", property(unwritable_prefix))
    monkeypatch.setattr(SqlitePositionStore, "init_db", lambda self: None)
    store = SqlitePositionStore()
    assert store.filepath == os.devnull


def test_sqlite_store_swallows_os_errors(tmp_path, monkeypatch):
    store = SqlitePositionStore(str(tmp_path / "states.db"))

    def failing_connect(*args, **kwargs):
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(sqlite3, "connect", failing_connect)
    assert store.get_position("book_abc") is None
    store.set_position("book_abc", "OEBPS/ch1.xhtml")
    assert store.get_theme() == Theme.LIGHT
