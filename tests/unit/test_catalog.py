"""
Unit tests for the SQLite joke catalog.
"""

import os
import sqlite3

import pytest

from conftest import SAMPLE_JOKES

from knockknock.catalog import (
    DEFAULT_JOKES,
    JokeCatalog,
    JokeRecord,
    load_catalog,
    seed_catalog,
    CatalogLoadError,
    EmptyCatalogError,
)


class TestJokeCatalog:
    """Tests for the in-memory catalog."""

    def test_from_pairs(self):
        catalog = JokeCatalog.from_pairs(SAMPLE_JOKES)

        assert len(catalog) == 3
        assert catalog[0] == JokeRecord("Lettuce", "Lettuce in, it's cold out here!")
        assert [joke.setup for joke in catalog] == ["Lettuce", "Boo", "Olive"]

    def test_read_only(self):
        catalog = JokeCatalog.from_pairs(SAMPLE_JOKES)

        with pytest.raises(TypeError):
            catalog[0] = JokeRecord("x", "y")

    def test_records_are_frozen(self):
        joke = JokeRecord("Boo", "Don't cry!")

        with pytest.raises(AttributeError):
            joke.setup = "Moo"

    def test_require_jokes(self):
        catalog = JokeCatalog.from_pairs(SAMPLE_JOKES)
        assert catalog.require_jokes() is catalog

        with pytest.raises(EmptyCatalogError):
            JokeCatalog().require_jokes()

    def test_empty_error_is_a_load_error(self):
        assert issubclass(EmptyCatalogError, CatalogLoadError)


class TestLoadCatalog:
    """Tests for load_catalog()."""

    def test_loads_every_row(self, jokes_db):
        catalog = load_catalog(jokes_db)

        assert len(catalog) == len(SAMPLE_JOKES)
        assert [(j.setup, j.punchline) for j in catalog] == SAMPLE_JOKES

    def test_missing_file(self, tmp_path):
        path = str(tmp_path / "nope.db")

        with pytest.raises(CatalogLoadError):
            load_catalog(path)

        # Opened read-only, so nothing was created
        assert not os.path.exists(path)

    def test_missing_table(self, tmp_path):
        path = str(tmp_path / "other.db")
        with sqlite3.connect(path) as conn:
            conn.execute("CREATE TABLE things (name TEXT)")
        conn.close()

        with pytest.raises(CatalogLoadError):
            load_catalog(path)

    def test_not_a_database(self, tmp_path):
        path = tmp_path / "garbage.db"
        path.write_bytes(b"this is not sqlite" * 100)

        with pytest.raises(CatalogLoadError):
            load_catalog(str(path))

    def test_empty_table_loads_empty(self, tmp_path):
        path = str(tmp_path / "empty.db")
        seed_catalog(path, [])

        catalog = load_catalog(path)

        assert len(catalog) == 0
        with pytest.raises(EmptyCatalogError, match="No jokes found"):
            catalog.require_jokes()

    def test_null_columns_become_empty_text(self, tmp_path):
        path = str(tmp_path / "nulls.db")
        with sqlite3.connect(path) as conn:
            conn.execute("CREATE TABLE jokes (setup TEXT, punchline TEXT)")
            conn.execute("INSERT INTO jokes VALUES (NULL, 'Bless you!')")
            conn.execute("INSERT INTO jokes VALUES (42, NULL)")
        conn.close()

        catalog = load_catalog(path)

        assert catalog[0] == JokeRecord("", "Bless you!")
        assert catalog[1] == JokeRecord("42", "")


class TestSeedCatalog:
    """Tests for seed_catalog()."""

    def test_seed_defaults(self, tmp_path):
        path = str(tmp_path / "jokes.db")

        assert seed_catalog(path) == len(DEFAULT_JOKES)
        assert len(load_catalog(path)) == len(DEFAULT_JOKES)

    def test_seed_appends(self, jokes_db):
        seed_catalog(jokes_db, [("Cow", "No, cows say moo!")])

        assert len(load_catalog(jokes_db)) == len(SAMPLE_JOKES) + 1

    def test_only_if_empty_leaves_existing_rows(self, jokes_db):
        inserted = seed_catalog(jokes_db, only_if_empty=True)

        assert inserted == 0
        assert len(load_catalog(jokes_db)) == len(SAMPLE_JOKES)

    def test_only_if_empty_fills_empty_table(self, tmp_path):
        path = str(tmp_path / "jokes.db")
        seed_catalog(path, [])

        assert seed_catalog(path, only_if_empty=True) == len(DEFAULT_JOKES)

    def test_unwritable_path(self, tmp_path):
        path = str(tmp_path / "missing-dir" / "jokes.db")

        with pytest.raises(CatalogLoadError):
            seed_catalog(path)
