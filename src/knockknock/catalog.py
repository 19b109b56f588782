"""
=============================================================================
JOKE CATALOG
=============================================================================

The catalog is the server's read-only list of knock-knock jokes. It is
loaded ONCE at startup from a SQLite database and then shared by every
session thread.

=============================================================================
STORAGE SCHEMA
=============================================================================

    CREATE TABLE jokes (
        id        INTEGER PRIMARY KEY,
        setup     TEXT NOT NULL,      -- "Lettuce"
        punchline TEXT NOT NULL       -- "Lettuce in, it's cold out here!"
    );

=============================================================================
IDENTITY BY INDEX
=============================================================================

Sessions remember which jokes they have already told by INDEX into the
catalog, not by database id:

    ┌───────┬──────────────┬──────────────────────────────────────────┐
    │ index │ setup        │ punchline                                │
    ├───────┼──────────────┼──────────────────────────────────────────┤
    │   0   │ Lettuce      │ Lettuce in, it's cold out here!          │
    │   1   │ Boo          │ Don't cry, it's only a joke!             │
    │   2   │ Olive        │ Olive you and I miss you!                │
    └───────┴──────────────┴──────────────────────────────────────────┘

The catalog is a tuple, so indices stay valid for the whole process and
concurrent readers need no lock.

=============================================================================
"""

import logging
import sqlite3
from pathlib import Path
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Tuple


logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS jokes (
    id INTEGER PRIMARY KEY,
    setup TEXT NOT NULL,
    punchline TEXT NOT NULL
)
"""

SELECT_JOKES = "SELECT setup, punchline FROM jokes"

DEFAULT_JOKES: Tuple[Tuple[str, str], ...] = (
    ("Lettuce", "Lettuce in, it's cold out here!"),
    ("Boo", "Don't cry, it's only a joke!"),
    ("Olive", "Olive you and I miss you!"),
    ("Cow", "No, cows say moo!"),
    ("Atch", "Bless you!"),
    ("Tank", "You're welcome!"),
    ("Nobel", "No bell, that's why I knocked!"),
    ("Interrupting", "Interrupting cow... MOO!"),
    ("Harry", "Harry up, it's cold out here!"),
    ("Orange", "Orange you glad I didn't say banana?"),
)


class CatalogLoadError(Exception):
    """The joke store is unreachable or does not have the expected shape."""


class EmptyCatalogError(CatalogLoadError):
    """The joke store was read successfully but holds no jokes."""


@dataclass(frozen=True)
class JokeRecord:
    """One knock-knock joke."""

    setup: str
    punchline: str


class JokeCatalog(Sequence[JokeRecord]):
    """
    Immutable, ordered collection of jokes.

    Behaves like a read-only sequence:

        catalog = JokeCatalog.from_pairs([("Boo", "Don't cry!")])
        len(catalog)        # 1
        catalog[0].setup    # "Boo"
    """

    def __init__(self, jokes: Iterable[JokeRecord] = ()):
        self._jokes: Tuple[JokeRecord, ...] = tuple(jokes)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "JokeCatalog":
        """Build a catalog from (setup, punchline) pairs."""
        return cls(JokeRecord(setup, punchline) for setup, punchline in pairs)

    def __getitem__(self, index):
        return self._jokes[index]

    def __len__(self) -> int:
        return len(self._jokes)

    def __iter__(self) -> Iterator[JokeRecord]:
        return iter(self._jokes)

    def __repr__(self) -> str:
        return f"JokeCatalog({len(self._jokes)} jokes)"

    def require_jokes(self) -> "JokeCatalog":
        """
        Return self, or raise EmptyCatalogError if there is nothing to tell.

        The server must never start with an empty joke set.
        """
        if not self._jokes:
            raise EmptyCatalogError("No jokes found in database")
        return self


def _as_text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def load_catalog(path: str) -> JokeCatalog:
    """
    Load every joke from the SQLite database at `path`.

    The database is opened read-only, so a missing file is reported
    instead of being silently created empty.

    Args:
        path: Path to the SQLite database file.

    Returns:
        The loaded catalog. It may be empty; callers decide whether
        that is fatal (see JokeCatalog.require_jokes).

    Raises:
        CatalogLoadError: If the database cannot be opened or the
                          `jokes` table cannot be read.
    """
    uri = Path(path).resolve().as_uri() + "?mode=ro"
    try:
        conn = sqlite3.connect(uri, uri=True)
    except sqlite3.Error as e:
        raise CatalogLoadError(f"Can't open database {path!r}: {e}") from e

    try:
        rows = conn.execute(SELECT_JOKES).fetchall()
    except sqlite3.Error as e:
        raise CatalogLoadError(f"Can't read jokes from {path!r}: {e}") from e
    finally:
        conn.close()

    catalog = JokeCatalog.from_pairs((_as_text(setup), _as_text(punchline)) for setup, punchline in rows)
    logger.info(f"Loaded {len(catalog)} jokes from {path}")
    return catalog


def seed_catalog(
    path: str,
    jokes: Iterable[Tuple[str, str]] = DEFAULT_JOKES,
    only_if_empty: bool = False,
) -> int:
    """
    Create the jokes table at `path` (if needed) and insert `jokes`.

    Args:
        path: SQLite database file, created if missing.
        jokes: (setup, punchline) pairs to insert.
        only_if_empty: Leave a table that already has rows untouched.

    Returns:
        Number of rows inserted.

    Raises:
        CatalogLoadError: If the database cannot be written.
    """
    rows = [(setup, punchline) for setup, punchline in jokes]
    try:
        with sqlite3.connect(path) as conn:
            conn.execute(SCHEMA)
            if only_if_empty and conn.execute("SELECT COUNT(*) FROM jokes").fetchone()[0]:
                rows = []
            else:
                conn.executemany("INSERT INTO jokes (setup, punchline) VALUES (?, ?)", rows)
        conn.close()
    except sqlite3.Error as e:
        raise CatalogLoadError(f"Can't seed database {path!r}: {e}") from e

    logger.info(f"Seeded {len(rows)} jokes into {path}")
    return len(rows)
