"""
=============================================================================
KNOCKKNOCK - Multi-Client Knock-Knock Joke Server
=============================================================================

A TCP server that tells knock-knock jokes, one thread per client, with a
strict line protocol and an automatic idle shutdown.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    knockknock/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # Server CLI (python -m knockknock)
    ├── server.py            # KnockKnockServer orchestrator
    ├── config.py            # ServerConfig dataclass
    ├── catalog.py           # Jokes loaded from SQLite
    ├── session_log.py       # One structured record per session
    ├── client.py            # Interactive terminal client
    ├── core/                # Networking
    │   ├── socket_server.py # Listening socket, accept loop, signals
    │   ├── connection.py    # Line-oriented connection wrapper
    │   └── tracker.py       # Active session count + idle timer
    └── protocol/            # What gets said
        ├── messages.py      # Wire text and reply matching
        ├── session.py       # Per-client state
        ├── dialogue.py      # One joke, knock to punchline
        └── conversation.py  # Joke after joke, Y/N prompt

=============================================================================
QUICK START
=============================================================================

    $ python -m knockknock --seed          # terminal 1
    $ python -m knockknock.client          # terminal 2

    Server: Knock knock!
    Client: Who's there?
    Server: Lettuce
    Client: Lettuce who?
    Server: Lettuce in, it's cold out here!

=============================================================================
"""

__version__ = "1.0.0"

from .server import KnockKnockServer
from .config import ServerConfig
from .catalog import (
    JokeCatalog,
    JokeRecord,
    load_catalog,
    seed_catalog,
    CatalogLoadError,
    EmptyCatalogError,
)

__all__ = [
    "KnockKnockServer",
    "ServerConfig",
    "JokeCatalog",
    "JokeRecord",
    "load_catalog",
    "seed_catalog",
    "CatalogLoadError",
    "EmptyCatalogError",
    "__version__",
]
