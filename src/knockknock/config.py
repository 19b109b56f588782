"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the knock-knock server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m knockknock --port 9000                           │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── KNOCK_PORT=9000 python -m knockknock                       │
    │                                                                      │
    │   3. Defaults                                                       │
    │      └── The dataclass field values below                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TIME SETTINGS
=============================================================================

Three durations drive the server lifecycle:

    poll_interval   How long accept() waits before the loop wakes up
                    and re-checks the idle condition (one "tick").

    idle_timeout    How long the server must see zero active sessions,
                    tick after tick, before it stops accepting and exits.

    drain_timeout   How long shutdown waits for sessions that are still
                    running. None waits until every client is done.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


def _optional_float(value: Optional[str]) -> Optional[float]:
    """Parse an environment value where empty or 'none' means None."""
    if value is None or value.strip().lower() in ("", "none"):
        return None
    return float(value)


@dataclass
class ServerConfig:
    """
    Configuration for the knock-knock server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, read_timeout

    PROTOCOL SETTINGS
    - max_line_length, encoding

    LIFECYCLE SETTINGS
    - poll_interval, idle_timeout, drain_timeout

    CATALOG
    - db_path

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8079
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 10
    """
    Maximum number of connections waiting to be accepted.
    This does not limit how many sessions run at once.
    """

    buffer_size: int = 4096
    """
    Bytes requested from the socket per recv() call.
    """

    read_timeout: Optional[float] = None
    """
    Seconds a session waits for the client's next line.
    None = wait indefinitely (people type slowly).
    """

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_line_length: int = 4096
    """
    Longest line a client may send, in bytes after encoding.
    Longer input ends the session.
    """

    encoding: str = "utf-8"
    """
    Text encoding used on the wire.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    poll_interval: float = 1.0
    """
    Accept loop tick in seconds.
    """

    idle_timeout: float = 10.0
    """
    Seconds with zero active sessions before the server shuts itself down.
    """

    drain_timeout: Optional[float] = None
    """
    Seconds to wait for running sessions during shutdown.
    None = wait until every session has finished.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CATALOG
    # ─────────────────────────────────────────────────────────────────────

    db_path: str = "jokes.db"
    """
    SQLite database holding the `jokes(setup, punchline)` table.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG also logs every protocol line.
    """

    log_format: str = "text"
    """
    Session log format: 'json' or 'text'.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        KNOCK_HOST          Server host (default: 127.0.0.1)
        KNOCK_PORT          Server port (default: 8079)
        KNOCK_DB            Joke database path (default: jokes.db)
        KNOCK_IDLE_TIMEOUT  Idle shutdown threshold in seconds (default: 10)
        KNOCK_READ_TIMEOUT  Per-line read timeout in seconds (default: none)
        KNOCK_LOG_LEVEL     Logging level (default: INFO)
        KNOCK_LOG_FORMAT    Session log format (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("KNOCK_HOST", "127.0.0.1"),
            port=int(os.getenv("KNOCK_PORT", "8079")),
            db_path=os.getenv("KNOCK_DB", "jokes.db"),
            idle_timeout=float(os.getenv("KNOCK_IDLE_TIMEOUT", "10")),
            read_timeout=_optional_float(os.getenv("KNOCK_READ_TIMEOUT")),
            log_level=os.getenv("KNOCK_LOG_LEVEL", "INFO"),
            log_format=os.getenv("KNOCK_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Runs at server construction so a bad value fails at startup,
        not in the middle of someone's joke.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.max_line_length < 1:
            raise ValueError("max_line_length must be >= 1")

        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        if self.idle_timeout < 0:
            raise ValueError("idle_timeout must be >= 0")

        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be > 0")

        if self.drain_timeout is not None and self.drain_timeout < 0:
            raise ValueError("drain_timeout must be >= 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Type-safe configuration with dataclass
# 2. Environment variable support (KNOCK_*)
# 3. Validation at startup (fail-fast)
# 4. Defaults: port 8079, backlog 10, one-second tick,
#    ten-second idle shutdown
# =============================================================================
