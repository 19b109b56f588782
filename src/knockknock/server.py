"""
=============================================================================
KNOCK-KNOCK SERVER
=============================================================================

The orchestrator that ties the catalog, the socket server, the session
tracker and the protocol together.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        KNOCK-KNOCK SERVER                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │                     ┌──────────────────┐                            │
    │                     │ KnockKnockServer │                            │
    │                     │  (Orchestrator)  │                            │
    │                     └────────┬─────────┘                            │
    │                              │                                       │
    │         ┌────────────────────┼────────────────────┐                 │
    │         │                    │                    │                 │
    │         ▼                    ▼                    ▼                 │
    │  ┌──────────────┐    ┌──────────────┐    ┌──────────────┐           │
    │  │ SocketServer │    │SessionTracker│    │ JokeCatalog  │           │
    │  │ accept + tick│    │ count + idle │    │  read-only   │           │
    │  └──────┬───────┘    └──────────────┘    └──────────────┘           │
    │         │                                                            │
    │         ▼  one thread per client                                     │
    │  ┌──────────────┐    ┌──────────────┐                               │
    │  │LineConnection│───►│ConnectionLoop│──► JokeDialogue ...           │
    │  └──────────────┘    └──────────────┘                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
SESSION LIFECYCLE
=============================================================================

    1. CLIENT CONNECTS
       └── SocketServer accepts, wraps socket in LineConnection

    2. COUNT IT (accept thread)
       └── tracker.session_started(): active += 1, idle timer off

    3. START A THREAD
       └── New SessionState (fresh random seed), ConnectionLoop.run()

    4. TALK
       └── Jokes, corrections, Y/N prompts

    5. FINISH (session thread)
       └── Close socket, tracker.session_finished(), session log record

=============================================================================
SHUTDOWN
=============================================================================

Two ways out of the accept loop:

    IDLE     Every tick with zero sessions advances the idle timer.
             After idle_timeout seconds of continuous quiet, stop.

    SIGNAL   SIGINT / SIGTERM (or shutdown() from code) clear the
             running flag; the loop sees it within one tick.

Either way the listening socket is closed first (new clients are
refused), then the server waits for sessions that are still running.
Nobody gets cut off in the middle of a joke.

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .catalog import JokeCatalog
from .config import ServerConfig
from .core import SocketServer, LineConnection, SessionTracker
from .protocol import ConnectionLoop, SessionState
from .session_log import SessionLog, log_session


logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the process."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("knockknock").setLevel(numeric_level)


class KnockKnockServer:
    """
    Multi-client knock-knock joke server.

    =========================================================================
    USAGE
    =========================================================================

        catalog = load_catalog("jokes.db").require_jokes()
        server = KnockKnockServer(catalog, ServerConfig(port=8079))
        server.run()   # Blocks until idle or signal shutdown

    From another thread:

        server.wait_until_ready(timeout=5)
        host, port = server.address
        ...
        server.shutdown()

    =========================================================================
    """

    def __init__(self, catalog: JokeCatalog, config: Optional[ServerConfig] = None):
        """
        Initialize the server.

        Args:
            catalog: Jokes to tell. Shared read-only by every session.
            config: Server configuration. Uses defaults if not provided.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.catalog = catalog

        self._socket_server = SocketServer(self.config)
        self._tracker = SessionTracker(idle_timeout=self.config.idle_timeout)

        self._running = False
        self._idle_shutdown = False

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @property
    def active_sessions(self) -> int:
        """Number of clients currently connected."""
        return self._tracker.active

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stopped_for_idle(self) -> bool:
        """True if the last run() ended because nobody was connected."""
        return self._idle_shutdown

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket accepts connections."""
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self) -> None:
        """
        Start the server (blocking).

        Returns after an idle or requested shutdown once every running
        session has finished (or drain_timeout expired).

        Raises:
            OSError: If the listening socket cannot be set up.
        """
        self._running = True
        self._idle_shutdown = False

        logger.info(
            f"Starting knock-knock server on {self.config.host}:{self.config.port} "
            f"with {len(self.catalog)} jokes"
        )

        try:
            self._socket_server.start(self._handle_connection, self._on_tick)
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Stop accepting connections. Running sessions are left to finish."""
        self._socket_server.shutdown()

    def _shutdown(self) -> None:
        """
        Wait for in-flight sessions after the accept loop has exited.

        The listening socket is already closed at this point.
        """
        active = self._tracker.active
        if active:
            logger.info(f"Waiting for {active} active session(s) to finish...")

        if not self._tracker.wait_for_idle(self.config.drain_timeout):
            logger.warning(
                f"Drain timeout after {self.config.drain_timeout}s, "
                f"{self._tracker.active} session(s) still running"
            )

        self._running = False
        logger.info("Server shut down successfully.")

    def _on_tick(self) -> None:
        """Accept loop timeout: evaluate the idle-shutdown condition."""
        if self._tracker.tick():
            logger.info(
                f"No active clients for {self.config.idle_timeout:g}s. Shutting down server."
            )
            self._idle_shutdown = True
            self._socket_server.shutdown()

    # =========================================================================
    # SESSION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: LineConnection) -> None:
        """
        Start a session thread for a freshly accepted connection.

        Runs on the accept thread, so the increment is visible before the
        next tick evaluates the idle timer.
        """
        active = self._tracker.session_started()
        logger.info(
            f"[{conn.id}] Client connected from {conn.client_ip}:{conn.client_port}. "
            f"Active clients: {active}"
        )

        session = SessionState()
        thread = threading.Thread(
            target=self._process_connection,
            args=(conn, session),
            name=f"Session-{conn.id}",
        )

        try:
            thread.start()
        except RuntimeError as e:
            logger.error(f"[{conn.id}] Could not start session thread: {e}")
            conn.close()
            self._tracker.session_finished()

    def _process_connection(self, conn: LineConnection, session: SessionState) -> None:
        """
        Run one client's session (session thread).

        Whatever happens, the connection is closed and the active count
        goes back down.
        """
        outcome = "error"
        try:
            with conn:
                outcome = ConnectionLoop(self.catalog, session, conn).run().value
        except Exception as e:
            logger.exception(f"[{conn.id}] Session error: {e}")
        finally:
            remaining = self._tracker.session_finished()

            log_session(SessionLog.from_session(conn, session, outcome), self.config.log_format)

            logger.info(f"[{conn.id}] Client disconnected. Active clients: {remaining}")
            if remaining == 0 and self._socket_server.is_running:
                logger.info(
                    f"Server will shutdown in {self.config.idle_timeout:g}s "
                    f"if no other client comes up."
                )


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Accept: SocketServer loop, one LineConnection per client
# 2. Concurrency: one thread per session, no pool, no upper bound
# 3. Shared state: SessionTracker only (lock-protected)
# 4. Shutdown: idle timer or signal, then drain running sessions
# =============================================================================
