"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

This module implements the listening side of the server: it owns the
listening socket, runs the accept loop, and turns the accept timeout
into a periodic "tick" the higher layer uses for idle shutdown.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. bind()      Associate it with IP:PORT
    3. listen()    OS starts queueing incoming connections
                   └─ backlog = max queue size before refusing
    4. accept()    Take one queued connection
                   └─ Returns a NEW socket just for that client
    5. close()     Release the listening socket
                   └─ Further connection attempts are refused

=============================================================================
ACCEPT WITH A TICK
=============================================================================

accept() blocks. To wake up regularly without a timer thread we give
the listening socket a timeout equal to the poll interval:

    while running:
        try:
            accept()              ← waits at most poll_interval
            handler(connection)
        except timeout:
            on_tick()             ← "one second passed, nothing arrived"

One loop, one thread: it both accepts clients and notices when the
server has been idle long enough to stop.

=============================================================================
SIGNAL HANDLING FOR GRACEFUL SHUTDOWN
=============================================================================

SIGINT (2):   Sent when user presses Ctrl+C
SIGTERM (15): Sent by kill, systemd stop, docker stop

Both only clear the running flag. The accept loop notices on its next
tick, closes the listening socket, and returns. Sessions that are
already talking to clients keep going; the server waits for them.

Python only allows installing signal handlers from the main thread, so
when the server runs in a background thread (tests) signals are left
alone and shutdown() is the way to stop it.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import LineConnection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    start(handler, on_tick)                                           │
    │        │                                                             │
    │        ├──► _create_socket()   SO_REUSEADDR, TCP_NODELAY, timeout    │
    │        ├──► bind()             Bind to IP:PORT                       │
    │        ├──► listen()           Start accepting queue                 │
    │        ├──► _setup_signals()   SIGTERM/SIGINT → shutdown()           │
    │        │                                                             │
    │        └──► _accept_loop()     Main loop (blocks here!)              │
    │                 │                                                    │
    │                 └──► while running:                                  │
    │                         accept() → LineConnection → handler(conn)    │
    │                         timeout  → on_tick()                         │
    │                                                                      │
    │    shutdown()        running = False (any thread, idempotent)        │
    │                                                                      │
    │    _cleanup()        Restore signals, close listening socket         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        server = SocketServer(config)
        server.start(handle_connection, on_tick)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration (host, port, backlog, poll interval,
                    and the per-connection settings passed to LineConnection).

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False

        # Set once the socket is listening
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if the accept loop is (still) running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        Get the server's address (IP, port).

        Once bound this is the real address, so a config port of 0
        reports the port the OS picked.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Allow an immediate restart while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Prompts are tiny; send each one right away
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # accept() waits at most one tick
        sock.settimeout(self.config.poll_interval)

        return sock

    def _setup_signals(self):
        """
        Route SIGTERM and SIGINT to shutdown().

        Only possible from the main thread; elsewhere this is a no-op.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, waiting for clients to finish...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(
        self,
        connection_handler: Callable[[LineConnection], None],
        on_tick: Optional[Callable[[], None]] = None,
    ):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called (by a signal, by
        on_tick, or by another thread).

        Args:
            connection_handler: Called on the accept thread for every new
                                connection. Must not block for long.
            on_tick: Called every time accept() times out.

        Raises:
            OSError: If the socket cannot be bound or put into listen mode.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to listen on {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True

        self._setup_signals()

        logger.info(f"Server listening on {self.address[0]}:{self.address[1]}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler, on_tick)
        finally:
            self._cleanup()

    def _accept_loop(
        self,
        connection_handler: Callable[[LineConnection], None],
        on_tick: Optional[Callable[[], None]],
    ):
        """
        Main loop for accepting connections.

        ┌─────────────────────────────────────────────────────────────────┐
        │                     Accept Loop Flow                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while self._running:                                           │
        │       │                                                          │
        │       ├──► accept()          (at most poll_interval)            │
        │       │       │                                                  │
        │       │       ├── connection → wrap → connection_handler(conn)   │
        │       │       │                                                  │
        │       │       ├── timeout    → on_tick()                         │
        │       │       │                                                  │
        │       │       └── OSError    → log, keep accepting               │
        │       │                                                          │
        │   (Loop continues until self._running becomes False)             │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                if on_tick is not None and self._running:
                    on_tick()
                continue
            except OSError as e:
                if not self._running or self._socket is None or self._socket.fileno() < 0:
                    break
                # A client that gave up while queued, out of fds, ...
                logger.error(f"Accept error: {e}")
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = LineConnection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.read_timeout,
                max_line_length=self.config.max_line_length,
                encoding=self.config.encoding,
            )

            connection_handler(conn)

    def shutdown(self):
        """
        Stop accepting connections.

        Can be called from a signal handler, another thread, or the tick
        callback. Safe to call multiple times.
        """
        if self._running:
            logger.info("Stopping accept loop...")
        self._running = False

    def _cleanup(self):
        """Restore signal handlers and close the listening socket."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Listening socket closed")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the socket is listening.

        Returns:
            True if the server is ready, False on timeout.
        """
        return self._ready_event.wait(timeout)
