"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps a raw client socket with a line-oriented API: the
knock-knock protocol is a conversation of text lines, one message per
line, each ending in "\\n".

=============================================================================
TCP IS A BYTE STREAM, NOT A LINE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A client that types

    Who's there?⏎

might reach us as ANY of these recv() results:

    recv() → b"Who's there?\\n"          (whole line)
    recv() → b"Who'"                      (partial)
    recv() → b"s there?\\r\\n"             (rest, Windows line ending)

So we buffer bytes until we see "\\n", hand back exactly one line, and
keep whatever followed it for the next read_line() call.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ◄────────► WRITING
     │             │                  │
     │             ▼                  │
     └──────────► CLOSING ◄───────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
FAILURES
=============================================================================

Every way the conversation can break surfaces as ConnectionFailure:

    ConnectionClosed  Client hung up (recv() returned b"")
    LineTooLong       Client sent more than max_line_length without "\\n"
    ConnectionFailure Timeout, reset, broken pipe, any other socket error

Callers catch the base class and end the session.

=============================================================================
"""

import socket
import time
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid


logger = logging.getLogger(__name__)

# Longest close() waits for the peer to finish sending
CLOSE_DRAIN_SECONDS = 0.5


class ConnectionFailure(Exception):
    """The line conversation with a client can't continue."""


class ConnectionClosed(ConnectionFailure):
    """The client closed its end of the connection."""


class LineTooLong(ConnectionFailure):
    """The client sent a line longer than the configured limit."""


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    Used for logging and to make close() idempotent.
    """
    NEW = "new"              # Just accepted, nothing exchanged yet
    READING = "reading"      # Waiting for a line from the client
    WRITING = "writing"      # Sending a line to the client
    CLOSING = "closing"      # Shutdown sequence in progress
    CLOSED = "closed"        # Socket released


@dataclass
class LineConnection:
    """
    A client connection that speaks newline-terminated text.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  LineConnection Responsibilities                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. BUFFERED READING                                                 │
    │     └── read_line() returns one line, "\\r" removed, no "\\n"         │
    │     └── Bytes after the newline stay in _buffer                      │
    │                                                                      │
    │  2. FULL WRITES                                                      │
    │     └── send_line() appends "\\n" and uses sendall()                  │
    │                                                                      │
    │  3. FRAMING LIMITS                                                   │
    │     └── Lines over max_line_length raise LineTooLong                 │
    │                                                                      │
    │  4. GRACEFUL CLOSE                                                   │
    │     └── shutdown(SHUT_WR), drain, close()                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Attributes:
        socket: The client socket.
        address: Peer (ip, port) tuple.
        id: Short unique id used in log lines and thread names.
        state: Current connection state.
        lines_received: Lines read from the peer so far.
        lines_sent: Lines written to the peer so far.
    """

    # Required parameters
    socket: socket.socket
    address: tuple

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    lines_received: int = 0
    lines_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 4096
    timeout: Optional[float] = None
    max_line_length: int = 4096
    encoding: str = "utf-8"

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # Accepted sockets inherit the listening socket's timeout on some
        # platforms; reset to blocking, then apply our own.
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the peer IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the peer port."""
        return self.address[1]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_line(self) -> str:
        """
        Read exactly one line from the peer.

        ┌─────────────────────────────────────────────────────────────────┐
        │                     read_line() Flow                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while "\\n" not in buffer:                                     │
        │       recv() → buffer          (b"" means peer closed)           │
        │       buffer too long? → LineTooLong                             │
        │                                                                  │
        │   split buffer at first "\\n"                                    │
        │   keep the rest for next call                                    │
        │   decode, drop "\\r", return                                     │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Returns:
            The line without its terminator and without carriage returns.

        Raises:
            ConnectionClosed: Peer closed the connection.
            LineTooLong: More than max_line_length bytes without a newline.
            ConnectionFailure: Timeout or socket error.
        """
        self.state = ConnectionState.READING

        while b"\n" not in self._buffer:
            if len(self._buffer) > self.max_line_length:
                raise LineTooLong(
                    f"Line exceeds {self.max_line_length} bytes"
                )

            chunk = self._recv()
            if not chunk:
                raise ConnectionClosed("Connection closed by peer")
            self._buffer += chunk

        raw, _, self._buffer = self._buffer.partition(b"\n")
        if len(raw) > self.max_line_length:
            raise LineTooLong(f"Line exceeds {self.max_line_length} bytes")

        line = raw.decode(self.encoding, errors="replace").replace("\r", "")
        self.lines_received += 1
        self.last_activity = time.time()
        logger.debug(f"[{self.id}] <- {line!r}")
        return line

    def _recv(self) -> bytes:
        """
        Receive data from the socket, translating socket errors.

        Returns:
            Received bytes, or b"" if the peer closed the connection.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout as e:
            raise ConnectionFailure("Timed out waiting for client") from e
        except (ConnectionResetError, BrokenPipeError):
            # Abrupt disconnect reads the same as an orderly one
            return b""
        except OSError as e:
            raise ConnectionFailure(f"Receive failed: {e}") from e

        self.last_activity = time.time()
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_line(self, text: str) -> None:
        """
        Send one line to the peer, appending "\\n" if it is missing.

        Raises:
            ConnectionFailure: If the peer is gone or the write fails.
        """
        self.state = ConnectionState.WRITING

        if not text.endswith("\n"):
            text += "\n"

        try:
            # sendall() blocks until ALL bytes are handed to the kernel
            self.socket.sendall(text.encode(self.encoding))
        except socket.timeout as e:
            raise ConnectionFailure("Timed out sending to client") from e
        except OSError as e:
            raise ConnectionFailure(f"Send failed: {e}") from e

        self.lines_sent += 1
        self.last_activity = time.time()
        logger.debug(f"[{self.id}] -> {text[:-1]!r}")

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR): send FIN, the client sees end-of-stream
        2. Drain what the client still sends, for at most CLOSE_DRAIN_SECONDS
        3. close(): release the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        # One deadline for the whole drain, not per recv()
        deadline = time.monotonic() + CLOSE_DRAIN_SECONDS
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass  # socket.timeout is an OSError too

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed after {self.lines_received} lines "
            f"received, {self.lines_sent} sent"
        )

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Context manager entry:

            with conn:
                line = conn.read_line()
            # Connection closed here, even on error
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False
