"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the joke protocol.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Owns the listening socket                                        │
    │  • Runs the accept() loop in the main thread                        │
    │  • Ticks once per poll interval while nobody connects               │
    │  • Stops on SIGTERM / SIGINT                                        │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One LineConnection per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                        LINE CONNECTION                               │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Buffers the TCP byte stream into text lines                      │
    │  • Raises ConnectionFailure when the client goes away               │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        SESSION TRACKER                               │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Active session count shared by all threads                       │
    │  • Idle timer advanced by the accept loop's ticks                   │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import (
    LineConnection,
    ConnectionState,
    ConnectionFailure,
    ConnectionClosed,
    LineTooLong,
)
from .tracker import SessionTracker

__all__ = [
    "SocketServer",       # Listening socket + accept loop
    "LineConnection",     # Line-oriented client socket wrapper
    "ConnectionState",    # Connection lifecycle states
    "ConnectionFailure",  # Base error for a broken conversation
    "ConnectionClosed",   # Peer hung up
    "LineTooLong",        # Framing violation
    "SessionTracker",     # Shared active count + idle timer
]
