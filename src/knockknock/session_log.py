"""
=============================================================================
SESSION LOG
=============================================================================

One structured log record per finished session, the way an HTTP server
writes one access-log line per request:

    127.0.0.1:51234 [a1b2c3d4] declined jokes=2/3 corrections=1 restarts=1 12873.40ms

or, with log_format="json":

    {"session_id": "a1b2c3d4", "client_ip": "127.0.0.1", ...}

Records go to the "knockknock.sessions" logger so they can be routed
separately from lifecycle messages:

    logging.getLogger("knockknock.sessions").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass, asdict

from .core.connection import LineConnection
from .protocol.session import SessionState


logger = logging.getLogger("knockknock.sessions")


@dataclass
class SessionLog:
    """
    Structured log entry for one session.

    =========================================================================
    FIELDS
    =========================================================================

    session_id:      Connection id (also the session thread's name suffix)
    client_ip:       Peer address
    client_port:     Peer port
    outcome:         declined / exhausted / disconnected / error
    jokes_told:      Jokes selected for this client (including abandoned)
    jokes_completed: Jokes that reached the punchline
    corrections:     Wrong replies
    restarts:        Dialogues restarted after a wrong "<setup> who?"
    duration_ms:     Connection lifetime
    timestamp:       When the session ended

    =========================================================================
    """

    session_id: str
    client_ip: str
    client_port: int
    outcome: str
    jokes_told: int
    jokes_completed: int
    corrections: int
    restarts: int
    duration_ms: float
    timestamp: str

    @classmethod
    def from_session(cls, conn: LineConnection, session: SessionState, outcome: str) -> "SessionLog":
        return cls(
            session_id=conn.id,
            client_ip=conn.client_ip,
            client_port=conn.client_port,
            outcome=outcome,
            jokes_told=len(session.told_jokes),
            jokes_completed=session.jokes_completed,
            corrections=session.corrections,
            restarts=session.restarts,
            duration_ms=conn.age * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f"{self.client_ip}:{self.client_port} [{self.session_id}] {self.outcome} "
            f"jokes={self.jokes_completed}/{self.jokes_told} "
            f"corrections={self.corrections} restarts={self.restarts} "
            f"{self.duration_ms:.2f}ms"
        )


def log_session(entry: SessionLog, log_format: str = "text", level: int = logging.INFO) -> None:
    """Emit a session record in the configured format."""
    if log_format == "json":
        logger.log(level, json.dumps(entry.to_dict()))
    else:
        logger.log(level, entry.to_text())
