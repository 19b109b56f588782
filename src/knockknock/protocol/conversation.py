"""
Connection loop: joke after joke until the client has had enough.

    ┌────────────────────────────────────────────────────────────────┐
    │                                                                │
    │   ┌──► JokeDialogue.run()                                      │
    │   │        │                                                   │
    │   │        ├── EXHAUSTED → "I have no more jokes to tell." → end│
    │   │        │                                                   │
    │   │        └── COMPLETED                                       │
    │   │               │                                            │
    │   │               ▼                                            │
    │   │        "Would you like to listen to another? (Y/N)"        │
    │   │               │                                            │
    │   └──── Y / yes ──┤                                            │
    │                   ├── N / no → end                             │
    │                   └── other → "Please reply with Y or N." ─┐   │
    │                          ▲                                 │   │
    │                          └─────────────────────────────────┘   │
    │                                                                │
    │   ConnectionFailure anywhere → end (client is gone)            │
    │                                                                │
    └────────────────────────────────────────────────────────────────┘

The loop never closes the socket; whoever owns the connection does.
"""

import logging
from enum import Enum

from ..catalog import JokeCatalog
from ..core.connection import LineConnection, ConnectionFailure
from . import messages
from .dialogue import JokeDialogue, DialogueOutcome
from .session import SessionState


logger = logging.getLogger(__name__)


class SessionEnd(Enum):
    """Why a session stopped."""
    DECLINED = "declined"          # Client answered N
    EXHAUSTED = "exhausted"        # Every joke told
    DISCONNECTED = "disconnected"  # Read/write failed


class ConnectionLoop:
    """
    Runs dialogue rounds and the "another one?" prompt for one client.

    Usage:
        end = ConnectionLoop(catalog, SessionState(), conn).run()
    """

    def __init__(self, catalog: JokeCatalog, session: SessionState, conn: LineConnection):
        self.catalog = catalog
        self.session = session
        self.conn = conn

    def run(self) -> SessionEnd:
        """
        Talk to the client until the session ends.

        Connection failures are logged and reported as DISCONNECTED;
        nothing is raised for them.
        """
        try:
            while True:
                outcome = JokeDialogue(self.catalog, self.session, self.conn).run()

                if outcome is DialogueOutcome.EXHAUSTED:
                    self.conn.send_line(messages.NO_MORE_JOKES)
                    return SessionEnd.EXHAUSTED

                if not self._wants_another():
                    return SessionEnd.DECLINED

        except ConnectionFailure as e:
            logger.info(f"[{self.conn.id}] Connection lost: {e}")
            return SessionEnd.DISCONNECTED

    def _wants_another(self) -> bool:
        """Ask until the client gives a Y or N answer."""
        while True:
            self.conn.send_line(messages.ANOTHER_PROMPT)
            reply = self.conn.read_line()

            if messages.is_yes(reply):
                return True
            if messages.is_no(reply):
                return False

            self.conn.send_line(messages.ASK_YES_OR_NO)
