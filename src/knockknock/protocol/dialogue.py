"""
=============================================================================
JOKE DIALOGUE - THE PROTOCOL STATE MACHINE
=============================================================================

One dialogue tells one joke, from "Knock knock!" to the punchline.

=============================================================================
STATES
=============================================================================

    ┌──────────┐   untold joke    ┌───────────────┐  "Who's there?"  ┌───────────────┐
    │  SELECT  │ ───────────────► │ AWAIT_KNOCK   │ ───────────────► │ AWAIT_SETUP   │
    └──────────┘                  │    _ACK       │                  │    _ACK       │
       │   ▲                      └───────────────┘                  └───────────────┘
       │   │                        │        ▲                         │          │
       │   │                        └────────┘                         │          │
       │   │                  wrong: correct + knock again             │          │
       │   │                  (same joke)                              │          │
       │   │                                                           │          │
       │   └───────────────────────────────────────────────────────────┘          │
       │                  wrong "<setup> who?": correct + pick a NEW joke          │
       │                                                                          │
       │ nothing left                                         "<setup> who?"      │
       ▼                                                                          ▼
    EXHAUSTED                                                           PUNCHLINE → COMPLETED

=============================================================================
RULES THAT ARE EASY TO GET WRONG
=============================================================================

1. A joke is marked told the moment it is SELECTED, before the client
   has heard anything. A restart never offers it again.

2. A wrong knock reply retries the SAME joke, forever if need be.

3. A wrong setup reply throws the joke away and goes back to SELECT.
   This is a loop, not recursion, so a client that always gets it
   wrong costs a catalog's worth of iterations, not stack frames.

4. Broken sockets are not outcomes: ConnectionFailure propagates to
   the caller, which is how "client left" differs from "no jokes left".

=============================================================================
"""

import logging
from enum import Enum

from ..catalog import JokeCatalog, JokeRecord
from ..core.connection import LineConnection
from . import messages
from .session import SessionState


logger = logging.getLogger(__name__)


class DialogueState(Enum):
    """Where a dialogue currently is."""
    SELECT = "select"
    AWAIT_KNOCK_ACK = "await_knock_ack"
    AWAIT_SETUP_ACK = "await_setup_ack"
    PUNCHLINE = "punchline"
    DONE = "done"


class DialogueOutcome(Enum):
    """How a dialogue ended (connection failures raise instead)."""
    COMPLETED = "completed"    # Punchline delivered
    EXHAUSTED = "exhausted"    # No untold joke was left to start with


class JokeDialogue:
    """
    Drives one knock-knock exchange over a connection.

    Usage:
        outcome = JokeDialogue(catalog, session, conn).run()
    """

    def __init__(self, catalog: JokeCatalog, session: SessionState, conn: LineConnection):
        self.catalog = catalog
        self.session = session
        self.conn = conn

        self.state = DialogueState.SELECT
        self.current_index = None

    @property
    def current_joke(self) -> JokeRecord:
        return self.catalog[self.current_index]

    def run(self) -> DialogueOutcome:
        """
        Play the dialogue to the end.

        Returns:
            COMPLETED after the punchline, EXHAUSTED if this client has
            heard every joke already.

        Raises:
            ConnectionFailure: If reading or writing a line fails.
        """
        while True:
            index = self.session.choose_joke(len(self.catalog))
            if index is None:
                self.state = DialogueState.DONE
                return DialogueOutcome.EXHAUSTED

            self.current_index = index
            logger.debug(f"[{self.conn.id}] Telling joke #{index}: {self.current_joke.setup!r}")

            self._await_knock_ack()

            if self._await_setup_ack():
                break

            # Wrong "<setup> who?": pick another joke and start over
            self.session.restarts += 1

        self.state = DialogueState.PUNCHLINE
        self.conn.send_line(self.current_joke.punchline)

        self.session.jokes_completed += 1
        self.state = DialogueState.DONE
        return DialogueOutcome.COMPLETED

    def _await_knock_ack(self) -> None:
        """Knock until the client answers "Who's there?"."""
        self.state = DialogueState.AWAIT_KNOCK_ACK
        self.conn.send_line(messages.KNOCK_PROMPT)

        while not messages.replies_match(self.conn.read_line(), messages.WHO_IS_THERE):
            self.session.corrections += 1
            self.conn.send_line(messages.correction(messages.WHO_IS_THERE))
            self.conn.send_line(messages.KNOCK_PROMPT)

    def _await_setup_ack(self) -> bool:
        """
        Give the setup and check for "<setup> who?".

        Returns:
            True if the client answered correctly, False after sending
            the correction (caller restarts with a new joke).
        """
        self.state = DialogueState.AWAIT_SETUP_ACK
        setup = self.current_joke.setup
        expected = messages.expected_setup_reply(setup)

        self.conn.send_line(messages.setup_prompt(setup))
        if messages.replies_match(self.conn.read_line(), expected):
            return True

        self.session.corrections += 1
        self.conn.send_line(messages.correction(expected))
        return False
