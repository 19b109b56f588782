"""
=============================================================================
KNOCK-KNOCK PROTOCOL
=============================================================================

Everything that decides WHAT is said on a connection, independent of
sockets and threads:

    messages.py       Exact wire text and reply matching
    session.py        SessionState - which jokes this client has heard
    dialogue.py       JokeDialogue - one joke, knock to punchline
    conversation.py   ConnectionLoop - joke after joke, Y/N prompt

The protocol classes only need an object with read_line(), send_line()
and an id, so they can be driven by a LineConnection in production or a
scripted fake in tests.

=============================================================================
"""

from .session import SessionState
from .dialogue import JokeDialogue, DialogueOutcome, DialogueState
from .conversation import ConnectionLoop, SessionEnd

__all__ = [
    "SessionState",
    "JokeDialogue",
    "DialogueOutcome",
    "DialogueState",
    "ConnectionLoop",
    "SessionEnd",
]
