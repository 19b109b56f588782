"""
Wire-level text of the knock-knock protocol.

Every line the server sends comes from this module. A line that expects
an answer carries INPUT_MARKER; lines without it are informational.

    Server: Knock knock! <input>
    Client: Who's there?
    Server: Lettuce <input>
    Client: Lettuce who?
    Server: Lettuce in, it's cold out here!
    Server: Would you like to listen to another? (Y/N) <input>
    Client: N

Replies are compared case-insensitively after trimming whitespace. There
is no fuzzy matching: "Who there?" is wrong, "  WHO'S THERE?  " is right.
"""

INPUT_MARKER = "<input>"

WHO_IS_THERE = "Who's there?"

KNOCK_PROMPT = f"Knock knock! {INPUT_MARKER}"
ANOTHER_PROMPT = f"Would you like to listen to another? (Y/N) {INPUT_MARKER}"
ASK_YES_OR_NO = "Please reply with Y or N."
NO_MORE_JOKES = "I have no more jokes to tell."

YES_REPLIES = ("y", "yes")
NO_REPLIES = ("n", "no")


def setup_prompt(setup: str) -> str:
    return f"{setup} {INPUT_MARKER}"


def expected_setup_reply(setup: str) -> str:
    return f"{setup} who?"


def correction(expected: str) -> str:
    """The line sent after a wrong reply, naming the exact expected text."""
    return f'You are supposed to say, "{expected}". Let\'s try again.'


def normalize(text: str) -> str:
    return text.strip().lower()


def replies_match(reply: str, expected: str) -> bool:
    """Case-insensitive, whitespace-trimmed, otherwise exact comparison."""
    return normalize(reply) == normalize(expected)


def is_yes(reply: str) -> bool:
    return normalize(reply) in YES_REPLIES


def is_no(reply: str) -> bool:
    return normalize(reply) in NO_REPLIES


def expects_input(line: str) -> bool:
    """True if the server is waiting for one line of reply."""
    return INPUT_MARKER in line


def strip_marker(line: str) -> str:
    """Remove the input marker and the whitespace it leaves behind."""
    return line.replace(INPUT_MARKER, "", 1).rstrip()
