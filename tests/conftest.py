"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Callable, Generator, List, Optional, Union

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from knockknock import KnockKnockServer, ServerConfig, JokeCatalog, seed_catalog
from knockknock.core import ConnectionClosed, ConnectionFailure
from knockknock.protocol import messages


SAMPLE_JOKES = [
    ("Lettuce", "Lettuce in, it's cold out here!"),
    ("Boo", "Don't cry, it's only a joke!"),
    ("Olive", "Olive you and I miss you!"),
]


# =============================================================================
# CATALOG FIXTURES
# =============================================================================

@pytest.fixture
def catalog() -> JokeCatalog:
    """Three-joke catalog."""
    return JokeCatalog.from_pairs(SAMPLE_JOKES)


@pytest.fixture
def single_joke_catalog() -> JokeCatalog:
    """Catalog with only the "Boo" joke."""
    return JokeCatalog.from_pairs([("Boo", "Don't cry, it's only a joke!")])


@pytest.fixture
def jokes_db(tmp_path) -> str:
    """SQLite database seeded with SAMPLE_JOKES."""
    path = str(tmp_path / "jokes.db")
    seed_catalog(path, SAMPLE_JOKES)
    return path


# =============================================================================
# SCRIPTED CONNECTION (protocol unit tests)
# =============================================================================

Reply = Union[str, Callable[[str], str]]


def answer_setup(prompt: str) -> str:
    """Correct reply to a setup prompt: "<setup> who?"."""
    return f"{messages.strip_marker(prompt)} who?"


def misanswer_setup(prompt: str) -> str:
    """Almost-correct reply to a setup prompt."""
    return f"{messages.strip_marker(prompt)} whoo?"


class FakeConnection:
    """
    Stands in for LineConnection.

    Each reply is either a string or a callable that receives the last
    line the server sent. When the script runs out, read_line() raises
    ConnectionClosed, like a client hanging up.
    """

    def __init__(self, replies: List[Reply] = (), fail_on_send: Optional[int] = None):
        self.id = "fake0001"
        self.sent: List[str] = []
        self._replies = list(replies)
        self._fail_on_send = fail_on_send

    def send_line(self, text: str) -> None:
        if self._fail_on_send is not None and len(self.sent) >= self._fail_on_send:
            raise ConnectionFailure("Send failed: broken pipe")
        self.sent.append(text)

    def read_line(self) -> str:
        if not self._replies:
            raise ConnectionClosed("Connection closed by peer")
        reply = self._replies.pop(0)
        if callable(reply):
            reply = reply(self.sent[-1])
        return reply

    @property
    def prompts(self) -> List[str]:
        """Sent lines that asked for input."""
        return [line for line in self.sent if messages.expects_input(line)]


# =============================================================================
# NETWORK HELPERS
# =============================================================================

@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class LineClient:
    """Minimal blocking line client for talking to a test server."""

    def __init__(self, port: int, timeout: float = 5.0):
        self.sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
        self._file = self.sock.makefile("rb")

    def read_line(self) -> str:
        raw = self._file.readline()
        if not raw:
            raise EOFError("server closed the connection")
        return raw.decode("utf-8").rstrip("\r\n")

    def read_until_prompt(self) -> List[str]:
        """Read lines up to and including the next one with the input marker."""
        lines = []
        while True:
            line = self.read_line()
            lines.append(line)
            if messages.expects_input(line):
                return lines

    def send(self, text: str) -> None:
        self.sock.sendall((text + "\n").encode("utf-8"))

    def is_closed_by_server(self) -> bool:
        """True if the next read hits end-of-stream."""
        return self._file.readline() == b""

    def close(self) -> None:
        self._file.close()
        self.sock.close()

    def play_happy_joke(self) -> str:
        """Answer one full joke correctly. Returns the punchline."""
        prompt = self.read_until_prompt()[-1]
        assert prompt == messages.KNOCK_PROMPT
        self.send("Who's there?")
        prompt = self.read_until_prompt()[-1]
        self.send(answer_setup(prompt))
        return self.read_line()


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.02) -> bool:
    """Poll until predicate() is true or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def connection_refused(port: int) -> bool:
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=1.0):
            return False
    except ConnectionRefusedError:
        return True


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: KnockKnockServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def join(self, timeout: float) -> bool:
        """Wait for run() to return. True if it did."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def stop(self):
        """Stop the server."""
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


def make_config(**overrides) -> ServerConfig:
    """Fast-ticking config for tests."""
    options = dict(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        poll_interval=0.05,
        idle_timeout=60.0,
        read_timeout=5.0,
        drain_timeout=5.0,
        log_level="WARNING",
    )
    options.update(overrides)
    return ServerConfig(**options)


@pytest.fixture
def start_server() -> Generator[Callable[..., TestServer], None, None]:
    """
    Factory fixture: start_server(catalog, **config_overrides).

    Every server started is stopped at teardown.
    """
    started: List[TestServer] = []

    def _start(catalog: JokeCatalog, **overrides) -> TestServer:
        test_srv = TestServer(KnockKnockServer(catalog, make_config(**overrides)))
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield _start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def clients() -> Generator[Callable[[int], LineClient], None, None]:
    """Factory fixture for LineClients that are closed at teardown."""
    opened: List[LineClient] = []

    def _connect(port: int) -> LineClient:
        client = LineClient(port)
        opened.append(client)
        return client

    yield _connect

    for client in opened:
        try:
            client.close()
        except OSError:
            pass
