"""
Unit tests for per-session log records.
"""

import json
import logging
import socket

from knockknock.core import LineConnection
from knockknock.protocol import SessionState
from knockknock.session_log import SessionLog, log_session


def make_entry(**overrides) -> SessionLog:
    fields = dict(
        session_id="a1b2c3d4",
        client_ip="127.0.0.1",
        client_port=51234,
        outcome="declined",
        jokes_told=3,
        jokes_completed=2,
        corrections=1,
        restarts=1,
        duration_ms=1234.5678,
        timestamp="19/Oct/2026:10:00:00 +0000",
    )
    fields.update(overrides)
    return SessionLog(**fields)


class TestSessionLog:
    """Tests for SessionLog formatting."""

    def test_to_text(self):
        line = make_entry().to_text()

        assert line == (
            "127.0.0.1:51234 [a1b2c3d4] declined jokes=2/3 "
            "corrections=1 restarts=1 1234.57ms"
        )

    def test_to_dict_rounds_duration(self):
        data = make_entry().to_dict()

        assert data["duration_ms"] == 1234.57
        assert data["outcome"] == "declined"
        assert data["session_id"] == "a1b2c3d4"

    def test_from_session(self):
        ours, theirs = socket.socketpair()
        try:
            conn = LineConnection(socket=ours, address=("10.0.0.7", 40000))
            session = SessionState()
            session.told_jokes.update({0, 2})
            session.jokes_completed = 1
            session.corrections = 3
            session.restarts = 1

            entry = SessionLog.from_session(conn, session, "exhausted")
        finally:
            ours.close()
            theirs.close()

        assert entry.session_id == conn.id
        assert entry.client_ip == "10.0.0.7"
        assert entry.client_port == 40000
        assert entry.jokes_told == 2
        assert entry.jokes_completed == 1
        assert entry.corrections == 3
        assert entry.outcome == "exhausted"
        assert entry.duration_ms >= 0


class TestLogSession:
    """Tests for log_session()."""

    def test_text_format(self, caplog):
        with caplog.at_level(logging.INFO, logger="knockknock.sessions"):
            log_session(make_entry())

        assert caplog.records[-1].name == "knockknock.sessions"
        assert "[a1b2c3d4] declined" in caplog.records[-1].getMessage()

    def test_json_format(self, caplog):
        with caplog.at_level(logging.INFO, logger="knockknock.sessions"):
            log_session(make_entry(outcome="disconnected"), log_format="json")

        data = json.loads(caplog.records[-1].getMessage())
        assert data["outcome"] == "disconnected"
        assert data["client_port"] == 51234
