"""
Unit tests for the interactive terminal client.
"""

import io

from knockknock.client import run_client, main


class TestRunClient:
    """Tests for run_client() against a live server."""

    def test_full_session(self, start_server, single_joke_catalog):
        srv = start_server(single_joke_catalog)
        stdin = io.StringIO("Who's there?\nBoo who?\nn\n")
        stdout = io.StringIO()

        status = run_client("127.0.0.1", srv.port, stdin=stdin, stdout=stdout)

        output = stdout.getvalue()
        assert status == 0
        assert "Server: Knock knock!\nClient: " in output
        assert "Server: Boo\n" in output
        assert "Server: Don't cry, it's only a joke!" in output
        assert "Server: Would you like to listen to another? (Y/N)" in output
        assert "<input>" not in output
        assert "Connection closed by server." in output

    def test_stops_after_no_more_jokes(self, start_server, single_joke_catalog):
        srv = start_server(single_joke_catalog)
        stdin = io.StringIO("Who's there?\nBoo who?\ny\n")
        stdout = io.StringIO()

        status = run_client("127.0.0.1", srv.port, stdin=stdin, stdout=stdout)

        assert status == 0
        assert stdout.getvalue().rstrip().endswith("Server: I have no more jokes to tell.")

    def test_stdin_eof_ends_quietly(self, start_server, catalog):
        srv = start_server(catalog)
        stdout = io.StringIO()

        assert run_client("127.0.0.1", srv.port, stdin=io.StringIO(""), stdout=stdout) == 0
        assert "Server: Knock knock!" in stdout.getvalue()

    def test_connection_refused(self, free_port, capsys):
        status = run_client("127.0.0.1", free_port, stdin=io.StringIO(""), stdout=io.StringIO())

        assert status == 1
        assert "Could not connect" in capsys.readouterr().err


class TestMain:
    """Tests for the client command line."""

    def test_rejects_bad_port(self, capsys):
        assert main(["127.0.0.1", "0"]) == 1
        assert "Port must be" in capsys.readouterr().err
