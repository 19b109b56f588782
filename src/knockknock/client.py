"""
=============================================================================
INTERACTIVE TERMINAL CLIENT
=============================================================================

    python -m knockknock.client                 # 127.0.0.1:8079
    python -m knockknock.client 10.0.0.5        # 10.0.0.5:8079
    python -m knockknock.client 10.0.0.5 9000   # 10.0.0.5:9000

Every server line is printed. When a line carries the input marker, the
marker is hidden and the user types one reply:

    Server: Knock knock!
    Client: Who's there?
    Server: Boo
    Client: Boo who?
    Server: Don't cry, it's only a joke!

The client stops when the server closes the connection, when stdin
ends, or after "I have no more jokes to tell."

=============================================================================
"""

import argparse
import socket
import sys
from typing import List, Optional, TextIO

from .core.connection import LineConnection, ConnectionClosed, ConnectionFailure
from .protocol import messages


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8079


def run_client(
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    connect_timeout: Optional[float] = 10.0,
) -> int:
    """
    Connect to a server and relay the conversation through the terminal.

    Returns:
        Exit status: 0 after a normal end, 1 if the connection failed.
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    try:
        sock = socket.create_connection((host, port), timeout=connect_timeout)
    except OSError as e:
        print(f"Could not connect to {host}:{port}: {e}", file=sys.stderr)
        return 1

    conn = LineConnection(socket=sock, address=(host, port))
    print(f"Connected to {host}:{port}. Type your responses when prompted.", file=stdout)

    with conn:
        while True:
            try:
                line = conn.read_line()
            except ConnectionClosed:
                print("Connection closed by server.", file=stdout)
                break
            except ConnectionFailure as e:
                print(f"Connection error: {e}", file=sys.stderr)
                return 1

            if not messages.expects_input(line):
                print(f"Server: {line}", file=stdout)
                if messages.NO_MORE_JOKES in line:
                    break
                continue

            print(f"Server: {messages.strip_marker(line)}", file=stdout)
            print("Client: ", end="", file=stdout, flush=True)

            reply = stdin.readline()
            if not reply:
                # stdin closed; leave quietly
                break

            try:
                conn.send_line(reply.rstrip("\r\n"))
            except ConnectionFailure as e:
                print(f"Send failed: {e}", file=sys.stderr)
                return 1

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="knockknock-client",
        description="Interactive client for the knock-knock joke server",
    )
    parser.add_argument("host", nargs="?", default=DEFAULT_HOST, help=f"Server address (default: {DEFAULT_HOST})")
    parser.add_argument("port", nargs="?", type=int, default=DEFAULT_PORT, help=f"Server port (default: {DEFAULT_PORT})")

    args = parser.parse_args(argv)

    if not 0 < args.port < 65536:
        print("Port must be in 1..65535", file=sys.stderr)
        return 1

    return run_client(args.host, args.port)


if __name__ == "__main__":
    sys.exit(main())
