"""
=============================================================================
KNOCK-KNOCK SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (127.0.0.1:8079, jokes.db)
    python -m knockknock

    # Create jokes.db with the built-in jokes first
    python -m knockknock --seed

    # Listen on all interfaces, custom database
    python -m knockknock --host 0.0.0.0 --db /srv/jokes.db

Exit status:
    0  Server stopped after idle timeout or Ctrl+C / SIGTERM
    1  Bad configuration, unreadable or empty joke database,
       or the port could not be bound

=============================================================================
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .catalog import (
    load_catalog,
    seed_catalog,
    CatalogLoadError,
    EmptyCatalogError,
)
from .config import ServerConfig, LOG_FORMATS
from .server import KnockKnockServer, setup_logging


logger = logging.getLogger("knockknock")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="knockknock-server",
        description="Multi-client knock-knock joke server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m knockknock                      # Run with defaults
  python -m knockknock --seed               # Populate jokes.db, then run
  python -m knockknock --port 9000          # Custom port
  python -m knockknock --idle-timeout 60    # Stay up longer when idle
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────
    # Defaults are None so that unset flags fall back to KNOCK_* env vars.

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8079)"
    )

    parser.add_argument(
        "--backlog",
        type=int,
        default=None,
        help="Pending connection queue size (default: 10)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--idle-timeout",
        type=float,
        default=None,
        help="Seconds without clients before shutting down (default: 10)"
    )

    parser.add_argument(
        "--read-timeout",
        type=float,
        default=None,
        help="Seconds to wait for each client reply (default: wait forever)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CATALOG ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--db", "-d",
        default=None,
        help="SQLite joke database (default: jokes.db)"
    )

    parser.add_argument(
        "--seed",
        action="store_true",
        help="Fill an empty or missing database with the built-in jokes first"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Session log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"knockknock {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment/defaults first, then any flag that was given."""
    config = ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "backlog": args.backlog,
        "idle_timeout": args.idle_timeout,
        "read_timeout": args.read_timeout,
        "db_path": args.db,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def print_startup_banner(server: KnockKnockServer) -> None:
    print()
    print(f"  Knock-knock server on {server.config.host}:{server.config.port}")
    print(f"  {len(server.catalog)} jokes loaded, idle shutdown after {server.config.idle_timeout:g}s")
    print("  Press Ctrl+C to stop the server gracefully.")
    print()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level)

    # =========================================================================
    # LOAD JOKES
    # =========================================================================

    try:
        if args.seed:
            seed_catalog(config.db_path, only_if_empty=True)
        catalog = load_catalog(config.db_path).require_jokes()
    except EmptyCatalogError as e:
        logger.error(f"{e}: {config.db_path}")
        return 1
    except CatalogLoadError as e:
        logger.error(str(e))
        return 1

    # =========================================================================
    # RUN SERVER
    # =========================================================================

    server = KnockKnockServer(catalog, config)

    print_startup_banner(server)
    try:
        server.run()
    except OSError as e:
        logger.error(f"Server failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
