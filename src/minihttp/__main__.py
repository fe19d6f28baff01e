"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    # Serve the current directory on 0.0.0.0:4221
    python -m minihttp

    # Serve uploads from /tmp/data
    python -m minihttp --directory /tmp/data

    # Local only, ephemeral port, debug logging
    python -m minihttp --host 127.0.0.1 --port 0 --log-level DEBUG

Defaults come from ServerConfig.from_env() (MINIHTTP_* variables), so a
command-line flag always wins over the environment.

Installed as the ``minihttp`` console script as well.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import HTTPServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttp",
        description="Minimal HTTP/1.1 server over raw sockets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttp --directory /tmp/data   # GET/POST /files/<name> in /tmp/data
  python -m minihttp --port 8080             # Custom port
  python -m minihttp --log-format json       # JSON access log
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Address to bind (default: {defaults.host})",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on, 0 for any free port (default: {defaults.port})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--directory", "-d",
        default=defaults.directory,
        help="Directory served under /files/ (default: current directory)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=defaults.max_workers,
        help=f"Maximum worker threads (default: {defaults.max_workers})",
    )
    parser.add_argument(
        "--no-keep-alive",
        action="store_true",
        help="Close every connection after one response",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttp {__version__}",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse arguments, build the server, and run it until interrupted.

    Returns:
        Process exit status.
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"minihttp: invalid environment: {e}", file=sys.stderr)
        return 2

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        min_workers=min(defaults.min_workers, max(args.workers, 1)),
        max_workers=args.workers,
        timeout=defaults.timeout,
        keep_alive=not args.no_keep_alive,
        directory=args.directory,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        server = HTTPServer(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except OSError as e:
        print(f"minihttp: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
