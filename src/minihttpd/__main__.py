"""
=============================================================================
MINIHTTPD CLI ENTRY POINT
=============================================================================

    # Serve the current directory on 0.0.0.0:8000
    python -m minihttpd

    # Serve ./public on localhost:3000 with 8 workers
    python -m minihttpd --host 127.0.0.1 --port 3000 --workers 8 --root ./public

    # Answer 200 to every GET, 405 to everything else
    python -m minihttpd --handler get-only

Every option also has an environment variable (see ServerConfig.from_env);
command-line arguments win.

=============================================================================
"""

import argparse
import logging
import sys

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, POLICIES, ServerConfig
from .handlers import FileHandler, GetOnlyHandler
from .server import HTTPServer


HANDLERS = ("file", "get-only")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttpd",
        description="Minimal one-request-per-connection HTTP/1.x server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttpd                       # Serve . on 0.0.0.0:8000
  python -m minihttpd --port 3000           # Custom port
  python -m minihttpd --root ./public       # Serve another directory
  python -m minihttpd --workers 8           # 8 worker threads
  python -m minihttpd --policy thread       # One thread per connection
  python -m minihttpd --handler get-only    # 200 for GET, 405 otherwise
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 0.0.0.0)"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8000)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads for the pool policy (default: 4)"
    )

    parser.add_argument(
        "--policy",
        choices=POLICIES,
        default=None,
        help="Dispatch policy (default: pool)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # HANDLER ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Directory to serve (default: current directory)"
    )

    parser.add_argument(
        "--handler",
        choices=HANDLERS,
        default="file",
        help="Request handler (default: file)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=None,
        help="Access log format (default: text)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttpd {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then any argument given on the command line."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_concurrency = args.workers
    if args.policy is not None:
        config.dispatch_policy = args.policy
    if args.root is not None:
        config.root_dir = args.root
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
        setup_logging(config.log_level)

        if args.handler == "get-only":
            handler = GetOnlyHandler()
        else:
            handler = FileHandler(config.root_dir)

        server = HTTPServer(config, handler=handler)
        server.run()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
