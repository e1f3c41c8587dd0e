"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m hackapi [options]
    hackapi [options]

    --host, -H        Bind address (default: 127.0.0.1)
    --port, -p        Port (default: 8000)
    --workers, -w     Worker threads; the pool may grow to twice this
    --spec            OpenAPI document to serve instead of the shipped one
    --ui-dir          Swagger UI directory to serve instead of the shipped one
    --log-level, -l   DEBUG, INFO, WARNING or ERROR
    --log-format      text or json access log lines
    --version, -v     Print the version and exit

Defaults come from the HTTP_* environment variables (see config.py), so

    HTTP_PORT=9000 hackapi --log-level DEBUG

listens on 9000. A flag given on the command line always wins.

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .app import create_app
from .config import LOG_FORMATS, ServerConfig


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hackapi",
        description="Hackathon Boilerplate API: Swagger docs and a hello endpoint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host}, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help=f"Number of worker threads (default: {defaults.min_workers}, max will be 2x this)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # ASSETS
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--spec",
        default=defaults.spec_path,
        help="OpenAPI document to serve at /swagger/doc.json",
    )
    parser.add_argument(
        "--ui-dir",
        default=defaults.swagger_ui_dir,
        help="Swagger UI directory to serve under /swagger/",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help=f"Access log format (default: {defaults.log_format})",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"hackapi {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace, defaults: ServerConfig) -> ServerConfig:
    """Overlay parsed CLI arguments on the environment-derived defaults."""
    if args.workers is not None:
        min_workers, max_workers = args.workers, args.workers * 2
    else:
        min_workers, max_workers = defaults.min_workers, defaults.max_workers

    return ServerConfig(
        host=args.host,
        port=args.port,
        timeout=defaults.timeout,
        min_workers=min_workers,
        max_workers=max_workers,
        spec_path=args.spec,
        swagger_ui_dir=args.ui_dir,
        cache_max_age=defaults.cache_max_age,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 1

    args = build_parser(defaults).parse_args(argv)

    try:
        server = create_app(config_from_args(args, defaults))
        server.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
