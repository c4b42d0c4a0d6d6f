"""
CLI for the localbox sandbox server.
"""
import argparse
import asyncio
import sys
import logging
from typing import Optional

import uvicorn

from localbox.config.defaults import get_default_runtime_config, get_default_server_config
from localbox.config.logging import setup_logging

logger = logging.getLogger(__name__)


async def serve_async(
    host: str,
    port: int,
    base_dir: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    grace_period_s: Optional[float] = None,
    log_level: str = "INFO",
) -> None:
    from localbox.api.server import create_app

    config = get_default_runtime_config(base_dir)
    if timeout_ms is not None:
        config.default_timeout_ms = timeout_ms
    if grace_period_s is not None:
        config.grace_period_s = grace_period_s

    app = create_app(config=config)
    logger.info(f"Serving sandboxes from {config.base_dir} on {host}:{port}")

    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level=log_level.lower()))
    try:
        await server.serve()
    except asyncio.CancelledError:
        logger.info("Shutting down...")


def serve(
    host: str,
    port: int,
    base_dir: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    grace_period_s: Optional[float] = None,
    log_level: str = "INFO",
) -> None:
    asyncio.run(serve_async(host, port, base_dir, timeout_ms, grace_period_s, log_level))


def build_parser() -> argparse.ArgumentParser:
    defaults = get_default_server_config()
    parser = argparse.ArgumentParser(
        prog="localbox",
        description="Local sandbox runtime for agent-driven code execution",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Start the sandbox HTTP server")
    serve_parser.add_argument(
        "--host",
        default=defaults["host"],
        help=f"Bind address (default: {defaults['host']})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=defaults["port"],
        help=f"Port to listen on (default: {defaults['port']})",
    )
    serve_parser.add_argument(
        "--base-dir",
        help="Directory holding sandbox roots (default: <tmpdir>/localbox-sandboxes)",
    )
    serve_parser.add_argument(
        "--timeout-ms",
        type=int,
        help="Default sandbox time to live in milliseconds",
    )
    serve_parser.add_argument(
        "--grace-period",
        type=float,
        help="Seconds a finished command stays queryable",
    )
    serve_parser.add_argument(
        "--log-level",
        default=defaults["log_level"],
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Log level (default: {defaults['log_level']})",
    )
    serve_parser.add_argument(
        "--log-file",
        help="Log file path",
    )
    return parser


def main(argv: Optional[list] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, getattr(args, "log_file", None))

    if args.command == "serve":
        serve(
            args.host,
            args.port,
            args.base_dir,
            args.timeout_ms,
            args.grace_period,
            args.log_level,
        )
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
