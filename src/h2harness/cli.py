"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from h2harness.config import ExecutionContext
from h2harness.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_INTERVENING_FRAMES,
    DEFAULT_PATH,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    DEFAULT_TLS_PORT,
)
from h2harness.exceptions import ConfigurationError
from h2harness.runner import format_report, run
from h2harness.types import ConnectionMode
from h2harness.version import __version__

__all__: list[str] = ["build_context", "build_parser", "main"]

EXIT_ALL_PASSED = 0
EXIT_NOT_ALL_PASSED = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(prog="h2harness", description="HTTP/2 conformance test harness")
    parser.add_argument("--host", default=DEFAULT_HOST, help=f"target host (default: {DEFAULT_HOST})")
    parser.add_argument(
        "-p", "--port", type=int, help=f"target port (default: {DEFAULT_PORT}, or {DEFAULT_TLS_PORT} with --tls)"
    )
    parser.add_argument(
        "-o", "--timeout", type=float, default=DEFAULT_TIMEOUT, help="seconds to wait for a response"
    )
    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=DEFAULT_CONNECT_TIMEOUT,
        help="seconds to wait for the connection to open",
    )
    parser.add_argument("--path", default=DEFAULT_PATH, help="request path for HEADERS and the h2c upgrade")
    parser.add_argument(
        "--max-intervening-frames",
        type=int,
        default=DEFAULT_MAX_INTERVENING_FRAMES,
        help="non-decisive frames tolerated while waiting for a response",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-t", "--tls", action="store_true", help="connect over TLS negotiating h2 via ALPN")
    mode.add_argument("--upgrade", action="store_true", help="start in HTTP/1.1 and upgrade to h2c")

    parser.add_argument("--ca-certs", help="verify the server certificate against this CA bundle")
    parser.add_argument("--server-name", help="TLS server name indication, defaults to the host")
    parser.add_argument("-s", "--section", help="run only the given section, e.g. 6.5.2")
    parser.add_argument("-v", "--verbose", action="store_true", help="increase logging verbosity")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_context(*, args: argparse.Namespace) -> ExecutionContext:
    """Translate parsed arguments into an execution context."""
    if args.tls:
        mode = ConnectionMode.TLS
    elif args.upgrade:
        mode = ConnectionMode.UPGRADE
    else:
        mode = ConnectionMode.PRIOR_KNOWLEDGE

    port = args.port
    if port is None:
        port = DEFAULT_TLS_PORT if mode == ConnectionMode.TLS else DEFAULT_PORT

    return ExecutionContext(
        host=args.host,
        port=port,
        mode=mode,
        timeout=args.timeout,
        connect_timeout=args.connect_timeout,
        path=args.path,
        verify_mode="CERT_REQUIRED" if args.ca_certs else "CERT_NONE",
        ca_certs=args.ca_certs,
        max_intervening_frames=args.max_intervening_frames,
        server_name=args.server_name,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the harness and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=logging.DEBUG if args.verbose else DEFAULT_LOG_LEVEL,
    )

    try:
        context = build_context(args=args)
        report = asyncio.run(run(context=context, section=args.section))
    except ConfigurationError as e:
        print(f"h2harness: {e.message}", file=sys.stderr)
        return EXIT_USAGE

    for line in format_report(report=report):
        print(line)

    return EXIT_ALL_PASSED if report.summary().all_passed else EXIT_NOT_ALL_PASSED
