from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Iterable
from dataclasses import asdict
from pathlib import Path
from typing import Any, TextIO

import structlog

from linkharvest.domain.entities.streams import Resolution, ResolutionRequest
from linkharvest.domain.exceptions import FetchError, UnsupportedUrlError
from linkharvest.infrastructure.composition import resolver_session
from linkharvest.infrastructure.config import AppConfig, load_config
from linkharvest.infrastructure.logging.setup import configure_logging

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FETCH_FAILED = 1
EXIT_UNSUPPORTED = 2


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="linkharvest",
        description="Resolve a hosting page URL into direct stream links.",
    )
    parser.add_argument("url", help="Page URL to resolve.")
    parser.add_argument(
        "--referer",
        default=None,
        help="Referer the URL was found on.",
    )

    # Config wiring flags (no business logic)
    parser.add_argument(
        "--config",
        default=None,
        help="Path to YAML config file.",
    )
    parser.add_argument(
        "--dotenv",
        default=None,
        help="Path to .env file.",
    )
    parser.add_argument(
        "--timeout-ms",
        default=None,
        type=int,
        help="Override per-fetch timeout.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )

    return parser.parse_args(argv)


def write_resolution(resolution: Resolution, out: TextIO) -> None:
    """Print one JSON object per stream, then one per subtitle."""
    for stream in resolution.iter_streams():
        out.write(json.dumps({"kind": "stream", **asdict(stream)}) + "\n")
    for subtitle in resolution.iter_subtitles():
        out.write(json.dumps({"kind": "subtitle", **asdict(subtitle)}) + "\n")


async def _run(config: AppConfig, request: ResolutionRequest) -> Resolution:
    async with resolver_session(config.resolver) as use_case:
        return await use_case.execute(request)


def start(argv: Iterable[str] | None = None, out: TextIO | None = None) -> int:
    """
    Process entrypoint.

    Loads config exactly once, resolves one URL and prints JSON lines.
    Returns the process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]
    out = out or sys.stdout

    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    dotenv_path = Path(args.dotenv) if args.dotenv else None

    cli_overrides: dict[str, Any] = {}
    if args.timeout_ms is not None:
        cli_overrides["resolver_timeout_ms"] = args.timeout_ms
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=config_path,
        dotenv_path=dotenv_path,
        cli_overrides=cli_overrides,
    )

    configure_logging(config)

    request = ResolutionRequest(page_url=args.url, referer=args.referer)
    try:
        resolution = asyncio.run(_run(config, request))
    except UnsupportedUrlError as exc:
        log.error("cli_unsupported_url", url=exc.url)
        return EXIT_UNSUPPORTED
    except FetchError as exc:
        log.error("cli_fetch_failed", url=exc.url, reason=exc.reason)
        return EXIT_FETCH_FAILED

    write_resolution(resolution, out)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(start())
