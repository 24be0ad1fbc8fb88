"""Shared CLI infrastructure for dcsget."""

import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import dcsclient
from dcsclient.amanda import DCSClient
from dcsclient.types import DCSValue

# Exit codes
EXIT_OK = 0
EXIT_QUERY_ERROR = 1
EXIT_USAGE_ERROR = 2


def base_parser(description: str) -> argparse.ArgumentParser:
    """Create ArgumentParser with the connection flags shared by CLI tools."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-H", "--host", default=None, help="archive server host (default: $DCS_HOST)")
    parser.add_argument("-P", "--port", type=int, default=None, help="archive server port (default: 4242)")
    parser.add_argument("--timeout", type=float, default=None, help="poll/connect timeout in seconds (default: 5.0)")
    parser.add_argument("--retries", type=int, default=None, help="connect/transfer attempts (default: 3)")
    parser.add_argument("--split", type=int, default=None, help="names per batched request (default: 100)")
    parser.add_argument(
        "--format", dest="output_format", choices=("text", "json"), default="text", help="output format"
    )
    parser.add_argument("-t", "--terse", action="store_true", help="terse output (bare values)")
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose output (debug logging)")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )


def make_client(args) -> DCSClient:
    """Create a DCSClient from parsed args, falling back to configuration/env."""
    return dcsclient.client(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        retries=args.retries,
        multi_split=args.split,
    )


def parse_time(s: str) -> int:
    """Parse a CLI time: UNIX seconds or ISO-8601 (naive = UTC).

    "1190000000"            -> 1190000000
    "2007-09-17T03:33:20"   -> 1190000000
    "2007-09-17 03:33:20Z"  -> 1190000000
    """
    s = s.strip()
    try:
        return int(s)
    except ValueError:
        pass
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid time: {s!r} (expected UNIX seconds or ISO-8601)")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def format_value(value: Any, number_format: Optional[str]) -> str:
    """Format a scalar value for display."""
    if isinstance(value, bool):
        return str(value)
    if number_format:
        return format(value, number_format)
    if isinstance(value, float):
        return format(value, "g")
    return str(value)


def _format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def format_values(name: str, values: Sequence[DCSValue], *, fmt: str, number_format: Optional[str] = None) -> str:
    """Format the values retrieved for one name.

    fmt="terse": one bare value per line.
    fmt="json": one JSON object {"name", "count", "values": [[timestamp, value], ...]}.
    fmt="text": one line per value: name | timestamp (UTC) | value.
    """
    if fmt == "json":
        return json.dumps(
            {
                "name": name,
                "count": len(values),
                "values": [[v.timestamp, v.value] for v in values],
            }
        )
    if fmt == "terse":
        return "\n".join(format_value(v.value, number_format) for v in values)
    if not values:
        return f"{name:<40s} (no values)"
    return "\n".join(
        f"{name:<40s} {_format_timestamp(v.timestamp)}  {format_value(v.value, number_format)}" for v in values
    )
