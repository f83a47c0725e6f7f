"""Command-line argument parsing for the developer KPI engine."""

from __future__ import annotations

import argparse


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def _month(value: str) -> int:
    """Parse a calendar month number (1-12)."""
    parsed = _positive_int(value)
    if parsed > 12:
        raise argparse.ArgumentTypeError("must be between 1 and 12")
    return parsed


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments for KPI generation.

    Returns:
        Parsed CLI arguments. ``month`` and ``year`` are ``None`` when omitted
        and default to the current month at run time.
    """
    parser = argparse.ArgumentParser(
        prog="devkpi",
        description=(
            "Compute monthly developer KPIs (delivery, quality, and overall "
            "score with trend) from ticket and bug records."
        ),
    )

    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--developer",
        help="Developer id to compute the KPI for.",
    )
    target.add_argument(
        "--team",
        action="store_true",
        help="Aggregate the KPI of all active developers.",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--records",
        help="JSON file with developers, tickets, bugs, and optional KPI history.",
    )
    source.add_argument(
        "--tracker-url",
        help="Base URL of the tracker REST API (token read from TRACKER_TOKEN).",
    )

    parser.add_argument(
        "--month",
        type=_month,
        default=None,
        help="Target month, 1-12 (default: current month).",
    )
    parser.add_argument(
        "--year",
        type=_positive_int,
        default=None,
        help="Target year (default: current year).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Scoring configuration JSON file (default: DEVKPI_CONFIG or built-in weights).",
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Compute the current month without storing the result.",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        help="Also list the developer's stored KPI history.",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Default unknown bug severities/types to medium/developer_error instead of failing.",
    )
    parser.add_argument(
        "--format",
        choices=("text", "csv"),
        default="text",
        help="Output format (default: text).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    args = parser.parse_args()

    if not args.team and not args.developer:
        parser.error("one of the arguments --developer --team is required")
    if args.preview and (args.team or args.month is not None or args.year is not None):
        parser.error("--preview always targets the current month of a single developer")

    return args
