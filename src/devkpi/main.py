"""Entry point and orchestration for the developer KPI CLI."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone

from .cli import parse_args
from .config import load_scoring_config, load_tracker_settings
from .errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    DataValidationError,
    NotFoundError,
)
from .kpi import compute_team_kpi, generate_monthly_kpi, preview_current_month_kpi
from .report import format_history, format_kpi_csv, generate_report
from .repository import KPIStore, load_store
from .tracker_client import TrackerClient

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_AUTHENTICATION = 3
EXIT_API = 4
EXIT_NOT_FOUND = 5
EXIT_DATA_VALIDATION = 6


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_records(args: argparse.Namespace) -> KPIStore:
    """Build the record store from a JSON file or the tracker API."""
    if args.records:
        logger.info("Loading records from '%s'", args.records)
        return load_store(args.records, lenient=args.lenient)

    settings = load_tracker_settings(args.tracker_url)
    client = TrackerClient(settings=settings, lenient=args.lenient)
    developer_ids = None if args.team else [args.developer]
    logger.info("Fetching records from tracker '%s'", settings.base_url)
    return client.load_store(developer_ids=developer_ids)


def orchestrate_kpi_generation() -> int:
    """Run one CLI invocation and return its process exit code."""
    try:
        args = parse_args()
        configure_logging(args.verbose)

        config = load_scoring_config(args.config)
        store = load_records(args)

        today = datetime.now(timezone.utc).date()
        month = args.month or today.month
        year = args.year or today.year

        developer_name = None
        if args.team:
            kpi = compute_team_kpi(store, month, year, config)
        elif args.preview:
            kpi = preview_current_month_kpi(store, args.developer, config)
            developer_name = store.get_developer(args.developer).name
        else:
            kpi = generate_monthly_kpi(store, args.developer, month, year, config)
            developer_name = store.get_developer(args.developer).name

        if args.format == "csv":
            print(format_kpi_csv(kpi), end="")
        else:
            print(generate_report(kpi, developer_name=developer_name))

        if args.history and not args.team:
            print()
            print(format_history(store.kpi_history(args.developer)))

        return EXIT_SUCCESS
    except AuthenticationError as exc:
        logger.error("Authentication failed: %s", exc)
        return EXIT_AUTHENTICATION
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIGURATION
    except ApiError as exc:
        logger.error("Tracker API error: %s", exc)
        return EXIT_API
    except NotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_NOT_FOUND
    except DataValidationError as exc:
        logger.error("Invalid record data: %s", exc)
        return EXIT_DATA_VALIDATION
    except Exception:
        logger.exception("Unexpected error during KPI generation")
        return EXIT_UNEXPECTED


def main() -> None:
    sys.exit(orchestrate_kpi_generation())


if __name__ == "__main__":
    main()
