"""Command-line interface entry point for the cityscraper application."""

from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path
from typing import Any, Iterable
from urllib.parse import urlparse

import requests
from dotenv import load_dotenv

from cityscraper.config import (
    DEFAULT_CONFIG_PATH,
    ScrapeSettings,
    load_config,
    resolve_backend,
    resolve_localities,
)
from cityscraper.control import StdinCommandSource
from cityscraper.engine import Scraper
from cityscraper.errors import ConfigError
from cityscraper.logging_config import get_logger
from cityscraper.sites.google_maps import GoogleMapsBrowser
from cityscraper.stats import Stats
from cityscraper.storage.db import open_session_factory
from cityscraper.storage.repo import (
    CsvEstablishmentStore,
    EstablishmentStore,
    SqlEstablishmentStore,
    export_csv,
)

LOGGER = get_logger(__name__)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the application."""

    parser = argparse.ArgumentParser(
        description="Harvest Google Maps establishments city by city."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"YAML configuration file (default: {DEFAULT_CONFIG_PATH}).",
    )
    parser.add_argument(
        "--city",
        "--cities",
        dest="cities",
        type=str,
        help="Comma-separated list of localities overriding the configuration.",
    )
    parser.add_argument(
        "--backend",
        choices=("csv", "sqlite"),
        help="Persistent store used for captured establishments.",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Path of the CSV file or SQLite database, depending on --backend.",
    )
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Do not read operator commands from stdin.",
    )
    parser.add_argument(
        "--export-csv",
        dest="export_csv",
        type=str,
        help="Export the stored establishments to this CSV path and exit.",
    )

    args = parser.parse_args(list(argv) if argv is not None else None)

    city_arg = args.cities or ""
    args.cities = [city.strip() for city in city_arg.split(",") if city.strip()]
    return args


def build_store(backend: str, output: str | None, config: dict[str, Any]) -> EstablishmentStore:
    output_conf = config.get("output") or {}
    if backend == "sqlite":
        sqlite_path = output or output_conf.get("sqlite_path") or "establishments.sqlite"
        busy_timeout = output_conf.get("busy_timeout_s")
        return SqlEstablishmentStore(open_session_factory(sqlite_path, busy_timeout=busy_timeout))

    csv_path = output or output_conf.get("csv_path") or "establishments.csv"
    return CsvEstablishmentStore(csv_path)


def _ping_healthcheck(config: dict[str, Any], stats: Stats) -> None:
    url = (config or {}).get("healthcheck_url")
    if not url:
        LOGGER.debug("healthcheck: disabled")
        return
    host = urlparse(str(url)).netloc or urlparse(str(url)).path
    verify_env = os.getenv("HEALTHCHECK_VERIFY")
    verify = True if verify_env is None else verify_env.strip().lower() not in {"0", "false", "no"}
    params = {"saved": stats.newly_saved, "errors": stats.errors}
    try:
        response = requests.get(url, params=params, timeout=5, verify=verify)
    except requests.RequestException as exc:
        LOGGER.warning("Healthcheck ping failed for host=%s: %s", host, exc)
        return
    if response.status_code >= 400:
        LOGGER.warning(
            "Healthcheck returned status %s for host=%s",
            response.status_code,
            host,
        )
    else:
        LOGGER.info(
            "healthcheck ok | host=%s status=%s",
            host,
            response.status_code,
        )


async def _async_main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    load_dotenv()

    config = load_config(args.config)
    backend = resolve_backend(args.backend, config)
    store = build_store(backend, args.output, config)

    if args.export_csv:
        count = export_csv(store.load_all(), args.export_csv)
        LOGGER.info("Exported %d establishments -> %s", count, args.export_csv)
        return

    settings = ScrapeSettings.from_config(config)
    localities = resolve_localities(args.cities, config)
    LOGGER.info(
        "Starting run | backend=%s localities=%d url_template=%s",
        backend,
        len(localities),
        settings.url_template,
    )

    scraper = Scraper(settings, localities, GoogleMapsBrowser(), store)
    commands = None if args.no_input else StdinCommandSource()
    stats = await scraper.run(commands)
    _ping_healthcheck(config, stats)


def main() -> None:
    try:
        asyncio.run(_async_main())
    except ConfigError as exc:
        LOGGER.error("Configuration error: %s", exc)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:  # pragma: no cover - interactive safety
        LOGGER.info("Interrupted by user")
    except Exception as exc:
        LOGGER.exception("Fatal error: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
