"""Configuration loading for cityscraper runs."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import yaml

from cityscraper.errors import ConfigError
from cityscraper.logging_config import get_logger

LOGGER = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yml")

DEFAULT_CONFIG: dict[str, Any] = {
    "localities": ["Paris", "Marseille", "Lyon", "Toulouse", "Nice"],
    "search": {
        "url_template": "https://www.google.com/maps/search/restaurant+{locality}",
        "navigation_timeout_s": 90,
        "consent_timeout_s": 5,
    },
    "limits": {
        "max_duplicates": 100,
        "stale_iterations": 3,
        "max_attempts": 3,
    },
    "pacing": {
        "batch_delay": [1.0, 2.0],
        "city_delay": [5.0, 10.0],
        "restart_delay": 0.0,
        "pause_poll": 0.5,
    },
    "output": {
        "backend": "csv",
        "csv_path": "establishments.csv",
        "sqlite_path": "establishments.sqlite",
        "busy_timeout_s": 30.0,
    },
    "healthcheck_url": "",
}

BACKENDS = {"csv", "sqlite"}


def _deep_merge(default: Any, override: Any) -> Any:
    if not isinstance(default, dict) or not isinstance(override, dict):
        return deepcopy(override)

    merged: dict[str, Any] = deepcopy(default)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    path = path or DEFAULT_CONFIG_PATH
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Unable to parse {path}: {exc}") from exc
    else:
        LOGGER.warning("Configuration file %s not found; using defaults", path)
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping: {path}")
    return _deep_merge(DEFAULT_CONFIG, data) if data else deepcopy(DEFAULT_CONFIG)


def _delay_bounds(raw: Any, name: str) -> tuple[float, float]:
    if isinstance(raw, (int, float)):
        low = high = float(raw)
    else:
        try:
            low, high = (float(value) for value in raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"pacing.{name} must be a number or a [min, max] pair") from exc
    if low < 0 or high < low:
        raise ConfigError(f"pacing.{name} must satisfy 0 <= min <= max, got {raw!r}")
    return low, high


def _positive_int(section: dict[str, Any], key: str) -> int:
    try:
        value = int(section[key])
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"limits.{key} must be an integer") from exc
    if value <= 0:
        raise ConfigError(f"limits.{key} must be positive")
    return value


def clean_localities(values: Iterable[Any]) -> list[str]:
    return [str(value).strip() for value in values if str(value).strip()]


@dataclass(frozen=True)
class ScrapeSettings:
    """Typed view over the merged configuration used by the engine."""

    url_template: str
    navigation_timeout: float = 90.0
    consent_timeout: float = 5.0
    max_duplicates: int = 100
    stale_iterations: int = 3
    max_attempts: int = 3
    batch_delay: tuple[float, float] = (1.0, 2.0)
    city_delay: tuple[float, float] = (5.0, 10.0)
    restart_delay: float = 0.0
    pause_poll: float = 0.5

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScrapeSettings":
        search = config.get("search") or {}
        limits = config.get("limits") or {}
        pacing = config.get("pacing") or {}

        url_template = str(search.get("url_template") or "").strip()
        if not url_template:
            raise ConfigError("search.url_template is missing")

        try:
            navigation_timeout = float(search.get("navigation_timeout_s", 90))
            consent_timeout = float(search.get("consent_timeout_s", 5))
            restart_delay = max(0.0, float(pacing.get("restart_delay", 0.0)))
            pause_poll = max(0.05, float(pacing.get("pause_poll", 0.5)))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid timeout or delay value: {exc}") from exc

        return cls(
            url_template=url_template,
            navigation_timeout=navigation_timeout,
            consent_timeout=consent_timeout,
            max_duplicates=_positive_int(limits, "max_duplicates"),
            stale_iterations=_positive_int(limits, "stale_iterations"),
            max_attempts=_positive_int(limits, "max_attempts"),
            batch_delay=_delay_bounds(pacing.get("batch_delay", [1.0, 2.0]), "batch_delay"),
            city_delay=_delay_bounds(pacing.get("city_delay", [5.0, 10.0]), "city_delay"),
            restart_delay=restart_delay,
            pause_poll=pause_poll,
        )


def resolve_localities(override: Iterable[str] | None, config: dict[str, Any]) -> list[str]:
    if override:
        localities = clean_localities(override)
    else:
        localities = clean_localities(config.get("localities") or [])
    if not localities:
        raise ConfigError("No localities configured.")
    return localities


def resolve_backend(override: str | None, config: dict[str, Any]) -> str:
    backend = (override or (config.get("output") or {}).get("backend") or "csv").lower()
    if backend not in BACKENDS:
        raise ConfigError(f"Unknown output backend {backend!r}; expected one of {sorted(BACKENDS)}")
    return backend


__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_PATH",
    "ScrapeSettings",
    "clean_localities",
    "load_config",
    "resolve_backend",
    "resolve_localities",
]
