from __future__ import annotations

import pytest

from cityscraper.browser import build_search_url
from cityscraper.config import (
    DEFAULT_CONFIG,
    ScrapeSettings,
    load_config,
    resolve_backend,
    resolve_localities,
)
from cityscraper.errors import ConfigError


def test_load_config_missing_file_uses_defaults(tmp_path) -> None:
    config = load_config(tmp_path / "missing.yml")

    assert config == DEFAULT_CONFIG
    assert config is not DEFAULT_CONFIG


def test_load_config_merges_nested_sections(tmp_path) -> None:
    path = tmp_path / "config.yml"
    path.write_text(
        "localities: [Lyon]\nlimits:\n  max_duplicates: 50\noutput:\n  backend: sqlite\n",
        encoding="utf-8",
    )

    config = load_config(path)
    settings = ScrapeSettings.from_config(config)

    assert config["localities"] == ["Lyon"]
    assert settings.max_duplicates == 50
    assert settings.stale_iterations == 3
    assert settings.max_attempts == 3
    assert config["output"]["csv_path"] == "establishments.csv"
    assert resolve_backend(None, config) == "sqlite"


def test_default_settings_match_engine_constants() -> None:
    settings = ScrapeSettings.from_config(DEFAULT_CONFIG)

    assert settings.batch_delay == (1.0, 2.0)
    assert settings.city_delay == (5.0, 10.0)
    assert settings.navigation_timeout == 90.0
    assert settings.consent_timeout == 5.0


@pytest.mark.parametrize(
    "pacing",
    [{"batch_delay": [2.0, 1.0]}, {"batch_delay": "fast"}, {"city_delay": [-1, 3]}],
)
def test_invalid_delays_are_rejected(pacing) -> None:
    config = {**DEFAULT_CONFIG, "pacing": pacing}

    with pytest.raises(ConfigError):
        ScrapeSettings.from_config(config)


def test_invalid_limits_are_rejected() -> None:
    config = {**DEFAULT_CONFIG, "limits": {"max_duplicates": 0, "stale_iterations": 3, "max_attempts": 3}}

    with pytest.raises(ConfigError):
        ScrapeSettings.from_config(config)


def test_resolve_localities_prefers_override() -> None:
    assert resolve_localities(["Nice", " "], DEFAULT_CONFIG) == ["Nice"]
    assert resolve_localities(None, {"localities": [" Lyon ", ""]}) == ["Lyon"]
    with pytest.raises(ConfigError):
        resolve_localities(None, {"localities": []})


def test_resolve_backend_rejects_unknown() -> None:
    with pytest.raises(ConfigError):
        resolve_backend("excel", DEFAULT_CONFIG)


def test_build_search_url_percent_encodes_locality() -> None:
    template = "https://www.google.com/maps/search/restaurant+{locality}"

    assert build_search_url(template, "Saint-Étienne") == (
        "https://www.google.com/maps/search/restaurant+Saint-%C3%89tienne"
    )
    assert build_search_url(template, "Aix en Provence") == (
        "https://www.google.com/maps/search/restaurant+Aix%20en%20Provence"
    )


def test_build_search_url_appends_without_placeholder() -> None:
    assert build_search_url("https://maps.example/search/bar+", "L'Isle/Adam") == (
        "https://maps.example/search/bar+L'Isle%2FAdam"
    )
