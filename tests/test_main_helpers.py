import pytest

pytest.importorskip("playwright")

from cityscraper.main import build_store, parse_args
from cityscraper.storage.repo import CsvEstablishmentStore, SqlEstablishmentStore


def test_parse_args_cities_override() -> None:
    args = parse_args(["--cities", "Lyon, Paris,,Nice", "--backend", "sqlite", "--no-input"])

    assert args.cities == ["Lyon", "Paris", "Nice"]
    assert args.backend == "sqlite"
    assert args.no_input is True
    assert args.export_csv is None


def test_parse_args_defaults() -> None:
    args = parse_args([])

    assert args.cities == []
    assert args.backend is None
    assert args.no_input is False


def test_build_store_selects_backend(tmp_path) -> None:
    csv_store = build_store("csv", str(tmp_path / "out.csv"), {})
    sql_store = build_store("sqlite", str(tmp_path / "out.sqlite"), {})

    assert isinstance(csv_store, CsvEstablishmentStore)
    assert isinstance(sql_store, SqlEstablishmentStore)
    assert sql_store.load_all() == []
