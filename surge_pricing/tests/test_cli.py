from datetime import timedelta
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from surge_pricing import db
from surge_pricing.cli import cli
from surge_pricing.errors import StorageUnavailable
from surge_pricing.models import Flight, utc_now


@pytest.fixture(autouse=True)
def _in_tmp_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def _run(db_file, *args):
    return CliRunner().invoke(cli, ["--db", db_file, *args], catch_exceptions=False)


def test_seed_and_report(tmp_path):
    db_file = str(tmp_path / "cli.db")

    result = _run(db_file, "seed", "--count", "15", "--seed", "4")
    assert result.exit_code == 0
    assert "Inserted 15 flights" in result.output

    result = _run(db_file, "report")
    assert result.exit_code == 0
    assert "15 flights, 0 surged, surcharge 0" in result.output


def test_search_price_and_book(tmp_path):
    db_file = str(tmp_path / "cli.db")
    _run(db_file, "init-db")
    departure = utc_now() + timedelta(days=1)
    flight_id = db.insert_flight(
        Flight(
            flight_number="AI2001",
            airline="Air India",
            departure_city="Delhi",
            departure_airport_code="DEL",
            arrival_city="Mumbai",
            arrival_airport_code="BOM",
            departure_time=departure,
            arrival_time=departure + timedelta(hours=2),
            aircraft="Airbus A320",
            base_price=2000,
            current_price=2000,
        ),
        db_path=db_file,
    )

    for _ in range(3):
        result = _run(db_file, "search", "del", "bom", f"{departure:%Y-%m-%d}", "--user", "u1")
        assert result.exit_code == 0
    assert "AI2001" in result.output
    assert result.output.rstrip().endswith("2200")

    result = _run(db_file, "price", str(flight_id))
    assert result.output.strip() == "2200"

    result = _run(db_file, "book", str(flight_id), "--user", "u1", "--passenger", "Asha", "--passenger", "Ravi")
    assert result.exit_code == 0
    assert "total 4400" in result.output

    result = _run(db_file, "sweep")
    assert "Reverted 0 flights" in result.output


def test_price_unknown_flight(tmp_path):
    result = CliRunner().invoke(cli, ["--db", str(tmp_path / "cli.db"), "price", "999"])

    assert result.exit_code == 1
    assert "Flight 999 not found" in result.output


def test_sweep_reports_storage_failure(tmp_path):
    db_file = str(tmp_path / "cli.db")

    with patch(
        "surge_pricing.cli.PricingGateway.sweep",
        side_effect=StorageUnavailable("database is locked"),
    ):
        result = CliRunner().invoke(cli, ["--db", db_file, "sweep"])

    assert result.exit_code == 1
    assert "database is locked" in result.output
