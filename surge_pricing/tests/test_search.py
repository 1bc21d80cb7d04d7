from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

from surge_pricing import db
from surge_pricing.errors import FlightNotFound, StorageUnavailable
from surge_pricing.search import search_flights

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

DAY = T0.date()


def test_search_filters_route_and_window(gateway, add_flight):
    inside = add_flight(departure=T0 + timedelta(days=1))
    edge = add_flight(departure=T0 + timedelta(days=6, hours=11))
    add_flight(departure=T0 + timedelta(days=8))
    add_flight(origin="BOM", destination="DEL", departure=T0 + timedelta(days=1))

    flights = search_flights(gateway, "DEL", "BOM", DAY)

    assert [f.id for f in flights] == [inside, edge]


def test_search_without_user_does_not_count(gateway, add_flight):
    flight_id = add_flight()
    for _ in range(5):
        search_flights(gateway, "DEL", "BOM", DAY)

    ledger = db.get_flight(flight_id, db_path=gateway.db_path).ledger
    assert ledger.attempts == []


def test_repeated_search_raises_returned_price(gateway, add_flight, clock):
    add_flight(base_price=2000)

    prices = []
    for _ in range(3):
        (flight,) = search_flights(gateway, "DEL", "BOM", DAY, user_id="u1")
        prices.append(flight.current_price)
        clock.advance(60)

    assert prices == [2000, 2000, 2200]


def test_search_respects_limit_and_order(gateway, add_flight):
    for hours in (30, 10, 20):
        add_flight(departure=T0 + timedelta(hours=hours))

    flights = search_flights(gateway, "DEL", "BOM", DAY, limit=2)

    assert [f.departure_time for f in flights] == [
        T0 + timedelta(hours=10),
        T0 + timedelta(hours=20),
    ]


def test_storage_failure_falls_back_to_stored_price(gateway, add_flight, caplog):
    add_flight(base_price=2000)

    with patch.object(
        gateway, "record_search", side_effect=StorageUnavailable("database is locked")
    ):
        flights = search_flights(gateway, "DEL", "BOM", DAY, user_id="u1")

    assert [f.current_price for f in flights] == [2000]
    assert "using stored price 2000" in caplog.text


def test_vanished_flight_is_skipped(gateway, add_flight):
    gone = add_flight()
    kept = add_flight(departure=T0 + timedelta(days=3))
    real = gateway.record_search

    def record(flight_id, user_id, now):
        if flight_id == gone:
            raise FlightNotFound(flight_id)
        return real(flight_id, user_id, now)

    with patch.object(gateway, "record_search", side_effect=record):
        flights = search_flights(gateway, "DEL", "BOM", DAY, user_id="u1")

    assert [f.id for f in flights] == [kept]


def test_no_matches(gateway, add_flight):
    add_flight()
    assert search_flights(gateway, "DEL", "BOM", date(2030, 1, 1), user_id="u1") == []
