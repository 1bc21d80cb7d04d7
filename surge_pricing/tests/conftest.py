from datetime import datetime, timedelta, timezone

import pytest

from surge_pricing.db import init_db, insert_flight
from surge_pricing.gateway import PricingGateway
from surge_pricing.models import Flight

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "test.db")
    init_db(path)
    return path


@pytest.fixture
def add_flight(db_path):
    counter = {"n": 1000}

    def _add(
        base_price=2000,
        origin="DEL",
        destination="BOM",
        departure=T0 + timedelta(days=2),
        seats=60,
    ):
        counter["n"] += 1
        flight = Flight(
            flight_number=f"AI{counter['n']}",
            airline="Air India",
            departure_city="Delhi",
            departure_airport_code=origin,
            arrival_city="Mumbai",
            arrival_airport_code=destination,
            departure_time=departure,
            arrival_time=departure + timedelta(hours=2),
            aircraft="Airbus A320",
            base_price=base_price,
            current_price=base_price,
            seats_available=seats,
        )
        return insert_flight(flight, db_path=db_path)

    return _add


@pytest.fixture
def gateway(db_path, clock):
    return PricingGateway(db_path, clock=clock)
