"""Sample flight data for local runs and demos."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta
from typing import List, Optional

from . import db
from .models import Flight, utc_now

logger = logging.getLogger(__name__)

AIRLINES = ["IndiGo", "SpiceJet", "Air India", "Vistara", "GoAir"]
AIRCRAFTS = ["Airbus A320", "Boeing 737", "Boeing 777", "Airbus A380", "Bombardier Q400"]

# (city, IATA code)
AIRPORTS = [
    ("Delhi", "DEL"),
    ("Mumbai", "BOM"),
    ("Bangalore", "BLR"),
    ("Chennai", "MAA"),
    ("Kolkata", "CCU"),
    ("Hyderabad", "HYD"),
    ("Ahmedabad", "AMD"),
    ("Goa", "GOI"),
    ("Pune", "PNQ"),
    ("Jaipur", "JAI"),
]

MAX_FLIGHTS = len(AIRLINES) * 9000


def generate_flights(
    count: int,
    *,
    now: Optional[datetime] = None,
    days_ahead: int = 8,
    rng: Optional[random.Random] = None,
) -> List[Flight]:
    """Generate *count* flights with unique numbers departing in *days_ahead* days.

    Nothing is written to the database.
    """
    if count > MAX_FLIGHTS:
        raise ValueError(f"Cannot generate more than {MAX_FLIGHTS} unique flights")
    rng = rng or random.Random()
    start = (now or utc_now()).replace(second=0, microsecond=0)

    flights: List[Flight] = []
    used_numbers = set()
    while len(flights) < count:
        (dep_city, dep_code), (arr_city, arr_code) = rng.sample(AIRPORTS, 2)
        airline = rng.choice(AIRLINES)

        number = f"{airline[:2].upper()}{rng.randint(1000, 9999)}"
        if number in used_numbers:
            continue
        used_numbers.add(number)

        departure = start.replace(
            hour=rng.randint(0, 23), minute=rng.randint(0, 59)
        ) + timedelta(days=rng.randint(1, days_ahead))
        base_price = rng.randint(2000, 3000)

        flights.append(
            Flight(
                flight_number=number,
                airline=airline,
                departure_city=dep_city,
                departure_airport_code=dep_code,
                arrival_city=arr_city,
                arrival_airport_code=arr_code,
                departure_time=departure,
                arrival_time=departure + timedelta(hours=rng.randint(2, 5)),
                aircraft=rng.choice(AIRCRAFTS),
                base_price=base_price,
                current_price=base_price,
                seats_available=rng.randint(30, 180),
            )
        )
    return flights


def seed(count: int = 200, db_path: str = db.DB_FILE, **kwargs) -> int:
    """Insert *count* generated flights and return how many were written."""
    flights = generate_flights(count, **kwargs)
    for flight in flights:
        flight.id = db.insert_flight(flight, db_path=db_path)
    logger.info("Inserted %d flights into %s", len(flights), db_path)
    return len(flights)


__all__ = ["AIRLINES", "AIRPORTS", "generate_flights", "seed"]
