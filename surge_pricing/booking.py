from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from . import db
from .errors import FlightNotFound, SeatsUnavailable
from .models import Booking, utc_now

logger = logging.getLogger(__name__)


def make_pnr() -> str:
    return "PNR" + uuid4().hex[:8].upper()


def book_flight(
    flight_id: int,
    user_id: str,
    passengers: List[str],
    *,
    now: Optional[datetime] = None,
    db_path: str = db.DB_FILE,
) -> Booking:
    """Book *passengers* on a flight, charging its stored ``current_price``.

    The price is read inside the same transaction that takes the seats and
    is never recomputed, so booking does not count as a search.
    """
    if not passengers:
        raise ValueError("At least one passenger is required")

    with db.transaction(db_path) as conn:
        flight = db.fetch_flight(conn, flight_id)
        if flight is None:
            raise FlightNotFound(flight_id)
        if flight.seats_available < len(passengers):
            raise SeatsUnavailable(flight_id, len(passengers), flight.seats_available)

        booking = Booking(
            pnr=make_pnr(),
            flight_id=flight_id,
            user_id=user_id,
            passengers=list(passengers),
            unit_price=flight.current_price,
            total_price=flight.current_price * len(passengers),
            created_at=now or utc_now(),
        )
        booking.id = db.insert_booking(conn, booking)
        db.decrement_seats(conn, flight_id, len(passengers))

    logger.info(
        "Booked %d seat(s) on flight %s for %s at %s",
        len(passengers),
        flight_id,
        user_id,
        booking.total_price,
    )
    return booking


__all__ = ["book_flight", "make_pnr"]
