from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from . import db
from .errors import FlightNotFound, StorageUnavailable
from .gateway import PricingGateway
from .models import Flight

logger = logging.getLogger(__name__)


def search_flights(
    gateway: PricingGateway,
    origin: str,
    destination: str,
    day: date,
    user_id: Optional[str] = None,
    now: Optional[datetime] = None,
    *,
    limit: int = 10,
) -> List[Flight]:
    """Return flights on the route, counting the search when *user_id* is set.

    A pricing failure on one flight never fails the search: the flight is
    returned with its last stored price.
    """
    flights = db.find_flights(
        origin, destination, day, limit=limit, db_path=gateway.db_path
    )
    if not user_id:
        return flights

    when = now or gateway.clock()
    results: List[Flight] = []
    for flight in flights:
        try:
            flight.current_price = gateway.record_search(flight.id, user_id, when)
        except FlightNotFound:
            logger.info("Flight %s disappeared during search", flight.id)
            continue
        except StorageUnavailable as exc:
            logger.warning(
                "Pricing update failed for flight %s, using stored price %s: %s",
                flight.id,
                flight.current_price,
                exc,
            )
        results.append(flight)
    return results


__all__ = ["search_flights"]
