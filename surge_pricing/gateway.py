"""gateway – the entry point the search and booking paths call into.

Every mutation of one flight's ledger (expire-check → prune → append →
threshold-check → price write) runs under that flight's lock and inside
one SQLite transaction. Different flights never share a lock.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from . import db
from .errors import FlightNotFound, StorageUnavailable
from .locks import FlightLocks
from .models import Flight, utc_now
from .policy import PricingPolicy

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class PricingGateway:
    def __init__(
        self,
        db_path: str = db.DB_FILE,
        policy: Optional[PricingPolicy] = None,
        *,
        clock: Clock = utc_now,
        locks: Optional[FlightLocks] = None,
    ) -> None:
        self.db_path = db_path
        self.policy = policy or PricingPolicy()
        self.clock = clock
        self.locks = locks or FlightLocks()

    @classmethod
    def from_settings(
        cls, cfg: Any, db_path: str = db.DB_FILE, *, clock: Clock = utc_now
    ) -> "PricingGateway":
        return cls(db_path, PricingPolicy.from_settings(cfg), clock=clock)

    # ──────────────────────────────────────────────────────────

    def record_search(
        self,
        flight_id: int,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """Count one search of *flight_id* and return its effective price."""
        when = now or self.clock()

        def _apply(flight: Flight) -> None:
            self.policy.apply_search(flight.ledger, when, user_id)
            flight.current_price = self.policy.effective_price(
                flight.base_price, flight.ledger
            )

        with self.locks.hold(flight_id):
            flight = db.update_pricing(flight_id, _apply, db_path=self.db_path)
        if flight is None:
            raise FlightNotFound(flight_id)
        return flight.current_price

    def current_price(self, flight_id: int) -> int:
        """Latest committed price; reading never records an attempt."""
        flight = db.get_flight(flight_id, db_path=self.db_path)
        if flight is None:
            raise FlightNotFound(flight_id)
        return flight.current_price

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Revert every surge whose cooldown has elapsed; return the count."""
        when = now or self.clock()
        due = db.due_surge_flight_ids(
            when - self.policy.cooldown_window, db_path=self.db_path
        )
        reverted = 0
        for flight_id in due:
            try:
                if self._expire(flight_id, when):
                    reverted += 1
            except StorageUnavailable:
                logger.exception("Price reset failed for flight %s", flight_id)
        if due:
            logger.info("Sweep at %s reverted %d of %d due flights", when, reverted, len(due))
        return reverted

    def _expire(self, flight_id: int, when: datetime) -> bool:
        changed = []

        def _apply(flight: Flight) -> None:
            if self.policy.expire_if_due(flight.ledger, when):
                flight.current_price = self.policy.effective_price(
                    flight.base_price, flight.ledger
                )
                changed.append(flight.id)

        with self.locks.hold(flight_id):
            db.update_pricing(flight_id, _apply, db_path=self.db_path)
        return bool(changed)


__all__ = ["PricingGateway", "Clock"]
