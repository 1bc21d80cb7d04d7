"""Data models used throughout the project."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

NORMAL_MULTIPLIER = Decimal("1.0")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def apply_multiplier(base_price: int, multiplier: Decimal) -> int:
    """Return ``base_price * multiplier`` rounded half-up to whole units."""
    value = Decimal(base_price) * multiplier
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True, order=True, slots=True)
class Attempt:
    at: datetime
    user_id: str = ""


@dataclass(slots=True)
class AttemptLedger:
    """Recent search attempts and surge state of one flight."""

    flight_id: int
    attempts: List[Attempt] = field(default_factory=list)
    price_multiplier: Decimal = NORMAL_MULTIPLIER
    surge_activated_at: Optional[datetime] = None

    @property
    def is_surged(self) -> bool:
        return self.surge_activated_at is not None

    def prune(self, now: datetime, lookback: timedelta) -> None:
        """Drop attempts whose age has reached *lookback*."""
        cutoff = ensure_utc(now) - lookback
        self.attempts = [a for a in self.attempts if a.at > cutoff]

    def record_attempt(self, now: datetime, user_id: Optional[str] = None) -> None:
        bisect.insort(self.attempts, Attempt(ensure_utc(now), user_id or ""))

    def attempt_count_in_window(self, user_id: Optional[str] = None) -> int:
        if user_id is None:
            return len(self.attempts)
        return sum(1 for a in self.attempts if a.user_id == user_id)

    def activate_surge(self, now: datetime, multiplier: Decimal) -> bool:
        """Enter the surged state; return ``False`` if already surged."""
        if self.is_surged:
            return False
        self.price_multiplier = multiplier
        self.surge_activated_at = ensure_utc(now)
        return True

    def deactivate_surge(self) -> None:
        self.price_multiplier = NORMAL_MULTIPLIER
        self.surge_activated_at = None
        self.attempts = []

    def surge_expires_at(self, cooldown: timedelta) -> Optional[datetime]:
        if self.surge_activated_at is None:
            return None
        return self.surge_activated_at + cooldown


@dataclass(slots=True)
class Flight:
    flight_number: str
    airline: str
    departure_city: str
    departure_airport_code: str
    arrival_city: str
    arrival_airport_code: str
    departure_time: datetime
    arrival_time: datetime
    aircraft: str
    base_price: int
    current_price: int
    seats_available: int = 60
    id: Optional[int] = None
    ledger: Optional[AttemptLedger] = None


@dataclass(slots=True)
class Booking:
    pnr: str
    flight_id: int
    user_id: str
    passengers: List[str]
    unit_price: int
    total_price: int
    created_at: datetime
    id: Optional[int] = None


__all__ = [
    "NORMAL_MULTIPLIER",
    "Attempt",
    "AttemptLedger",
    "Booking",
    "Flight",
    "apply_multiplier",
    "ensure_utc",
    "utc_now",
]
