"""Error taxonomy of the pricing engine and its consumers."""

from __future__ import annotations


class PricingError(RuntimeError):
    """Base class for errors raised by surge_pricing."""


class FlightNotFound(PricingError):
    """The referenced flight does not exist."""

    def __init__(self, flight_id: int) -> None:
        super().__init__(f"Flight {flight_id} not found")
        self.flight_id = flight_id


class StorageUnavailable(PricingError):
    """The SQLite database backing the ledgers could not be used."""


class SeatsUnavailable(PricingError):
    """A booking asked for more seats than the flight has left."""

    def __init__(self, flight_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"Flight {flight_id} has {available} seats left, {requested} requested"
        )
        self.flight_id = flight_id
        self.requested = requested
        self.available = available


__all__ = [
    "PricingError",
    "FlightNotFound",
    "StorageUnavailable",
    "SeatsUnavailable",
]
