from __future__ import annotations

import json
import logging
import os
import pathlib
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Callable, Iterator, List, Optional

from .errors import StorageUnavailable
from .models import Attempt, AttemptLedger, Booking, Flight, ensure_utc


# Default paths – relative to the repository root
PACKAGE_DIR = pathlib.Path(__file__).resolve().parent
REPO_DIR = PACKAGE_DIR.parent
DB_FILE = os.getenv("SURGE_PRICING_DB", str(REPO_DIR / "surge_pricing.db"))
SCHEMA_FILE = str(PACKAGE_DIR / "schema.sql")
SCHEMA_VERSION = 1
BUSY_TIMEOUT_S = 5.0

logger = logging.getLogger(__name__)


def to_db_time(dt: datetime) -> str:
    """Fixed-width UTC ISO timestamp, so string order equals time order."""
    return ensure_utc(dt).isoformat(timespec="microseconds")


def from_db_time(value: str) -> datetime:
    return ensure_utc(datetime.fromisoformat(value))


@contextmanager
def connect(db_path: str = DB_FILE) -> Iterator[sqlite3.Connection]:
    """Open an autocommit connection; map sqlite failures."""
    try:
        conn = sqlite3.connect(
            db_path, timeout=BUSY_TIMEOUT_S, isolation_level=None
        )
    except sqlite3.DatabaseError as exc:
        raise StorageUnavailable(f"Cannot open {db_path}: {exc}") from exc
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    except sqlite3.DatabaseError as exc:
        raise StorageUnavailable(f"Database error on {db_path}: {exc}") from exc
    finally:
        conn.close()


@contextmanager
def transaction(db_path: str = DB_FILE) -> Iterator[sqlite3.Connection]:
    """Run the block inside ``BEGIN IMMEDIATE`` … ``COMMIT``."""
    with connect(db_path) as conn:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")


def migrate(db_path: str = DB_FILE, schema_path: str = SCHEMA_FILE) -> None:
    """Run pending migrations on the database."""
    logger.info("Running migrations for %s", db_path)
    with connect(db_path) as conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER NOT NULL)"
        )
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current = row[0] if row else 0
        if current < SCHEMA_VERSION:
            logger.info("Applying schema version %s", SCHEMA_VERSION)
            with open(schema_path, "r", encoding="utf-8") as fh:
                conn.executescript(fh.read())
            if row:
                conn.execute(
                    "UPDATE schema_version SET version=?", (SCHEMA_VERSION,)
                )
            else:
                conn.execute(
                    "INSERT INTO schema_version(version) VALUES (?)",
                    (SCHEMA_VERSION,),
                )


def init_db(db_path: str = DB_FILE, schema_path: str = SCHEMA_FILE) -> None:
    """Initialize SQLite database using *schema_path*."""
    logger.info("Initializing database at %s", db_path)
    with connect(db_path) as conn:
        with open(schema_path, "r", encoding="utf-8") as fh:
            conn.executescript(fh.read())
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER NOT NULL)"
        )
        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version(version) VALUES (?)",
            (SCHEMA_VERSION,),
        )


# ────────────────────────────────────────────────────────────────
# Row mapping
# ────────────────────────────────────────────────────────────────


def _row_to_flight(row: sqlite3.Row) -> Flight:
    activated = row["surge_activated_at"]
    ledger = AttemptLedger(
        flight_id=row["id"],
        attempts=[
            Attempt(from_db_time(item["at"]), item.get("user", ""))
            for item in json.loads(row["attempts"])
        ],
        price_multiplier=Decimal(row["price_multiplier"]),
        surge_activated_at=from_db_time(activated) if activated else None,
    )
    return Flight(
        id=row["id"],
        flight_number=row["flight_number"],
        airline=row["airline"],
        departure_city=row["departure_city"],
        departure_airport_code=row["departure_airport_code"],
        arrival_city=row["arrival_city"],
        arrival_airport_code=row["arrival_airport_code"],
        departure_time=from_db_time(row["departure_time"]),
        arrival_time=from_db_time(row["arrival_time"]),
        aircraft=row["aircraft"],
        base_price=row["base_price"],
        current_price=row["current_price"],
        seats_available=row["seats_available"],
        ledger=ledger,
    )


def _dump_attempts(ledger: AttemptLedger) -> str:
    return json.dumps(
        [{"at": to_db_time(a.at), "user": a.user_id} for a in ledger.attempts]
    )


# ────────────────────────────────────────────────────────────────
# Flights
# ────────────────────────────────────────────────────────────────


def insert_flight(flight: Flight, db_path: str = DB_FILE) -> int:
    """Insert *flight* with an empty ledger and return its row id."""
    logger.debug("Inserting flight %s", flight.flight_number)
    with connect(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO flights(
                flight_number,
                airline,
                departure_city,
                departure_airport_code,
                arrival_city,
                arrival_airport_code,
                departure_time,
                arrival_time,
                aircraft,
                base_price,
                current_price,
                seats_available
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                flight.flight_number,
                flight.airline,
                flight.departure_city,
                flight.departure_airport_code,
                flight.arrival_city,
                flight.arrival_airport_code,
                to_db_time(flight.departure_time),
                to_db_time(flight.arrival_time),
                flight.aircraft,
                flight.base_price,
                flight.current_price,
                flight.seats_available,
            ),
        )
        return int(cur.lastrowid)


def fetch_flight(conn: sqlite3.Connection, flight_id: int) -> Optional[Flight]:
    row = conn.execute(
        "SELECT * FROM flights WHERE id=?", (flight_id,)
    ).fetchone()
    return _row_to_flight(row) if row else None


def get_flight(flight_id: int, db_path: str = DB_FILE) -> Optional[Flight]:
    with connect(db_path) as conn:
        return fetch_flight(conn, flight_id)


def list_flights(db_path: str = DB_FILE) -> List[Flight]:
    with connect(db_path) as conn:
        rows = conn.execute("SELECT * FROM flights ORDER BY id").fetchall()
    return [_row_to_flight(r) for r in rows]


def find_flights(
    origin: str,
    destination: str,
    day: date,
    *,
    days_ahead: int = 7,
    limit: int = 10,
    db_path: str = DB_FILE,
) -> List[Flight]:
    """Flights on the route departing within *days_ahead* days of *day*."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=days_ahead)
    logger.info("Searching flights %s ➔ %s from %s", origin, destination, day)
    with connect(db_path) as conn:
        rows = conn.execute(
            """
            SELECT * FROM flights
             WHERE departure_airport_code=? AND arrival_airport_code=?
               AND departure_time >= ? AND departure_time < ?
             ORDER BY departure_time
             LIMIT ?
            """,
            (origin, destination, to_db_time(start), to_db_time(end), limit),
        ).fetchall()
    return [_row_to_flight(r) for r in rows]


def write_pricing(conn: sqlite3.Connection, flight: Flight) -> None:
    """Persist the ledger and ``current_price`` of *flight*."""
    ledger = flight.ledger
    conn.execute(
        """
        UPDATE flights
           SET current_price=?, attempts=?, price_multiplier=?,
               surge_activated_at=?
         WHERE id=?
        """,
        (
            flight.current_price,
            _dump_attempts(ledger),
            str(ledger.price_multiplier),
            to_db_time(ledger.surge_activated_at)
            if ledger.surge_activated_at
            else None,
            flight.id,
        ),
    )


def update_pricing(
    flight_id: int,
    mutate: Callable[[Flight], None],
    db_path: str = DB_FILE,
) -> Optional[Flight]:
    """Load, *mutate* and store one flight's pricing in a single transaction.

    Returns the mutated flight or ``None`` if it does not exist.
    """
    with transaction(db_path) as conn:
        flight = fetch_flight(conn, flight_id)
        if flight is None:
            return None
        mutate(flight)
        write_pricing(conn, flight)
    return flight


def due_surge_flight_ids(activated_before: datetime, db_path: str = DB_FILE) -> List[int]:
    """Ids of surged flights activated at or before *activated_before*."""
    with connect(db_path) as conn:
        rows = conn.execute(
            """
            SELECT id FROM flights
             WHERE surge_activated_at IS NOT NULL
               AND surge_activated_at <= ?
             ORDER BY surge_activated_at
            """,
            (to_db_time(activated_before),),
        ).fetchall()
    return [r[0] for r in rows]


# ────────────────────────────────────────────────────────────────
# Bookings
# ────────────────────────────────────────────────────────────────


def insert_booking(conn: sqlite3.Connection, booking: Booking) -> int:
    cur = conn.execute(
        """
        INSERT INTO bookings(
            pnr, flight_id, user_id, passengers, unit_price, total_price,
            created_at
        ) VALUES (?,?,?,?,?,?,?)
        """,
        (
            booking.pnr,
            booking.flight_id,
            booking.user_id,
            json.dumps(booking.passengers),
            booking.unit_price,
            booking.total_price,
            to_db_time(booking.created_at),
        ),
    )
    return int(cur.lastrowid)


def decrement_seats(conn: sqlite3.Connection, flight_id: int, seats: int) -> None:
    conn.execute(
        "UPDATE flights SET seats_available=seats_available-? WHERE id=?",
        (seats, flight_id),
    )


def get_booking(booking_id: int, db_path: str = DB_FILE) -> Optional[Booking]:
    with connect(db_path) as conn:
        row = conn.execute(
            "SELECT * FROM bookings WHERE id=?", (booking_id,)
        ).fetchone()
    if row is None:
        return None
    return Booking(
        id=row["id"],
        pnr=row["pnr"],
        flight_id=row["flight_id"],
        user_id=row["user_id"],
        passengers=json.loads(row["passengers"]),
        unit_price=row["unit_price"],
        total_price=row["total_price"],
        created_at=from_db_time(row["created_at"]),
    )


__all__ = [
    "connect",
    "transaction",
    "init_db",
    "migrate",
    "insert_flight",
    "fetch_flight",
    "get_flight",
    "list_flights",
    "find_flights",
    "write_pricing",
    "update_pricing",
    "due_surge_flight_ids",
    "insert_booking",
    "decrement_seats",
    "get_booking",
    "to_db_time",
    "from_db_time",
]
