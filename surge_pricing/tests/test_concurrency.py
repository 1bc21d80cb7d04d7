import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from surge_pricing import db
from surge_pricing.locks import FlightLocks

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _hammer(gateway, flight_id, n, when):
    barrier = threading.Barrier(n)

    def _search(i):
        barrier.wait()
        return gateway.record_search(flight_id, f"user-{i}", when)

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(_search, range(n)))


def test_concurrent_searches_trigger_exactly_one_surge(gateway, add_flight, caplog):
    caplog.set_level(logging.INFO, logger="surge_pricing.policy")
    flight_id = add_flight(base_price=2000)
    n = 8

    prices = _hammer(gateway, flight_id, n, T0 + timedelta(seconds=5))

    ledger = db.get_flight(flight_id, db_path=gateway.db_path).ledger
    assert ledger.price_multiplier == Decimal("1.10")
    assert ledger.attempt_count_in_window() == n
    assert sorted(prices) == [2000, 2000] + [2200] * (n - 2)
    increases = [r for r in caplog.records if "Price increased" in r.getMessage()]
    assert len(increases) == 1


def test_sweep_racing_searches_leaves_consistent_state(gateway, add_flight):
    flight_ids = [add_flight(base_price=2000) for _ in range(3)]
    for flight_id in flight_ids:
        for s in (0, 1, 2):
            gateway.record_search(flight_id, "u1", T0 + timedelta(seconds=s))

    later = T0 + timedelta(minutes=11)
    with ThreadPoolExecutor(max_workers=6) as pool:
        futures = [pool.submit(gateway.sweep, later)]
        futures += [
            pool.submit(gateway.record_search, fid, "u2", later)
            for fid in flight_ids
            for _ in range(2)
        ]
        for fut in futures:
            fut.result()

    for flight_id in flight_ids:
        flight = db.get_flight(flight_id, db_path=gateway.db_path)
        assert flight.ledger.surge_activated_at is None
        assert flight.ledger.price_multiplier == Decimal("1.0")
        assert flight.current_price == 2000
        assert flight.ledger.attempt_count_in_window() == 2


def test_flight_locks_are_per_flight():
    locks = FlightLocks()

    assert locks.get(1) is locks.get(1)
    assert locks.get(1) is not locks.get(2)

    with locks.hold(1):
        assert locks.get(2).acquire(blocking=False)
        locks.get(2).release()
        assert not locks.get(1).acquire(blocking=False)
    assert len(locks) == 2
