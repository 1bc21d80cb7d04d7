from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Dict, Optional

import pandas as pd

from .db import DB_FILE, from_db_time
from .models import ensure_utc, utc_now

logger = logging.getLogger(__name__)

COLUMNS = [
    "id",
    "flight_number",
    "base_price",
    "current_price",
    "multiplier",
    "surged",
    "attempts_in_window",
    "surge_expires_at",
]


def pricing_snapshot(
    db_path: str = DB_FILE,
    now: Optional[datetime] = None,
    *,
    lookback: timedelta = timedelta(minutes=5),
    cooldown: timedelta = timedelta(minutes=10),
) -> pd.DataFrame:
    """Return the pricing state of every flight as a DataFrame.

    ``attempts_in_window`` counts stored attempts younger than *lookback*
    at *now*; the stored ledger is not pruned.
    """
    now = ensure_utc(now or utc_now())

    conn = sqlite3.connect(db_path)
    try:
        df = pd.read_sql_query(
            """
            SELECT id, flight_number, base_price, current_price,
                   price_multiplier, surge_activated_at, attempts
              FROM flights
             ORDER BY id
            """,
            conn,
        )
    finally:
        conn.close()

    if df.empty:
        return pd.DataFrame(columns=COLUMNS)

    def _in_window(raw: str) -> int:
        return sum(
            1 for item in json.loads(raw) if now - from_db_time(item["at"]) < lookback
        )

    df["multiplier"] = df["price_multiplier"].astype(float)
    df["surged"] = df["surge_activated_at"].notna()
    df["attempts_in_window"] = df["attempts"].map(_in_window)
    df["surge_expires_at"] = (
        pd.to_datetime(df["surge_activated_at"], utc=True, format="ISO8601")
        + pd.Timedelta(cooldown)
    )
    return df[COLUMNS].reset_index(drop=True)


def summary(df: pd.DataFrame) -> Dict[str, int]:
    """Totals over a :func:`pricing_snapshot` frame."""
    if df.empty:
        return {"flights": 0, "surged": 0, "surcharge_total": 0}
    return {
        "flights": int(len(df)),
        "surged": int(df["surged"].sum()),
        "surcharge_total": int((df["current_price"] - df["base_price"]).sum()),
    }


__all__ = ["pricing_snapshot", "summary"]
