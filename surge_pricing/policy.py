"""policy – decides when a flight's price surges and when it reverts.

Trigger: ``surge_threshold`` searches within ``lookback_window``
  -> price = base_price * ``surge_multiplier`` (single level, no compounding)
Revert: ``cooldown_window`` after activation
  -> price = base_price, attempt history cleared
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from .models import AttemptLedger, apply_multiplier, ensure_utc

logger = logging.getLogger(__name__)

ATTEMPT_SCOPES = ("flight", "user")


@dataclass(frozen=True, slots=True)
class PricingPolicy:
    lookback_window: timedelta = timedelta(minutes=5)
    surge_threshold: int = 3
    surge_multiplier: Decimal = Decimal("1.10")
    cooldown_window: timedelta = timedelta(minutes=10)
    attempt_scope: str = "flight"

    def __post_init__(self) -> None:
        if self.attempt_scope not in ATTEMPT_SCOPES:
            raise ValueError(f"attempt_scope must be one of {ATTEMPT_SCOPES}")
        if self.surge_threshold <= 0:
            raise ValueError("surge_threshold must be greater than 0")
        if self.surge_multiplier <= 1:
            raise ValueError("surge_multiplier must be greater than 1")
        if self.lookback_window <= timedelta(0):
            raise ValueError("lookback_window must be positive")
        if self.cooldown_window <= timedelta(0):
            raise ValueError("cooldown_window must be positive")

    @classmethod
    def from_settings(cls, cfg: Any) -> "PricingPolicy":
        return cls(
            lookback_window=timedelta(seconds=cfg.lookback_window_s),
            surge_threshold=cfg.surge_threshold,
            surge_multiplier=Decimal(cfg.surge_multiplier),
            cooldown_window=timedelta(seconds=cfg.cooldown_window_s),
            attempt_scope=cfg.attempt_scope,
        )

    # ──────────────────────────────────────────────────────────

    def is_expired(self, ledger: AttemptLedger, now: datetime) -> bool:
        expires_at = ledger.surge_expires_at(self.cooldown_window)
        return expires_at is not None and expires_at <= ensure_utc(now)

    def expire_if_due(self, ledger: AttemptLedger, now: datetime) -> bool:
        """Revert an expired surge; return ``True`` if a reset happened."""
        if not self.is_expired(ledger, now):
            return False
        ledger.deactivate_surge()
        logger.info("Price reset for flight %s", ledger.flight_id)
        return True

    def apply_search(
        self, ledger: AttemptLedger, now: datetime, user_id: Optional[str] = None
    ) -> bool:
        """Record one search at *now*; return ``True`` if it started a surge."""
        self.expire_if_due(ledger, now)
        ledger.prune(now, self.lookback_window)
        ledger.record_attempt(now, user_id)

        # anonymous searches share the "" bucket in user scope
        counted_user = (user_id or "") if self.attempt_scope == "user" else None
        count = ledger.attempt_count_in_window(counted_user)
        if count < self.surge_threshold:
            return False

        activated = ledger.activate_surge(now, self.surge_multiplier)
        if activated:
            logger.info(
                "Price increased for flight %s to x%s after %d searches",
                ledger.flight_id,
                self.surge_multiplier,
                count,
            )
        return activated

    @staticmethod
    def effective_price(base_price: int, ledger: AttemptLedger) -> int:
        return apply_multiplier(base_price, ledger.price_multiplier)


__all__ = ["PricingPolicy", "ATTEMPT_SCOPES"]
