"""scheduler – periodic price-reset sweep on APScheduler.

• every ``sweep_interval_s`` – revert surges whose cooldown has elapsed
• missed ticks are coalesced, never replayed; ticks never overlap
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.schedulers.base import BaseScheduler

from .errors import StorageUnavailable
from .gateway import PricingGateway

logger = logging.getLogger(__name__)

JOB_ID = "price-reset-sweep"


class PriceScheduler:
    def __init__(
        self,
        gateway: PricingGateway,
        interval_s: int = 60,
        *,
        scheduler: Optional[BaseScheduler] = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be greater than 0")
        self.gateway = gateway
        self.interval_s = interval_s
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def tick(self) -> int:
        """Run one sweep now; storage failures are logged, not raised."""
        started = time.monotonic()
        now = self.gateway.clock()
        logger.debug("Running price reset check at %s", now)
        try:
            reverted = self.gateway.sweep(now)
        except StorageUnavailable:
            logger.exception("Price reset sweep failed, retrying next tick")
            return 0
        elapsed = time.monotonic() - started
        if elapsed > self.interval_s:
            logger.warning(
                "Price reset sweep took %.1fs, longer than the %ss interval",
                elapsed,
                self.interval_s,
            )
        return reverted

    def start(self) -> None:
        self._scheduler.add_job(
            self.tick,
            "interval",
            seconds=self.interval_s,
            id=JOB_ID,
            coalesce=True,
            max_instances=1,
            misfire_grace_time=self.interval_s,
            replace_existing=True,
        )
        logger.info("Price scheduler starting, sweeping every %ss", self.interval_s)
        self._scheduler.start()

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Price scheduler stopped")

    def run_forever(self) -> None:
        """Sweep on a ``BlockingScheduler`` until interrupted."""
        if not isinstance(self._scheduler, BlockingScheduler):
            self._scheduler = BlockingScheduler(timezone="UTC")
        try:
            self.start()
        except (KeyboardInterrupt, SystemExit):
            pass
        finally:
            self.shutdown()

    def __enter__(self) -> "PriceScheduler":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()


__all__ = ["PriceScheduler", "JOB_ID"]
