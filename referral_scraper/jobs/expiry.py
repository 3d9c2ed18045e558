"""Expiry sweeper: marks stored referrals invalid once they have expired."""
import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from referral_scraper.models import utcnow
from referral_scraper.store.referrals import ReferralStore

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodic job that invalidates referrals whose expiration date has passed."""

    def __init__(
        self,
        store: ReferralStore,
        interval: float = 3600.0,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self.passes = 0

    async def sweep_once(self) -> int:
        """Run one pass. Returns the number of records invalidated."""
        now = self._clock()
        expired = await self.store.find_expired(now)
        invalidated = 0

        for referral in expired:
            try:
                current = await self.store.get(referral.id)
                if current is None or not current.is_valid:
                    continue
                await self.store.update(current.id, is_valid=False, last_validated=now)
                invalidated += 1
            except Exception as e:
                logger.error(f"Error invalidating referral {referral.id}: {e}")

        self.passes += 1
        if invalidated:
            logger.info(f"Invalidated {invalidated} expired referrals")
        else:
            logger.debug("No expired referrals to invalidate")
        return invalidated

    async def run_forever(self) -> None:
        """Sweep every interval until cancelled."""
        logger.info(f"Expiry sweeper started (interval: {self.interval:g}s)")
        while True:
            await self._sleep(self.interval)
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error validating expired codes: {e}", exc_info=True)
