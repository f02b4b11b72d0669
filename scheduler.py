import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import settings
from connection_controller import ConnectionController
from license_controller import LicenseController
from models import ConnectionPhase
from tokens import Outcome

logger = logging.getLogger(__name__)

STATUS_JOB_ID = "vpn_status_refresh"
LICENSE_JOB_ID = "license_refresh"

class RefreshScheduler:
    """
    Periodic background refresh while the view is mounted.

    Feeds the same controller paths as user actions. ``stop()`` is
    synchronous and idempotent; calls already in flight finish but the
    controllers discard their results once released.
    """

    def __init__(self, connection: ConnectionController, license_controller: LicenseController,
                 interval_ms: Optional[int] = None, license_interval_ms: Optional[int] = None,
                 scheduler: Optional[AsyncIOScheduler] = None):
        self.connection = connection
        self.license = license_controller
        self.interval_ms = interval_ms or settings.REFRESH_INTERVAL_MS
        self.license_interval_ms = license_interval_ms or settings.LICENSE_REFRESH_INTERVAL_MS
        self.scheduler = scheduler or AsyncIOScheduler()
        self._started = False
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._started and not self._stopped

    def start(self):
        """
        Start the interval jobs. Must be called from a running event loop.
        """
        if self._started or self._stopped:
            return

        self.scheduler.add_job(
            self.tick,
            'interval',
            seconds=self.interval_ms / 1000,
            id=STATUS_JOB_ID,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.add_job(
            self.license_tick,
            'interval',
            seconds=self.license_interval_ms / 1000,
            id=LICENSE_JOB_ID,
            max_instances=1,
            coalesce=True
        )
        if not self.scheduler.running:
            self.scheduler.start()
        self._started = True
        logger.debug("Refresh scheduler started (every %d ms)", self.interval_ms)

    def stop(self):
        if self._stopped:
            return
        self._stopped = True
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.debug("Refresh scheduler stopped")

    async def tick(self) -> Outcome:
        """One status poll; no backend call unless a tunnel is up."""
        if self._stopped:
            return Outcome.SKIPPED
        if self.connection.phase is not ConnectionPhase.CONNECTED:
            return Outcome.SKIPPED
        return await self.connection.refresh()

    async def license_tick(self) -> Outcome:
        if self._stopped:
            return Outcome.SKIPPED
        return await self.license.refresh()
