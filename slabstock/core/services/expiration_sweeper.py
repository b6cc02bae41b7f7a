"""
Expiration sweeper.

Periodically runs the reservation expiry scan. Overlapping runs are
harmless: each reservation is expired at most once.
"""

import asyncio

from slabstock.config import get_logger
from slabstock.core.services.reservation_service import ReservationService, SweepResult


class ExpirationSweeper:
    """Runs ``ReservationService.expire_reservations`` on a fixed interval."""

    def __init__(
        self,
        reservation_service: ReservationService,
        *,
        interval_seconds: float = 300.0,
        run_on_start: bool = True,
        logger=None,
    ):
        self._service = reservation_service
        self._interval = interval_seconds
        self._run_on_start = run_on_start
        self._logger = logger or get_logger(__name__)

    async def sweep(self, *, timeout: float | None = None) -> SweepResult:
        return await self._service.expire_reservations(timeout=timeout)

    async def run(self, stop_event: asyncio.Event) -> None:
        """Sweep every interval until ``stop_event`` is set."""
        self._logger.info("expiration_sweeper_started", interval_seconds=self._interval)

        if self._run_on_start:
            await self._sweep_logged()

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                await self._sweep_logged()

        self._logger.info("expiration_sweeper_stopped")

    async def _sweep_logged(self) -> None:
        try:
            await self.sweep()
        except Exception as e:
            # Retried on the next tick
            self._logger.error("expiration_sweep_failed", error=str(e))
