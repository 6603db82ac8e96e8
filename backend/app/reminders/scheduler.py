"""In-process reminder scheduler.

State machine: stopped → running (``start``) → stopped (``stop``). One
instance is built by the process entry point (FastAPI lifespan); starting an
already-running scheduler is a no-op.

Cadence while running:
  - one catch-up pass ``startup_delay_seconds`` after start (missed reminders
    from downtime), then one pass every ``interval_seconds``
  - a maintenance pass every ``maintenance_interval_seconds``

Passes run in a worker thread so the blocking store/e-mail I/O never stalls
the event loop. Stopping cancels future ticks only; a pass already running
in its thread finishes.
"""
import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone

import sentry_sdk

from app.reminders.processor import MaintenanceStats, PassStats

logger = logging.getLogger(__name__)


class ReminderScheduler:
    def __init__(
        self,
        run_pass: Callable[[], PassStats],
        run_maintenance: Callable[[], MaintenanceStats] | None = None,
        *,
        interval_seconds: float = 3600,
        startup_delay_seconds: float = 5,
        maintenance_interval_seconds: float = 86400,
    ):
        self._run_pass = run_pass
        self._run_maintenance = run_maintenance
        self.interval_seconds = interval_seconds
        self.startup_delay_seconds = startup_delay_seconds
        self.maintenance_interval_seconds = maintenance_interval_seconds

        self._tasks: list[asyncio.Task] = []
        self._pass_lock = threading.Lock()

        self.last_pass: PassStats | None = None
        self.last_pass_at: datetime | None = None
        self.last_maintenance: MaintenanceStats | None = None
        self.last_error: str | None = None

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    # ─── Lifecycle ───

    def start(self) -> bool:
        """Schedule the periodic loops on the running event loop.

        Returns False (and schedules nothing) when already running.
        """
        if self.is_running:
            logger.warning("Reminder scheduler already running; start ignored")
            return False

        loop = asyncio.get_running_loop()
        self._tasks.append(
            loop.create_task(
                self._every(self.startup_delay_seconds, self.interval_seconds, self.run_once),
                name="reminder-pass",
            )
        )
        if self._run_maintenance is not None:
            self._tasks.append(
                loop.create_task(
                    self._every(
                        self.maintenance_interval_seconds,
                        self.maintenance_interval_seconds,
                        self.run_maintenance,
                    ),
                    name="reminder-maintenance",
                )
            )
        logger.info(
            "Reminder scheduler started (every %ss, first pass in %ss)",
            self.interval_seconds, self.startup_delay_seconds,
        )
        return True

    def stop(self) -> None:
        """Cancel all pending ticks. Safe to call when already stopped."""
        if not self._tasks:
            return
        for task in self._tasks:
            task.cancel()
        self._tasks = []
        logger.info("Reminder scheduler stopped")

    async def shutdown(self) -> None:
        """Stop and wait until the loop tasks have unwound."""
        tasks = list(self._tasks)
        self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ─── Passes ───

    def run_once(self) -> PassStats:
        """Run one reminder pass now (blocking). Used for catch-up, ticks and tests."""
        with self._pass_lock:
            stats = self._run_pass()
        self.last_pass = stats
        self.last_pass_at = datetime.now(timezone.utc)
        self.last_error = None
        return stats

    def run_maintenance(self) -> MaintenanceStats | None:
        if self._run_maintenance is None:
            return None
        stats = self._run_maintenance()
        self.last_maintenance = stats
        return stats

    async def _every(self, first_delay: float, interval: float, job: Callable[[], object]) -> None:
        await asyncio.sleep(first_delay)
        while True:
            try:
                await asyncio.to_thread(job)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # Fatal for this tick only; the next tick still runs
                self.last_error = str(exc)
                sentry_sdk.capture_exception(exc)
                logger.exception("Scheduled %s failed: %s", getattr(job, "__name__", job), exc)
            await asyncio.sleep(interval)
