"""
Planificateur des verifications d'entretien / Maintenance check scheduler.

- Balayage periodique de tous les vehicules (30 min par defaut)
- Verification a la demande d'un vehicule ou de toute la flotte
- File de re-verifications apres cloture d'un entretien, avec reessais

- Periodic sweep over every vehicle (30 min by default)
- On-demand check for one vehicle or the whole fleet
- Follow-up queue for re-checks after a completed visit, with retries
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleet_upkeep.config import settings
from fleet_upkeep.database import async_session
from fleet_upkeep.exceptions import NotFoundError
from fleet_upkeep.models.reminder_settings import ReminderSettings
from fleet_upkeep.models.vehicle import Vehicle
from fleet_upkeep.services.maintenance_schedule import MaintenanceScheduleCalculator
from fleet_upkeep.services.notification_engine import NotificationEngine
from fleet_upkeep.services.vehicle_locks import VehicleLocks, vehicle_locks

log = logging.getLogger(__name__)


async def evaluate_vehicle(db: AsyncSession, vehicle: Vehicle) -> bool:
    """Calcul + evaluation dans la transaction courante / Forecast and evaluate in the current transaction.

    L'appelant tient le verrou du vehicule / The caller holds the vehicle lock.
    """
    result = await db.execute(
        select(ReminderSettings).where(ReminderSettings.vehicle_id == vehicle.id)
    )
    reminder = result.scalar_one_or_none()
    if reminder is None or not reminder.notifications_enabled:
        return False
    forecast = await MaintenanceScheduleCalculator.forecast(db, vehicle.id, vehicle.current_km, reminder)
    return await NotificationEngine.evaluate(db, vehicle, reminder, forecast)


class MaintenanceScheduler:
    """Declencheurs de re-evaluation / Re-evaluation triggers."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        locks: VehicleLocks = vehicle_locks,
        interval_minutes: float = settings.MAINTENANCE_SWEEP_INTERVAL_MINUTES,
        concurrency: int = settings.SWEEP_CONCURRENCY,
        follow_up_attempts: int = settings.FOLLOW_UP_MAX_ATTEMPTS,
        follow_up_delay: float = settings.FOLLOW_UP_RETRY_DELAY_SECONDS,
    ):
        self.session_factory = session_factory
        self.locks = locks
        self.interval_seconds = interval_minutes * 60
        self.concurrency = max(1, concurrency)
        self.follow_up_attempts = max(1, follow_up_attempts)
        self.follow_up_delay = follow_up_delay
        self._follow_ups: asyncio.Queue[int] = asyncio.Queue()
        self._stop: asyncio.Event | None = None
        self._tasks: list[asyncio.Task] = []

    # ─── Declencheurs / Triggers ───

    async def check_vehicle(self, vehicle_id: int) -> bool:
        """Re-evaluation synchrone d'un vehicule / Synchronous single-vehicle check."""
        async with self.locks.hold(vehicle_id):
            async with self.session_factory() as db:
                vehicle = await db.get(Vehicle, vehicle_id)
                if vehicle is None:
                    raise NotFoundError("Vehicle", vehicle_id)
                created = await evaluate_vehicle(db, vehicle)
                await db.commit()
        return created

    async def check_all(self) -> int:
        """Balayage complet / Full sweep. Retourne le nombre d'alertes creees."""
        log.info("Starting maintenance notification sweep")
        async with self.session_factory() as db:
            result = await db.execute(select(Vehicle.id).order_by(Vehicle.id))
            vehicle_ids = list(result.scalars().all())

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _unit(vehicle_id: int) -> bool:
            async with semaphore:
                try:
                    return await self.check_vehicle(vehicle_id)
                except Exception:
                    # Echec isole : le vehicule sera repris au prochain cycle
                    # Isolated failure: the vehicle is retried next cycle
                    log.exception("Maintenance check failed for vehicle %s", vehicle_id)
                    return False

        outcomes = await asyncio.gather(*(_unit(vid) for vid in vehicle_ids))
        created = sum(1 for created in outcomes if created)
        log.info("Sweep finished: %s vehicles, %s notifications created", len(vehicle_ids), created)
        return created

    # ─── Re-verifications differees / Follow-up checks ───

    def enqueue_follow_up(self, vehicle_id: int) -> None:
        """A appeler apres le commit de l'ecriture declencheuse / Call after the triggering write commits."""
        self._follow_ups.put_nowait(vehicle_id)
        log.debug("Queued follow-up check for vehicle %s", vehicle_id)

    @property
    def pending_follow_ups(self) -> int:
        return self._follow_ups.qsize()

    async def _run_follow_up(self, vehicle_id: int) -> None:
        for attempt in range(1, self.follow_up_attempts + 1):
            try:
                await self.check_vehicle(vehicle_id)
                log.info("Follow-up check done for vehicle %s", vehicle_id)
                return
            except NotFoundError:
                log.warning("Follow-up check skipped: vehicle %s no longer exists", vehicle_id)
                return
            except Exception:
                log.exception(
                    "Follow-up check for vehicle %s failed (attempt %s/%s)",
                    vehicle_id, attempt, self.follow_up_attempts,
                )
                if attempt < self.follow_up_attempts:
                    await asyncio.sleep(self.follow_up_delay * attempt)
        log.error("Giving up follow-up check for vehicle %s until next sweep", vehicle_id)

    async def drain(self) -> int:
        """Traiter les re-verifications en attente / Process pending follow-ups inline."""
        processed = 0
        while not self._follow_ups.empty():
            vehicle_id = self._follow_ups.get_nowait()
            try:
                await self._run_follow_up(vehicle_id)
            finally:
                self._follow_ups.task_done()
            processed += 1
        return processed

    async def _follow_up_loop(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            vehicle_id = await self._follow_ups.get()
            try:
                await self._run_follow_up(vehicle_id)
            finally:
                self._follow_ups.task_done()

    # ─── Boucle periodique / Periodic loop ───

    async def run(self, stop: asyncio.Event) -> None:
        while not stop.is_set():
            try:
                await self.check_all()
            except Exception:
                log.exception("Maintenance sweep error")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    def start(self, sweep: bool = True) -> None:
        """Lancer le consommateur, et la boucle si demande / Start the follow-up worker, and the sweep loop if asked.

        Les re-verifications tournent toujours, meme sans balayage periodique.
        Follow-up checks always run, even with the periodic sweep off.
        """
        if self._tasks:
            return
        self._stop = asyncio.Event()
        self._tasks = [asyncio.create_task(self._follow_up_loop(self._stop))]
        if sweep:
            self._tasks.append(asyncio.create_task(self.run(self._stop)))
            log.info("Maintenance scheduler started (every %s s)", self.interval_seconds)
        else:
            log.info("Maintenance scheduler started without periodic sweep")

    async def stop(self) -> None:
        if not self._tasks:
            return
        self._stop.set()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        log.info("Maintenance scheduler stopped")


# Singleton global / Global singleton
scheduler = MaintenanceScheduler(async_session)
