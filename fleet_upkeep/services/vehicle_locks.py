"""
Verrous par vehicule / Per-vehicle locks.

Linearise validation compteur et evaluation d'alerte pour un meme vehicule ;
des vehicules differents avancent en parallele.
Linearizes counter validation and notification evaluation per vehicle;
different vehicles proceed in parallel.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager


class VehicleLocks:
    """Registre de verrous asyncio indexe par vehicule / asyncio lock registry keyed by vehicle id.

    Les verrous ne sont pas reentrants : un appelant qui tient deja le verrou
    d'un vehicule appelle les methodes internes sans le reprendre.
    Locks are not reentrant: a caller already holding a vehicle's lock calls
    the engine methods directly instead of taking it again.
    """

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._waiters: dict[int, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, vehicle_id: int):
        lock = self._locks[vehicle_id]
        self._waiters[vehicle_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[vehicle_id] -= 1
            # Liberer les verrous inutilises / Drop idle locks
            if self._waiters[vehicle_id] == 0:
                del self._waiters[vehicle_id]
                self._locks.pop(vehicle_id, None)

    def is_held(self, vehicle_id: int) -> bool:
        lock = self._locks.get(vehicle_id)
        return lock is not None and lock.locked()


# Singleton global / Global singleton
vehicle_locks = VehicleLocks()
