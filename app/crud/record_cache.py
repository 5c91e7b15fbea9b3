# app/crud/record_cache.py
"""
Cache de registros FLGO por barco.

Estados: EMPTY -> LOADING -> POPULATED. `ensure_populated` es idempotente y
las llamadas concurrentes comparten la misma tarea en curso, asi que nunca
hay dos lecturas a Ragic para el mismo barco a la vez.

El contenido se reemplaza entero en cada lectura: quien lee ve el conjunto
anterior completo o el nuevo completo, nunca una mezcla.
"""
import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from app.schemas.flgo import EntryType, FlgoRecord

logger = logging.getLogger(__name__)

Loader = Callable[[str], Awaitable[List[FlgoRecord]]]


class CacheState(str, Enum):
    empty = "empty"
    loading = "loading"
    populated = "populated"


class RecordCache:
    def __init__(self, vessel: str, loader: Loader):
        self.vessel = vessel
        self._loader = loader
        self._records: Tuple[FlgoRecord, ...] = ()
        self._populated = False
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self.error: Optional[str] = None

    @property
    def state(self) -> CacheState:
        if self._task is not None and not self._task.done():
            return CacheState.loading
        if self._populated:
            return CacheState.populated
        return CacheState.empty

    @property
    def records(self) -> List[FlgoRecord]:
        return list(self._records)

    @property
    def measurements(self) -> List[FlgoRecord]:
        return [r for r in self._records if r.entry_type == EntryType.measurement.value]

    @property
    def bunkerings(self) -> List[FlgoRecord]:
        return [r for r in self._records if r.entry_type == EntryType.bunkering.value]

    async def _load(self) -> List[FlgoRecord]:
        generation = self._generation
        try:
            records = await self._loader(self.vessel)
        except Exception as e:
            self.error = str(e) or e.__class__.__name__
            logger.warning("No se pudieron cargar los registros de %s: %s", self.vessel, self.error)
            raise
        self._records = tuple(records)
        # invalidado durante la carga: la proxima llamada vuelve a leer
        self._populated = generation == self._generation
        self.error = None
        logger.info("Cache de %s cargado: %d registros", self.vessel, len(self._records))
        return list(self._records)

    async def ensure_populated(self) -> List[FlgoRecord]:
        if self._task is not None and not self._task.done():
            # shield: si un llamador se cancela, la carga sigue para los demas
            return await asyncio.shield(self._task)
        # poblado por una carga previa o por restore()
        if self._populated:
            return self.records
        self._task = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._task)

    async def refresh(self) -> List[FlgoRecord]:
        """Fuerza una lectura nueva (se une a la que este en curso, si hay)."""
        if self._task is not None and not self._task.done():
            return await asyncio.shield(self._task)
        self._task = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._task)

    def invalidate(self):
        """Marca el cache como obsoleto; los datos viejos quedan hasta la proxima lectura."""
        self._generation += 1
        self._populated = False

    def restore(self, records: List[FlgoRecord]):
        if self._task is not None and not self._task.done():
            raise RuntimeError(f"Cache de {self.vessel} cargando, no se puede restaurar")
        self._records = tuple(records)
        self._populated = True

    def to_dict(self) -> dict:
        return {
            "vessel": self.vessel,
            "records": [r.model_dump(by_alias=True) for r in self._records],
        }


class RecordCacheRegistry:
    """Un RecordCache por barco. Vive en app.state, no como global de modulo."""

    def __init__(self, loader: Loader):
        self._loader = loader
        self._caches: Dict[str, RecordCache] = {}

    def get(self, vessel: str) -> RecordCache:
        cache = self._caches.get(vessel)
        if cache is None:
            cache = self._caches[vessel] = RecordCache(vessel, self._loader)
        return cache

    def invalidate(self, vessel: str):
        if vessel in self._caches:
            self._caches[vessel].invalidate()

    def to_dict(self) -> dict:
        """Contrato de serializacion para persistir entre reinicios."""
        return {
            vessel: cache.to_dict()["records"]
            for vessel, cache in self._caches.items()
            if cache.state == CacheState.populated
        }

    def restore(self, payload: dict):
        for vessel, raw_records in payload.items():
            records = [FlgoRecord.model_validate(r) for r in raw_records]
            self.get(vessel).restore(records)
