import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_current_active_user, get_record_caches, get_repository
from app.crud.crud_flgo import FlgoRepository
from app.crud.record_cache import RecordCacheRegistry
from app.schemas.flgo import (
    BunkeringIn,
    EntryType,
    MeasurementIn,
    RecordList,
    RecordUpdateIn,
    TankList,
    VesselList,
    WriteResult,
)
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter()


def _resolve_vessel(user: CurrentUser, requested: str) -> str:
    """
    Barco destino de una escritura. Un usuario normal solo escribe en su
    barco asignado; el administrador debe indicarlo.
    """
    if user.is_admin:
        return requested
    if requested and requested != user.assigned_vessel:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Vessel not assigned to this user.",
        )
    return user.assigned_vessel


@router.get("/vessels", response_model=VesselList, summary="Lista de barcos")
async def read_vessels(
    repository: FlgoRepository = Depends(get_repository),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    return {"vessels": await repository.list_vessels()}


@router.get("/tanks", response_model=TankList, summary="Tanques de un barco")
async def read_tanks(
    vessel: str = Query("", description="Nombre del barco"),
    repository: FlgoRepository = Depends(get_repository),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    return {"tanks": await repository.list_tanks(vessel)}


@router.get(
    "/records",
    response_model=RecordList,
    summary="Mediciones y bunkerings del barco del usuario (hasta 200)",
)
async def read_records(
    refresh: bool = False,
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    # Administrador (sin barco): el cache del barco "" siempre queda vacio
    cache = caches.get(current_user.assigned_vessel)
    if refresh:
        await cache.refresh()
    else:
        await cache.ensure_populated()
    return {
        "records": cache.records,
        "measurements": cache.measurements,
        "bunkerings": cache.bunkerings,
    }


@router.post("/measurement", response_model=WriteResult, summary="Alta o edicion de una medicion")
async def submit_measurement(
    entry: MeasurementIn,
    repository: FlgoRepository = Depends(get_repository),
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    vessel = _resolve_vessel(current_user, entry.vessel)
    if entry.edit_ragic_id:
        ragic_id = await repository.update_entry(
            current_user, entry.edit_ragic_id, EntryType.measurement,
            entry.date, entry.time, vessel, entry.tanks,
        )
    else:
        ragic_id = await repository.create_measurement(
            current_user, entry.date, entry.time, vessel, entry.tanks
        )
    # Solo se invalida tras una escritura exitosa
    caches.invalidate(vessel)
    return WriteResult(ragic_id=ragic_id)


@router.post("/bunkering", response_model=WriteResult, summary="Alta o edicion de un bunkering")
async def submit_bunkering(
    entry: BunkeringIn,
    repository: FlgoRepository = Depends(get_repository),
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    vessel = _resolve_vessel(current_user, entry.vessel)
    if entry.edit_ragic_id:
        ragic_id = await repository.update_entry(
            current_user, entry.edit_ragic_id, EntryType.bunkering,
            entry.date, entry.time, vessel, entry.tanks, fuel_type=entry.fuel_type,
        )
    else:
        ragic_id = await repository.create_bunkering(
            current_user, entry.date, entry.time, vessel, entry.fuel_type, entry.tanks
        )
    caches.invalidate(vessel)
    return WriteResult(ragic_id=ragic_id)


@router.put("/records/{record_id}", response_model=WriteResult, summary="Edicion de un registro existente")
async def update_record(
    record_id: str,
    entry: RecordUpdateIn,
    repository: FlgoRepository = Depends(get_repository),
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    vessel = _resolve_vessel(current_user, entry.vessel)
    ragic_id = await repository.update_entry(
        current_user, record_id, entry.entry_type,
        entry.date, entry.time, vessel, entry.tanks, fuel_type=entry.fuel_type,
    )
    caches.invalidate(vessel)
    return WriteResult(ragic_id=ragic_id)
