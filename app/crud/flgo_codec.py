# app/crud/flgo_codec.py
"""
Traduccion entre el modelo de dominio (FlgoRecord / TankEntry) y el formato
generico de Ragic: dict de campos por ID + subtabla "_subtable_<id>" con
filas indexadas por clave.

Escritura: claves negativas ("-1", "-2", ...) crean filas de subtabla; el ID
positivo existente actualiza esa fila. Una fila solo conserva su ID si el
registro completo es una edicion: en un alta todo va con clave negativa,
aunque el tanque traiga un ID cacheado de otro registro.

Lectura: total. Campos ausentes -> "", claves de metadatos ignoradas,
formas inesperadas se registran y se saltan.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.models.ragic_fields import (
    FLGO_FIELDS,
    FLGO_HEADER_MAP,
    FLGO_SUBROW_MAP,
    TANK_MAP,
    USER_MAP,
    VESSEL_FIELDS,
    is_meta_key,
    subtable_key,
)
from app.schemas.flgo import ALL_FUEL_TYPES, EntryType, FlgoRecord, Tank, TankEntry
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)


@dataclass
class EncodedEntry:
    fields: Dict[str, str]
    # el cuerpo "_subtable_<id>" lo arma RagicGateway.write_row
    subtables: Dict[str, Dict[str, Dict[str, str]]] = field(default_factory=dict)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def assign_row_keys(tanks: Iterable[TankEntry], is_edit: bool) -> List[str]:
    """
    Clave de subtabla para cada tanque, en orden.
    La numeracion negativa solo avanza con las filas nuevas.
    """
    keys = []
    next_new = -1
    for tank in tanks:
        if is_edit and tank.sub_row_id:
            keys.append(str(tank.sub_row_id))
        else:
            keys.append(str(next_new))
            next_new -= 1
    return keys


def encode_entry(
    date: str,
    time: str,
    vessel: str,
    tanks: List[TankEntry],
    entry_type: EntryType,
    user: CurrentUser,
    fuel_type: Optional[str] = None,
    is_edit: bool = False,
) -> EncodedEntry:
    # % llenado y totales son formulas: nunca se envian
    fuel_filter = ALL_FUEL_TYPES if entry_type == EntryType.measurement else (fuel_type or "")
    header = {
        FLGO_FIELDS.DATE: date,
        FLGO_FIELDS.TIME: time,
        FLGO_FIELDS.ENTRY_TYPE: entry_type.value,
        FLGO_FIELDS.FUEL_TYPE_FILTER: fuel_filter,
        FLGO_FIELDS.DONE_BY: user.name,
        FLGO_FIELDS.ASSIGNED_TO: vessel,
        FLGO_FIELDS.HEADER_VESSEL: vessel,
    }

    rows: Dict[str, Dict[str, str]] = {}
    for key, tank in zip(assign_row_keys(tanks, is_edit), tanks):
        row = {
            FLGO_FIELDS.SUB_VESSEL_NAME: vessel,
            FLGO_FIELDS.SUB_FUEL_TYPE: tank.fuel_type,
            FLGO_FIELDS.SUB_TANK_NAME: tank.tank_name,
            FLGO_FIELDS.SUB_MAX_CAPACITY: tank.max_capacity,
            FLGO_FIELDS.SUB_LAST_ROB: tank.last_rob,
            FLGO_FIELDS.SUB_ACTUAL_VOLUME: tank.actual_volume,
        }
        if entry_type == EntryType.bunkering:
            row[FLGO_FIELDS.SUB_BUNKERED_VOLUME] = tank.bunkered_volume
        rows[key] = row

    return EncodedEntry(fields=header, subtables={FLGO_FIELDS.SUB_TABLE_ID: rows})


def _project(row: Mapping[str, Any], mapping: Mapping[str, str]) -> Dict[str, str]:
    return {name: _as_text(row.get(field_id)) for name, field_id in mapping.items()}


def decode_tank_entry(sub_row_id: str, row: Mapping[str, Any]) -> TankEntry:
    return TankEntry(sub_row_id=str(sub_row_id), **_project(row, FLGO_SUBROW_MAP))


def decode_record(row_id: str, row: Mapping[str, Any]) -> FlgoRecord:
    subtable = row.get(subtable_key(FLGO_FIELDS.SUB_TABLE_ID))
    tanks: List[TankEntry] = []
    if isinstance(subtable, Mapping):
        for sub_id, sub_row in subtable.items():
            if is_meta_key(sub_id):
                continue
            if not isinstance(sub_row, Mapping):
                logger.warning("Fila %s: subfila %s con forma inesperada, se ignora", row_id, sub_id)
                continue
            tanks.append(decode_tank_entry(sub_id, sub_row))
    elif subtable is not None:
        logger.warning("Fila %s: subtabla con forma inesperada, se ignora", row_id)

    return FlgoRecord(record_id=str(row_id), tanks=tanks, **_project(row, FLGO_HEADER_MAP))


def decode_rows(data: Mapping[str, Any]) -> List[FlgoRecord]:
    """Decodifica la respuesta completa de la hoja FLGO, en el orden recibido."""
    records = []
    for row_id, row in data.items():
        if is_meta_key(row_id):
            continue
        if not isinstance(row, Mapping):
            logger.warning("Fila %s con forma inesperada (%s), se ignora", row_id, type(row).__name__)
            continue
        records.append(decode_record(row_id, row))
    return records


def _data_rows(data: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    return [
        row for key, row in data.items()
        if not is_meta_key(key) and isinstance(row, Mapping)
    ]


def decode_tanks(data: Mapping[str, Any]) -> List[Tank]:
    return [Tank(**_project(row, TANK_MAP)) for row in _data_rows(data)]


def decode_vessel_names(data: Mapping[str, Any]) -> List[str]:
    names = {_as_text(row.get(VESSEL_FIELDS.NAME)).strip() for row in _data_rows(data)}
    return sorted(name for name in names if name)


def decode_user_profile(email: str, data: Mapping[str, Any]) -> CurrentUser:
    """Primera fila de la hoja de usuarios (el email es unico)."""
    rows = _data_rows(data)
    profile = _project(rows[0], USER_MAP) if rows else {}
    return CurrentUser(
        email=email,
        name=profile.get("name", ""),
        assigned_vessel=profile.get("assigned_vessel", ""),
        vessel_abbreviation=profile.get("vessel_abbreviation", ""),
    )
