# app/crud/crud_flgo.py
import datetime
import logging
from typing import List, Optional, Tuple

import pytz

from app.core.config import settings
from app.core.exceptions import Unauthorized, ValidationError
from app.crud import flgo_codec
from app.db.ragic import RagicGateway, RowFilter, RowSort
from app.models.ragic_fields import FLGO_FIELDS, SHEETS, TANK_FIELDS, USER_FIELDS
from app.schemas.flgo import EntryType, FlgoRecord, Tank, TankEntry
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)


def vessel_now(tz_name: Optional[str] = None) -> datetime.datetime:
    return datetime.datetime.now(pytz.timezone(tz_name or settings.VESSEL_TIMEZONE))


def local_now(tz_name: Optional[str] = None) -> Tuple[str, str]:
    """Fecha (YYYY-MM-DD) y hora (HH:MM) actuales en la zona horaria del barco."""
    now = vessel_now(tz_name)
    return now.strftime("%Y-%m-%d"), now.strftime("%H:%M")


def _extract_row_id(response) -> Optional[str]:
    # Ragic responde {"status": "SUCCESS", "ragicId": 123, ...} al escribir
    if isinstance(response, dict) and response.get("ragicId") not in (None, ""):
        return str(response["ragicId"])
    return None


class FlgoRepository:
    """
    Operaciones de dominio sobre la hoja FLGO: cada una valida, codifica y
    hace una sola llamada al gateway.
    """

    def __init__(self, gateway: RagicGateway, list_limit: Optional[int] = None):
        self.gateway = gateway
        self.list_limit = list_limit or settings.RECORD_LIST_LIMIT

    async def _write(
        self,
        user: Optional[CurrentUser],
        entry_type: EntryType,
        date: str,
        time: str,
        vessel: str,
        tanks: List[TankEntry],
        fuel_type: Optional[str] = None,
        record_id: Optional[str] = None,
    ) -> Optional[str]:
        if user is None:
            raise Unauthorized()
        if not vessel:
            raise ValidationError("vessel is required.")
        if not tanks:
            raise ValidationError("tanks are required.")
        if entry_type == EntryType.bunkering and not fuel_type:
            raise ValidationError("fuelType is required for bunkering.")

        if not date or not time:
            today, now = local_now()
            date, time = date or today, time or now

        is_edit = bool(record_id)
        encoded = flgo_codec.encode_entry(
            date, time, vessel, tanks, entry_type, user,
            fuel_type=fuel_type, is_edit=is_edit,
        )
        logger.info(
            "%s %s de %s (%d tanques) por %s",
            "Actualizando" if is_edit else "Creando",
            entry_type.value, vessel, len(tanks), user.email,
        )
        response = await self.gateway.write_row(
            SHEETS.FLGO, record_id, encoded.fields, encoded.subtables
        )
        return _extract_row_id(response) or record_id

    async def create_measurement(
        self,
        user: Optional[CurrentUser],
        date: str,
        time: str,
        vessel: str,
        tanks: List[TankEntry],
    ) -> Optional[str]:
        return await self._write(user, EntryType.measurement, date, time, vessel, tanks)

    async def create_bunkering(
        self,
        user: Optional[CurrentUser],
        date: str,
        time: str,
        vessel: str,
        fuel_type: str,
        tanks: List[TankEntry],
    ) -> Optional[str]:
        return await self._write(
            user, EntryType.bunkering, date, time, vessel, tanks, fuel_type=fuel_type
        )

    async def update_entry(
        self,
        user: Optional[CurrentUser],
        record_id: str,
        entry_type: EntryType,
        date: str,
        time: str,
        vessel: str,
        tanks: List[TankEntry],
        fuel_type: Optional[str] = None,
    ) -> Optional[str]:
        """
        Igual que el alta, pero escribe sobre `record_id` y conserva el ID de
        cada subfila existente. Tanques agregados en la edicion van con clave
        negativa.
        """
        if user is None:
            raise Unauthorized()
        if not record_id:
            raise ValidationError("record id is required.")
        return await self._write(
            user, entry_type, date, time, vessel, tanks,
            fuel_type=fuel_type, record_id=record_id,
        )

    async def list_entries(self, vessel: Optional[str]) -> List[FlgoRecord]:
        """
        Registros del barco, fecha descendente, hasta `list_limit`.
        Sin barco (administrador) devuelve [] sin llamar a Ragic.
        """
        if not vessel:
            return []
        # HEADER_VESSEL es el campo link; ASSIGNED_TO no se puede usar en where
        data = await self.gateway.fetch_rows(
            SHEETS.FLGO,
            filter=RowFilter(FLGO_FIELDS.HEADER_VESSEL, vessel),
            sort=RowSort(FLGO_FIELDS.DATE, descending=True),
            limit=self.list_limit,
        )
        records = flgo_codec.decode_rows(data)
        logger.info("Registros FLGO de %s: %d", vessel, len(records))
        return records

    # --- Datos de referencia ---

    async def list_tanks(self, vessel: str) -> List[Tank]:
        if not vessel:
            raise ValidationError("vessel query param required.")
        data = await self.gateway.fetch_rows(
            SHEETS.TANKS, filter=RowFilter(TANK_FIELDS.VESSEL_NAME, vessel)
        )
        return flgo_codec.decode_tanks(data)

    async def list_vessels(self) -> List[str]:
        data = await self.gateway.fetch_rows(SHEETS.VESSELS)
        return flgo_codec.decode_vessel_names(data)

    async def get_user_profile(self, email: str) -> CurrentUser:
        data = await self.gateway.fetch_rows(
            SHEETS.USERS, filter=RowFilter(USER_FIELDS.EMAIL, email)
        )
        return flgo_codec.decode_user_profile(email, data)
