# app/schemas/flgo.py
from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum


class EntryType(str, Enum):
    measurement = "Measurement"
    bunkering = "Bunkering"


# Discriminante de combustible para una medicion de todo el barco
ALL_FUEL_TYPES = "ALL"


class _RagicModel(BaseModel):
    """
    Base comun: Ragic entrega todo como string, y el front usa camelCase.
    Los numeros que lleguen en el JSON se guardan como string.
    """

    class Config:
        populate_by_name = True
        coerce_numbers_to_str = True
        extra = 'ignore'


class Tank(_RagicModel):
    """Tanque de referencia (hoja masterdata/10). Solo lectura."""
    tank_name: str = Field("", alias="tankName")
    fuel_type: str = Field("", alias="fuelType")
    max_capacity: str = Field("", alias="maxCapacity")
    last_rob: str = Field("", alias="lastRob")


class TankEntry(_RagicModel):
    """Fila de la subtabla: un tanque dentro de un registro FLGO."""
    sub_row_id: Optional[str] = Field(None, alias="subtableRowId")
    tank_name: str = Field("", alias="tankName")
    fuel_type: str = Field("", alias="fuelType")
    max_capacity: str = Field("", alias="maxCapacity")
    last_rob: str = Field("", alias="lastRob")
    actual_volume: str = Field("", alias="actualVolume")
    bunkered_volume: str = Field("", alias="bunkeredVolume")
    report_volume: str = Field("", alias="reportVolume")


class FlgoRecord(_RagicModel):
    record_id: Optional[str] = Field(None, alias="ragicId")
    date: str = ""
    time: str = ""
    vessel: str = ""
    entry_type: str = Field("", alias="entryType")
    percentage_filled: str = Field("", alias="percentageFilled")
    done_by: str = Field("", alias="doneBy")
    water_total_volume: str = Field("", alias="waterTotalVolume")
    fuel_total_volume: str = Field("", alias="fuelTotalVolume")
    lube_total_volume: str = Field("", alias="lubeTotalVolume")
    adblue_total_volume: str = Field("", alias="adBlueTotalVolume")
    tanks: List[TankEntry] = []


# --- Esquemas de entrada (API) ---

class MeasurementIn(_RagicModel):
    date: str = ""
    time: str = ""
    vessel: str = ""
    tanks: List[TankEntry] = []
    edit_ragic_id: Optional[str] = Field(None, alias="editRagicId")


class BunkeringIn(MeasurementIn):
    fuel_type: str = Field("", alias="fuelType")


class RecordUpdateIn(_RagicModel):
    entry_type: EntryType = Field(..., alias="entryType")
    date: str = ""
    time: str = ""
    vessel: str = ""
    fuel_type: str = Field("", alias="fuelType")
    tanks: List[TankEntry] = []


# --- Esquemas de salida ---

class WriteResult(BaseModel):
    ok: bool = True
    ragic_id: Optional[str] = Field(None, alias="ragicId")

    class Config:
        populate_by_name = True


class RecordList(BaseModel):
    records: List[FlgoRecord]
    measurements: List[FlgoRecord]
    bunkerings: List[FlgoRecord]


class TankList(BaseModel):
    tanks: List[Tank]


class VesselList(BaseModel):
    vessels: List[str]
