# app/models/ragic_fields.py
"""
IDs de hojas y de campos de Ragic.
Ningun otro modulo debe escribir un ID de campo a mano: siempre por aqui.
"""

SUBTABLE_PREFIX = "_subtable_"
# Ragic marca sus claves de metadatos (_ragicAnnotation_, _index_, ...) con "_"
META_PREFIX = "_"


def subtable_key(subtable_id: str) -> str:
    return f"{SUBTABLE_PREFIX}{subtable_id}"


def is_meta_key(key: str) -> bool:
    return str(key).startswith(META_PREFIX)


# Rutas de hoja (relativas a RAGIC_BASE_URL)
class SHEETS:
    USERS = "ragic-setup/1"
    VESSELS = "masterdata/3"
    TANKS = "masterdata/10"
    FLGO = "flgo/28"


class USER_FIELDS:
    EMAIL = "1"
    NAME = "4"
    ASSIGNED_VESSEL = "1000191"
    VESSEL_ABBREVIATION = "1000543"


class VESSEL_FIELDS:
    NAME = "1000064"


class TANK_FIELDS:
    VESSEL_NAME = "1022111"  # filtro de tanques por barco
    TANK_NAME = "1000079"
    FUEL_TYPE = "1000078"
    MAX_CAPACITY = "1000080"
    LAST_ROB = "1000795"


class FLGO_FIELDS:
    # Cabecera
    DATE = "1008768"
    TIME = "1008771"
    ENTRY_TYPE = "1008766"
    FUEL_TYPE_FILTER = "1008767"
    PERCENTAGE_FILLED = "1011855"  # formula
    DONE_BY = "1008761"
    ASSIGNED_TO = "1008756"  # load-from-link, solo lectura: no sirve en where
    HEADER_VESSEL = "1008755"  # campo link: el unico valido para filtrar

    # Totales por categoria (formula)
    WATER_TOTAL_VOLUME = "1017880"
    FUEL_TOTAL_VOLUME = "1017881"
    LUBE_TOTAL_VOLUME = "1017882"
    ADBLUE_TOTAL_VOLUME = "1017883"

    SUB_TABLE_ID = "1008797"

    # Subtabla (una fila por tanque)
    SUB_VESSEL_NAME = "1008778"
    SUB_FUEL_TYPE = "1008779"
    SUB_TANK_NAME = "1008780"
    SUB_MAX_CAPACITY = "1008781"
    SUB_LAST_ROB = "1008782"
    SUB_ACTUAL_VOLUME = "1008798"
    SUB_BUNKERED_VOLUME = "1008783"
    REPORT_VOLUME = "1017884"


# Campo de dominio -> ID de Ragic, usado por el codec al decodificar
FLGO_HEADER_MAP = {
    "date": FLGO_FIELDS.DATE,
    "time": FLGO_FIELDS.TIME,
    "vessel": FLGO_FIELDS.HEADER_VESSEL,
    "entry_type": FLGO_FIELDS.ENTRY_TYPE,
    "percentage_filled": FLGO_FIELDS.PERCENTAGE_FILLED,
    "done_by": FLGO_FIELDS.DONE_BY,
    "water_total_volume": FLGO_FIELDS.WATER_TOTAL_VOLUME,
    "fuel_total_volume": FLGO_FIELDS.FUEL_TOTAL_VOLUME,
    "lube_total_volume": FLGO_FIELDS.LUBE_TOTAL_VOLUME,
    "adblue_total_volume": FLGO_FIELDS.ADBLUE_TOTAL_VOLUME,
}

FLGO_SUBROW_MAP = {
    "tank_name": FLGO_FIELDS.SUB_TANK_NAME,
    "fuel_type": FLGO_FIELDS.SUB_FUEL_TYPE,
    "max_capacity": FLGO_FIELDS.SUB_MAX_CAPACITY,
    "last_rob": FLGO_FIELDS.SUB_LAST_ROB,
    "actual_volume": FLGO_FIELDS.SUB_ACTUAL_VOLUME,
    "bunkered_volume": FLGO_FIELDS.SUB_BUNKERED_VOLUME,
    "report_volume": FLGO_FIELDS.REPORT_VOLUME,
}

TANK_MAP = {
    "tank_name": TANK_FIELDS.TANK_NAME,
    "fuel_type": TANK_FIELDS.FUEL_TYPE,
    "max_capacity": TANK_FIELDS.MAX_CAPACITY,
    "last_rob": TANK_FIELDS.LAST_ROB,
}

USER_MAP = {
    "email": USER_FIELDS.EMAIL,
    "name": USER_FIELDS.NAME,
    "assigned_vessel": USER_FIELDS.ASSIGNED_VESSEL,
    "vessel_abbreviation": USER_FIELDS.VESSEL_ABBREVIATION,
}
