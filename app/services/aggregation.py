# app/services/aggregation.py
"""
Agregaciones para los reportes FLGO. Funciones puras sobre una lista de
registros ya decodificados: sin I/O, mismo resultado para la misma entrada.

Las fechas se comparan como string, lo cual es valido solo porque la forma
canonica (YYYY-MM-DD) es de ancho fijo y va de mayor a menor.
"""
import datetime
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from app.schemas.flgo import EntryType, FlgoRecord, TankEntry
from app.schemas.report import PivotRow, PivotTable, SeriesPoint

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

DateLike = Union[str, datetime.date, None]


def normalize_date(value: DateLike) -> str:
    """
    Ragic guarda "YYYY/MM/DD"; los filtros llegan como "YYYY-MM-DD".
    Todo pasa a guiones. Idempotente.
    """
    if value is None:
        return ""
    if isinstance(value, datetime.datetime):
        value = value.date()
    if isinstance(value, datetime.date):
        return value.isoformat()
    return str(value).strip().replace("/", "-")


def display_date(value: DateLike) -> str:
    """ "YYYY-MM-DD" -> "DD.MM.YYYY" (metadatos de los PDF)."""
    iso = normalize_date(value)
    if not iso:
        return "-"
    parts = iso.split("-")
    if len(parts) != 3:
        return iso
    y, m, d = parts
    return f"{d}.{m}.{y}"


def parse_volume(value) -> float:
    """
    Volumen como numero. Vacio, no numerico o infinito -> 0.
    Acepta separadores de miles con coma ("1,250.5").
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    text = str(value).strip().replace(",", "").replace(" ", "")
    match = _NUMBER_RE.match(text)
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ReportFilter:
    date_from: DateLike = None
    date_to: DateLike = None
    fuel_type: Optional[str] = None
    vessel: Optional[str] = None

    def matches(self, record: FlgoRecord) -> bool:
        record_date = normalize_date(record.date)
        date_from = normalize_date(self.date_from)
        date_to = normalize_date(self.date_to)
        if date_from and record_date < date_from:
            return False
        if date_to and record_date > date_to:
            return False
        if self.fuel_type and not any(t.fuel_type == self.fuel_type for t in record.tanks):
            return False
        if self.vessel and record.vessel != self.vessel:
            return False
        return True

    def tanks_of(self, record: FlgoRecord) -> List[TankEntry]:
        """Subfilas que cuentan para el reporte (solo el combustible filtrado)."""
        if not self.fuel_type:
            return list(record.tanks)
        return [t for t in record.tanks if t.fuel_type == self.fuel_type]


NO_FILTER = ReportFilter()


def filter_records(records: Iterable[FlgoRecord], flt: ReportFilter = NO_FILTER) -> List[FlgoRecord]:
    return [r for r in records if flt.matches(r)]


def unique_fuel_types(records: Iterable[FlgoRecord]) -> List[str]:
    return sorted({t.fuel_type for r in records for t in r.tanks if t.fuel_type})


def build_time_series(records: Iterable[FlgoRecord], flt: ReportFilter = NO_FILTER) -> List[SeriesPoint]:
    """
    Un punto por fecha (ascendente) con la suma de reportVolume de
    mediciones y de bunkerings. Cada valor se redondea por separado a
    partir de las sumas sin redondear.
    """
    by_date: Dict[str, List[float]] = {}
    for record in filter_records(records, flt):
        if record.entry_type == EntryType.measurement.value:
            slot = 0
        elif record.entry_type == EntryType.bunkering.value:
            slot = 1
        else:
            continue
        sums = by_date.setdefault(normalize_date(record.date), [0.0, 0.0])
        sums[slot] += sum(parse_volume(t.report_volume) for t in flt.tanks_of(record))

    return [
        SeriesPoint(
            date=day,
            measurement=round_half_up(measurement),
            bunkering=round_half_up(bunkering),
            total=round_half_up(measurement + bunkering),
        )
        for day, (measurement, bunkering) in sorted(by_date.items())
    ]


def build_pivot(records: Iterable[FlgoRecord], flt: ReportFilter = NO_FILTER) -> PivotTable:
    """
    Tabla fecha x tanque con la suma de reportVolume. Toda fila trae un
    valor (0 si no hubo dato) para cada tanque descubierto.
    """
    filtered = filter_records(records, flt)

    tank_names = sorted({t.tank_name for r in filtered for t in flt.tanks_of(r)})

    by_date: Dict[str, Dict[str, float]] = {}
    for record in filtered:
        entry = by_date.setdefault(normalize_date(record.date), {})
        for tank in flt.tanks_of(record):
            entry[tank.tank_name] = entry.get(tank.tank_name, 0.0) + parse_volume(tank.report_volume)

    rows = []
    for day in sorted(by_date):
        values = {name: by_date[day].get(name, 0.0) for name in tank_names}
        rows.append(PivotRow(date=day, values=values, total=sum(values.values())))

    totals = {name: sum(row.values[name] for row in rows) for name in tank_names}
    grand_total = sum(totals[name] for name in tank_names)

    return PivotTable(tank_names=tank_names, rows=rows, totals=totals, grand_total=grand_total)
