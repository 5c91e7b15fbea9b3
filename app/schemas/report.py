# app/schemas/report.py
from pydantic import BaseModel, Field
from typing import Dict, List


class _ReportModel(BaseModel):
    class Config:
        populate_by_name = True


class SeriesPoint(_ReportModel):
    """Un punto del grafico de barras: totales de un dia."""
    date: str
    measurement: int
    bunkering: int
    total: int


class PivotRow(_ReportModel):
    date: str
    values: Dict[str, float]
    total: float


class PivotTable(_ReportModel):
    tank_names: List[str] = Field(alias="tankNames")
    rows: List[PivotRow]
    totals: Dict[str, float]
    grand_total: float = Field(alias="grandTotal")


class BarReport(_ReportModel):
    points: List[SeriesPoint]
    fuel_types: List[str] = Field(alias="fuelTypes")


class FinalReport(_ReportModel):
    pivot: PivotTable
    fuel_types: List[str] = Field(alias="fuelTypes")
