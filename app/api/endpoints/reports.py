from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.api.dependencies import get_current_active_user, get_record_caches
from app.crud.crud_flgo import vessel_now
from app.crud.record_cache import RecordCacheRegistry
from app.schemas.flgo import FlgoRecord
from app.schemas.report import BarReport, FinalReport
from app.schemas.user import CurrentUser
from app.services import aggregation
from app.services.pdf_reports import ReportMeta, render_bar_report_pdf, render_final_report_pdf

router = APIRouter()


class ReportQuery:
    """Filtros comunes a los dos reportes (query string en camelCase)."""

    def __init__(
        self,
        date_from: Optional[str] = Query(None, alias="dateFrom"),
        date_to: Optional[str] = Query(None, alias="dateTo"),
        fuel_type: Optional[str] = Query(None, alias="fuelType"),
        vessel: Optional[str] = Query(None),
    ):
        self.date_from = date_from
        self.date_to = date_to
        self.fuel_type = fuel_type
        self.vessel = vessel

    def to_filter(self, user: CurrentUser) -> aggregation.ReportFilter:
        return aggregation.ReportFilter(
            date_from=self.date_from or None,
            date_to=self.date_to or None,
            fuel_type=self.fuel_type or None,
            vessel=self.vessel or user.assigned_vessel or None,
        )

    def meta(self, flt: aggregation.ReportFilter) -> ReportMeta:
        return ReportMeta(
            vessel=flt.vessel or "",
            date_from=flt.date_from,
            date_to=flt.date_to,
            fuel_type=flt.fuel_type,
            generated_on=vessel_now().date(),
        )


async def _snapshot(caches: RecordCacheRegistry, user: CurrentUser) -> List[FlgoRecord]:
    return await caches.get(user.assigned_vessel).ensure_populated()


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/bar", response_model=BarReport, summary="Serie por fecha: medicion vs bunkering")
async def read_bar_report(
    query: ReportQuery = Depends(),
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    records = await _snapshot(caches, current_user)
    flt = query.to_filter(current_user)
    return BarReport(
        points=aggregation.build_time_series(records, flt),
        fuel_types=aggregation.unique_fuel_types(records),
    )


@router.get("/bar.pdf", summary="Reporte de barras en PDF")
async def export_bar_report(
    query: ReportQuery = Depends(),
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    records = await _snapshot(caches, current_user)
    flt = query.to_filter(current_user)
    points = aggregation.build_time_series(records, flt)
    if not points:
        raise HTTPException(status_code=404, detail="No data for the selected filters.")
    return _pdf_response(render_bar_report_pdf(points, query.meta(flt)), "flgo-bar-report.pdf")


@router.get("/final", response_model=FinalReport, summary="Tabla fecha x tanque con totales")
async def read_final_report(
    query: ReportQuery = Depends(),
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    records = await _snapshot(caches, current_user)
    flt = query.to_filter(current_user)
    return FinalReport(
        pivot=aggregation.build_pivot(records, flt),
        fuel_types=aggregation.unique_fuel_types(records),
    )


@router.get("/final.pdf", summary="Reporte final en PDF")
async def export_final_report(
    query: ReportQuery = Depends(),
    caches: RecordCacheRegistry = Depends(get_record_caches),
    current_user: CurrentUser = Depends(get_current_active_user),
):
    records = await _snapshot(caches, current_user)
    flt = query.to_filter(current_user)
    pivot = aggregation.build_pivot(records, flt)
    if not pivot.rows:
        raise HTTPException(status_code=404, detail="No data for the selected filters.")
    return _pdf_response(render_final_report_pdf(pivot, query.meta(flt)), "flgo-final-report.pdf")
