# app/services/pdf_reports.py
"""
Exportacion PDF de los reportes FLGO (A4 apaisado).
Solo dibuja datos ya calculados por app.services.aggregation.
"""
import datetime
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional

from reportlab.graphics.charts.barcharts import VerticalBarChart
from reportlab.graphics.charts.legends import Legend
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.schemas.report import PivotTable, SeriesPoint
from app.services.aggregation import display_date

BRAND = colors.Color(14 / 255, 74 / 255, 110 / 255)
MUTED = colors.Color(71 / 255, 85 / 255, 105 / 255)
STRIPE = colors.Color(241 / 255, 245 / 255, 249 / 255)
MEASUREMENT_COLOR = colors.HexColor("#3b82f6")
BUNKERING_COLOR = colors.HexColor("#22c55e")
MARGIN = 14 * mm


@dataclass
class ReportMeta:
    vessel: str = ""
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    fuel_type: Optional[str] = None
    generated_on: datetime.date = field(default_factory=datetime.date.today)


def fmt_volume(value: float) -> str:
    """Formato de-DE: 12.500 / 1.250,5"""
    if float(value).is_integer():
        text = f"{value:,.0f}"
    else:
        text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def _header(title: str, meta: ReportMeta) -> list:
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "FlgoTitle", parent=styles["Title"], fontSize=15, textColor=BRAND, alignment=0,
    )
    meta_style = ParagraphStyle(
        "FlgoMeta", parent=styles["Normal"], fontSize=9, textColor=MUTED, leading=12,
    )
    period_from = display_date(meta.date_from) if meta.date_from else "All time"
    period_to = display_date(meta.date_to) if meta.date_to else "Present"
    lines = [
        f"Vessel: {meta.vessel or '-'}",
        f"Period: {period_from} - {period_to}",
        f"Fuel Type: {meta.fuel_type or 'All fuel types'}",
        f"Generated: {meta.generated_on.strftime('%d %b %Y')}",
    ]
    return [Paragraph(title, title_style)] + [Paragraph(line, meta_style) for line in lines] + [Spacer(1, 6 * mm)]


def _table_style(n_rows: int, has_totals: bool) -> TableStyle:
    commands = [
        ("BACKGROUND", (0, 0), (-1, 0), BRAND),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("ALIGN", (0, 0), (0, -1), "LEFT"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for i in range(1, n_rows):
        if i % 2 == 0:
            commands.append(("BACKGROUND", (0, i), (-1, i), STRIPE))
    if has_totals:
        commands += [
            ("FONTNAME", (0, n_rows - 1), (-1, n_rows - 1), "Helvetica-Bold"),
            ("LINEABOVE", (0, n_rows - 1), (-1, n_rows - 1), 1, BRAND),
        ]
    return TableStyle(commands)


def _build(story: list) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=MARGIN, rightMargin=MARGIN, topMargin=MARGIN, bottomMargin=MARGIN,
    )
    doc.build(story)
    return buffer.getvalue()


def _bar_chart(points: List[SeriesPoint], width: float, height: float) -> Drawing:
    drawing = Drawing(width, height)
    chart = VerticalBarChart()
    chart.x, chart.y = 40, 40
    chart.width, chart.height = width - 60, height - 70
    chart.data = [
        [p.measurement for p in points],
        [p.bunkering for p in points],
    ]
    chart.categoryAxis.categoryNames = [p.date.replace("-", "/") for p in points]
    chart.categoryAxis.labels.angle = 45 if len(points) > 10 else 0
    chart.categoryAxis.labels.boxAnchor = "ne" if len(points) > 10 else "n"
    chart.categoryAxis.labels.fontSize = 7
    chart.valueAxis.valueMin = 0
    chart.valueAxis.labels.fontSize = 7
    chart.bars[0].fillColor = MEASUREMENT_COLOR
    chart.bars[1].fillColor = BUNKERING_COLOR
    chart.barSpacing = 1
    drawing.add(chart)

    legend = Legend()
    legend.x, legend.y = 40, height - 10
    legend.alignment = "right"
    legend.columnMaximum = 1
    legend.fontSize = 8
    legend.colorNamePairs = [(MEASUREMENT_COLOR, "Measurement"), (BUNKERING_COLOR, "Bunkering")]
    drawing.add(legend)
    return drawing


def render_bar_report_pdf(points: List[SeriesPoint], meta: ReportMeta) -> bytes:
    story = _header("FLGO - Bar Report", meta)
    page_width = landscape(A4)[0] - 2 * MARGIN
    story.append(_bar_chart(points, page_width, 95 * mm))
    story.append(Spacer(1, 6 * mm))

    data = [["Date", "Measurement", "Bunkering", "Total"]]
    for p in points:
        data.append([
            display_date(p.date),
            fmt_volume(p.measurement),
            fmt_volume(p.bunkering),
            fmt_volume(p.total),
        ])
    table = Table(data, repeatRows=1, hAlign="LEFT")
    table.setStyle(_table_style(len(data), has_totals=False))
    story.append(table)
    return _build(story)


def render_final_report_pdf(pivot: PivotTable, meta: ReportMeta) -> bytes:
    story = _header("FLGO - Final Report", meta)

    header = ["DATE"] + [name.upper() for name in pivot.tank_names] + ["TOTAL"]
    data = [header]
    for row in pivot.rows:
        data.append(
            [display_date(row.date)]
            + [fmt_volume(row.values[name]) for name in pivot.tank_names]
            + [fmt_volume(row.total)]
        )
    data.append(
        ["TOTAL"]
        + [fmt_volume(pivot.totals[name]) for name in pivot.tank_names]
        + [fmt_volume(pivot.grand_total)]
    )

    page_width = landscape(A4)[0] - 2 * MARGIN
    date_w, total_w = 30 * mm, 28 * mm
    n_tanks = len(pivot.tank_names)
    tank_w = max(20 * mm, (page_width - date_w - total_w) / n_tanks) if n_tanks else None
    col_widths = [date_w] + [tank_w] * n_tanks + [total_w]

    # repeatRows=1 repite la cabecera en cada salto de pagina
    table = Table(data, colWidths=col_widths, repeatRows=1, hAlign="LEFT")
    table.setStyle(_table_style(len(data), has_totals=True))
    story.append(table)
    return _build(story)
