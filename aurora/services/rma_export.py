"""
Rendering of the RMA (Relatório Mensal de Atendimentos) as Excel and PDF.

Both renderers are synchronous and CPU bound; routes call them through
run_in_threadpool.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import List

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from aurora.db.models.enums import TIPO_DEMANDA_LABELS
from aurora.schemas.reports import RmaReport

MONTH_NAMES = [
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
]

TITLE = "Relatório Mensal de Atendimentos (RMA)"
EMPTY_PERIOD = "Nenhum atendimento registrado no período"

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"


# PUBLIC_INTERFACE
def rma_filename(mes: int, ano: int, ext: str) -> str:
    """RMA_<Mês>_<ano>.<ext>, e.g. RMA_Outubro_2025.xlsx."""
    return f"RMA_{MONTH_NAMES[mes - 1]}_{ano}.{ext}"


def _period(report: RmaReport) -> str:
    return f"{MONTH_NAMES[report.mes - 1]} de {report.ano}"


# PUBLIC_INTERFACE
def daily_average(report: RmaReport) -> int:
    """Atendimentos per day with activity, rounded."""
    if not report.atendimentos_por_dia:
        return 0
    return round(report.total_atendimentos / len(report.atendimentos_por_dia))


def _percent(count: int, total: int) -> str:
    return f"{(count / total * 100) if total else 0:.1f}%"


def _tipo_rows(report: RmaReport) -> List[List]:
    return [
        [TIPO_DEMANDA_LABELS.get(item.tipo_demanda, item.tipo_demanda), item.count, _percent(item.count, report.total_atendimentos)]
        for item in report.atendimentos_por_tipo_demanda
    ]


def _generated_on() -> str:
    return datetime.now(tz=timezone.utc).strftime("%d/%m/%Y")


# PUBLIC_INTERFACE
def render_rma_excel(report: RmaReport) -> bytes:
    """
    Workbook with three sheets:
      - Resumo: header block and summary metrics (including the daily average)
      - Por Tipo de Demanda: count and percentage per demand type, TOTAL row
      - Por Dia: count per day of month, TOTAL row
    """
    header = [
        ["Período:", _period(report)],
        ["Município:", report.municipio],
        ["Gerado em:", _generated_on()],
        ["Sistema:", "AuroraSocial"],
    ]
    summary = pd.DataFrame(
        [
            ["Total de Atendimentos", report.total_atendimentos],
            ["Famílias Atendidas", report.total_familias_atendidas],
            ["Indivíduos Atendidos", report.total_individuos_atendidos],
            ["Média Diária de Atendimentos", daily_average(report)],
        ],
        columns=["Métrica", "Valor"],
    )

    tipo_rows = _tipo_rows(report)
    if tipo_rows:
        tipo_rows.append(["TOTAL", report.total_atendimentos, "100.0%"])
    else:
        tipo_rows.append([EMPTY_PERIOD, None, None])
    por_tipo = pd.DataFrame(tipo_rows, columns=["Tipo de Demanda", "Quantidade", "Percentual"])

    dia_rows: List[List] = [[f"Dia {item.dia}", item.count] for item in report.atendimentos_por_dia]
    if dia_rows:
        dia_rows.append(["TOTAL", sum(item.count for item in report.atendimentos_por_dia)])
    else:
        dia_rows.append([EMPTY_PERIOD, None])
    por_dia = pd.DataFrame(dia_rows, columns=["Dia", "Atendimentos"])

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame(header).to_excel(writer, sheet_name="Resumo", index=False, header=False, startrow=2)
        summary.to_excel(writer, sheet_name="Resumo", index=False, startrow=len(header) + 4)
        por_tipo.to_excel(writer, sheet_name="Por Tipo de Demanda", index=False, startrow=2)
        por_dia.to_excel(writer, sheet_name="Por Dia", index=False, startrow=2)

        resumo = writer.sheets["Resumo"]
        resumo["A1"] = TITLE
        resumo.cell(row=len(header) + 4, column=1, value="RESUMO GERAL")
        resumo.column_dimensions["A"].width = 30
        resumo.column_dimensions["B"].width = 20

        sheet = writer.sheets["Por Tipo de Demanda"]
        sheet["A1"] = "ATENDIMENTOS POR TIPO DE DEMANDA"
        sheet.column_dimensions["A"].width = 40
        sheet.column_dimensions["B"].width = 15
        sheet.column_dimensions["C"].width = 15

        sheet = writer.sheets["Por Dia"]
        sheet["A1"] = "ATENDIMENTOS POR DIA DO MÊS"
        sheet.column_dimensions["A"].width = 15
        sheet.column_dimensions["B"].width = 15
    return buffer.getvalue()


_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
    ]
)


def _table(rows: List[List], total_row: bool) -> Table:
    table = Table(rows, repeatRows=1, hAlign="LEFT")
    table.setStyle(_TABLE_STYLE)
    if total_row:
        table.setStyle(TableStyle([("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold")]))
    return table


# PUBLIC_INTERFACE
def render_rma_pdf(report: RmaReport) -> bytes:
    """Official A4 layout: header, summary, per demand type and per day tables."""
    styles = getSampleStyleSheet()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=TITLE,
        leftMargin=36,
        rightMargin=36,
        topMargin=36,
        bottomMargin=36,
    )

    elements: list = [
        Paragraph(TITLE, styles["Title"]),
        Paragraph(f"Período: {_period(report)}", styles["Normal"]),
        Paragraph(f"Município: {report.municipio}", styles["Normal"]),
        Paragraph(f"Gerado em: {_generated_on()} | Sistema: AuroraSocial", styles["Normal"]),
        Spacer(1, 12),
        Paragraph("Resumo", styles["Heading2"]),
        _table(
            [
                ["Métrica", "Valor"],
                ["Total de Atendimentos", str(report.total_atendimentos)],
                ["Famílias Atendidas", str(report.total_familias_atendidas)],
                ["Indivíduos Atendidos", str(report.total_individuos_atendidos)],
                ["Média Diária", str(daily_average(report))],
            ],
            total_row=False,
        ),
        Spacer(1, 12),
        Paragraph("Atendimentos por Tipo de Demanda", styles["Heading2"]),
    ]

    tipo_rows = _tipo_rows(report)
    if tipo_rows:
        rows = [["Tipo de Demanda", "Quantidade", "Percentual"]]
        rows += [[label, str(count), pct] for label, count, pct in tipo_rows]
        rows.append(["Total", str(report.total_atendimentos), "100.0%"])
        elements.append(_table(rows, total_row=True))
    else:
        elements.append(Paragraph(EMPTY_PERIOD, styles["Italic"]))

    elements += [Spacer(1, 12), Paragraph("Atendimentos por Dia do Mês", styles["Heading2"])]
    if report.atendimentos_por_dia:
        rows = [["Dia", "Atendimentos"]]
        rows += [[f"Dia {item.dia}", str(item.count)] for item in report.atendimentos_por_dia]
        elements.append(_table(rows, total_row=False))
    else:
        elements.append(Paragraph(EMPTY_PERIOD, styles["Italic"]))

    doc.build(elements)
    return buffer.getvalue()
