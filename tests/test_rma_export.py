import io

from openpyxl import load_workbook

from aurora.schemas.reports import DayCount, RmaReport, TipoDemandaCount
from aurora.services.rma_export import (
    EMPTY_PERIOD,
    TITLE,
    daily_average,
    render_rma_excel,
    render_rma_pdf,
    rma_filename,
)


def make_report(**overrides) -> RmaReport:
    data = dict(
        mes=3,
        ano=2024,
        municipio="Município Aurora",
        total_atendimentos=4,
        atendimentos_por_tipo_demanda=[
            TipoDemandaCount(tipo_demanda="BENEFICIO_EVENTUAL", count=3),
            TipoDemandaCount(tipo_demanda="CADASTRO_UNICO", count=1),
        ],
        atendimentos_por_dia=[DayCount(dia=5, count=2), DayCount(dia=20, count=1), DayCount(dia=31, count=1)],
        total_familias_atendidas=1,
        total_individuos_atendidos=3,
    )
    data.update(overrides)
    return RmaReport(**data)


def sheet_rows(sheet):
    return [tuple(c for c in row) for row in sheet.iter_rows(values_only=True)]


def test_rma_filename():
    assert rma_filename(3, 2024, "xlsx") == "RMA_Março_2024.xlsx"
    assert rma_filename(12, 2025, "pdf") == "RMA_Dezembro_2025.pdf"


def test_daily_average_counts_days_with_activity():
    assert daily_average(make_report()) == 1
    assert daily_average(make_report(total_atendimentos=9, atendimentos_por_dia=[DayCount(dia=1, count=9)])) == 9
    assert daily_average(make_report(total_atendimentos=0, atendimentos_por_dia=[])) == 0


def test_excel_workbook_layout():
    wb = load_workbook(io.BytesIO(render_rma_excel(make_report())))
    assert wb.sheetnames == ["Resumo", "Por Tipo de Demanda", "Por Dia"]

    resumo = wb["Resumo"]
    assert resumo["A1"].value == TITLE
    values = {row[0]: row[1] for row in sheet_rows(resumo) if row[0]}
    assert values["Período:"] == "Março de 2024"
    assert values["Município:"] == "Município Aurora"
    assert values["Total de Atendimentos"] == 4
    assert values["Famílias Atendidas"] == 1
    assert values["Indivíduos Atendidos"] == 3
    assert values["Média Diária de Atendimentos"] == 1

    por_tipo = sheet_rows(wb["Por Tipo de Demanda"])
    assert por_tipo[2] == ("Tipo de Demanda", "Quantidade", "Percentual")
    assert por_tipo[3:] == [
        ("Benefício Eventual", 3, "75.0%"),
        ("Cadastro Único", 1, "25.0%"),
        ("TOTAL", 4, "100.0%"),
    ]

    por_dia = sheet_rows(wb["Por Dia"])
    assert por_dia[2] == ("Dia", "Atendimentos")
    assert por_dia[3:] == [("Dia 5", 2), ("Dia 20", 1), ("Dia 31", 1), ("TOTAL", 4)]


def test_excel_for_month_without_atendimentos():
    report = make_report(
        total_atendimentos=0,
        atendimentos_por_tipo_demanda=[],
        atendimentos_por_dia=[],
        total_familias_atendidas=0,
        total_individuos_atendidos=0,
    )
    wb = load_workbook(io.BytesIO(render_rma_excel(report)))
    assert wb["Por Tipo de Demanda"]["A4"].value == EMPTY_PERIOD
    assert wb["Por Dia"]["A4"].value == EMPTY_PERIOD


def test_pdf_is_rendered():
    content = render_rma_pdf(make_report())
    assert content.startswith(b"%PDF")
    assert content.rstrip().endswith(b"%%EOF")


def test_pdf_for_month_without_atendimentos():
    report = make_report(total_atendimentos=0, atendimentos_por_tipo_demanda=[], atendimentos_por_dia=[])
    assert render_rma_pdf(report).startswith(b"%PDF")
