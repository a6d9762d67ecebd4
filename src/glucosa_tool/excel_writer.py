"""Generación de Excel formateado para entrega médica."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

from glucosa_tool.model import Statistics

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")

_HEADER_MAP: dict[str, str] = {
    "weekday": "Día",
    "date": "Fecha",
    "time": "Hora",
    "glucose_mg_dl": "Glucosa (mg/dL)",
    "kind": "Tipo",
    "level": "Nivel",
    "exercise_minutes": "Minutos\nejercicio",
    "weight": "Peso (kg)",
    "systolic": "Sistólica",
    "diastolic": "Diastólica",
    "waist": "Cintura (cm)",
    "hip": "Cadera (cm)",
    "notes": "Notas",
    "label": "Día/Mes",
    "glucose_count": "Mediciones",
    "glucose_min": "Mínimo",
    "glucose_max": "Máximo",
    "glucose_avg": "Promedio",
}

_SUMMARY_LABELS: tuple[tuple[str, str], ...] = (
    ("count", "Total de mediciones"),
    ("count_last_7_days", "Mediciones últimos 7 días"),
    ("count_last_30_days", "Mediciones últimos 30 días"),
    ("average", "Promedio (mg/dL)"),
    ("max", "Máximo (mg/dL)"),
    ("min", "Mínimo (mg/dL)"),
    ("avg_fasting", "Promedio en ayunas"),
    ("avg_postprandial", "Promedio postprandial"),
    ("count_in_range", "Mediciones en rango"),
    ("count_out_of_range", "Mediciones fuera de rango"),
    ("percent_in_range", "% en rango"),
    ("trend", "Tendencia"),
    ("avg_exercise_minutes", "Promedio minutos de ejercicio"),
    ("total_exercise_minutes", "Total minutos de ejercicio"),
    ("days_with_exercise", "Días con ejercicio"),
    ("avg_weight", "Peso promedio (kg)"),
    ("avg_bmi", "IMC promedio"),
    ("avg_systolic", "Presión sistólica promedio"),
    ("avg_diastolic", "Presión diastólica promedio"),
    ("avg_waist", "Cintura promedio (cm)"),
    ("avg_hip", "Cadera promedio (cm)"),
    ("waist_hip_ratio", "Índice cintura-cadera"),
)


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the doctor workbook."""

    sheet_name: str = "Mediciones"
    summary_sheet_name: str = "Resumen"
    daily_sheet_name: str = "Diario"
    series_sheet_name: str = "Serie 30 días"


def _weekday_label(i: object) -> str:
    """Convierte índice 0-6 (lunes-domingo) a etiqueta de 3 letras."""
    try:
        if i is None or (isinstance(i, float) and pd.isna(i)):
            return ""
        if isinstance(i, int | float):
            idx = int(i)
            return _DIA_SEMANA[idx] if 0 <= idx < 7 else ""
        return ""
    except (ValueError, TypeError):
        return ""


def _add_weekday_column(export_df: pd.DataFrame) -> pd.DataFrame:
    """Añade columna weekday (Día) a partir de date."""
    if "date" not in export_df.columns:
        return export_df
    weekday_series = pd.to_datetime(export_df["date"]).dt.weekday
    if weekday_series.empty:
        return export_df
    export_df = export_df.copy()
    export_df["weekday"] = weekday_series.map(_weekday_label)
    cols = ["weekday"] + [c for c in export_df.columns if c != "weekday"]
    return export_df[cols]


def summary_frame(stats: Statistics, recommendations: Sequence[str]) -> pd.DataFrame:
    """Two-column (Indicador, Valor) table with statistics and recommendations."""
    rows: list[dict[str, object]] = [
        {"Indicador": label, "Valor": getattr(stats, attr)}
        for attr, label in _SUMMARY_LABELS
    ]
    for idx, text in enumerate(recommendations, start=1):
        rows.append({"Indicador": f"Recomendación {idx}", "Valor": text})
    return pd.DataFrame(rows, columns=["Indicador", "Valor"])


def write_doctor_xlsx(
    df: pd.DataFrame,
    out_path: Path,
    layout: ExcelLayout,
    summary: pd.DataFrame | None = None,
    daily: pd.DataFrame | None = None,
    series: pd.DataFrame | None = None,
) -> None:
    """Write a formatted Excel file suitable for printing.

    Args:
        df: Measurement history (one row per reading).
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.
        summary: Optional statistics table written to a second sheet.
        daily: Optional per-day glucose aggregates (see
            ``consolidate.daily_glucose_summary``).
        series: Optional recent-readings series (see
            ``consolidate.glucose_series``).
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    export_df = _add_weekday_column(df.copy())
    export_df = export_df.rename(columns=_HEADER_MAP)

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name=layout.sheet_name)
        _format_sheet(writer.book[layout.sheet_name])
        if summary is not None:
            summary.to_excel(
                writer, index=False, sheet_name=layout.summary_sheet_name
            )
            ws = writer.book[layout.summary_sheet_name]
            _format_sheet(ws)
            ws.column_dimensions["A"].width = 32
            ws.column_dimensions["B"].width = 60
        for frame, name in (
            (daily, layout.daily_sheet_name),
            (series, layout.series_sheet_name),
        ):
            if frame is None:
                continue
            frame.rename(columns=_HEADER_MAP).to_excel(
                writer, index=False, sheet_name=name
            )
            _format_sheet(writer.book[name])


def _style_header_row(ws: Any) -> None:
    """Aplica fuente negrita, alineación y borde a la fila de cabecera."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for cell in ws[1]:
        cell.font = header_font
        cell.alignment = center
        cell.border = border


def _style_body_rows(ws: Any) -> None:
    """Aplica alineación y borde a las filas de datos."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = center
            cell.border = border


def _get_header_col_index(ws: Any) -> dict[str, int]:
    """Devuelve mapa nombre de cabecera -> índice de columna (1-based)."""
    headers = [str(cell.value) for cell in ws[1]]
    return {name: idx + 1 for idx, name in enumerate(headers)}


def _apply_column_widths(ws: Any, col_index: dict[str, int]) -> None:
    """Establece anchos de columna para evitar ###."""
    widths = [
        ("Día", 6),
        ("Fecha", 12),
        ("Hora", 8),
        ("Glucosa (mg/dL)", 14),
        ("Tipo", 16),
        ("Nivel", 14),
        ("Minutos\nejercicio", 10),
        ("Peso (kg)", 10),
        ("Sistólica", 10),
        ("Diastólica", 10),
        ("Cintura (cm)", 12),
        ("Cadera (cm)", 12),
        ("Notas", 30),
        ("Día/Mes", 8),
        ("Mediciones", 11),
        ("Mínimo", 10),
        ("Máximo", 10),
        ("Promedio", 10),
    ]
    for header, width in widths:
        idx = col_index.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    """Aplica formatos numéricos por cabecera."""
    fmt_map: dict[str, str] = {
        "Fecha": "dd/mm/yyyy",
        "Glucosa (mg/dL)": "0.0",
        "Minutos\nejercicio": "0",
        "Peso (kg)": "0.0",
        "Sistólica": "0",
        "Diastólica": "0",
        "Cintura (cm)": "0.0",
        "Cadera (cm)": "0.0",
        "Mínimo": "0.0",
        "Máximo": "0.0",
        "Promedio": "0.0",
    }
    for row in ws.iter_rows(min_row=2):
        for header, fmt in fmt_map.items():
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to a worksheet.

    Args:
        ws: openpyxl worksheet.
    """
    _style_header_row(ws)
    _style_body_rows(ws)
    col_index = _get_header_col_index(ws)
    _apply_column_widths(ws, col_index)
    _apply_number_formats(ws, col_index)
