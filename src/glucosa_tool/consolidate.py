"""Tablas pandas para historial, resumen diario y serie del gráfico."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta

import pandas as pd
from dateutil import tz

from glucosa_tool.metrics import classify_glucose
from glucosa_tool.model import Measurement

_LOCAL_TZ = tz.gettz("America/Argentina/Buenos_Aires")

MEASUREMENT_COLUMNS = [
    "id",
    "date",
    "time",
    "glucose_mg_dl",
    "kind",
    "level",
    "exercise_minutes",
    "weight",
    "systolic",
    "diastolic",
    "waist",
    "hip",
    "notes",
]


def measurements_to_frame(measurements: Sequence[Measurement]) -> pd.DataFrame:
    """Convert measurements to a DataFrame, newest first, with classification."""
    rows = [
        {
            "id": m.id,
            "date": m.date,
            "time": m.time,
            "glucose_mg_dl": m.value,
            "kind": m.kind.value,
            "level": classify_glucose(m.value, m.kind).level,
            "exercise_minutes": (m.exercise_minutes or 0) if m.exercised else None,
            "weight": m.weight,
            "systolic": m.systolic,
            "diastolic": m.diastolic,
            "waist": m.waist,
            "hip": m.hip,
            "notes": m.notes,
        }
        for m in measurements
    ]
    df = pd.DataFrame(rows, columns=MEASUREMENT_COLUMNS)
    if df.empty:
        return df
    return df.sort_values(["date", "time"], ascending=False).reset_index(drop=True)


def daily_glucose_summary(measurement_frame: pd.DataFrame) -> pd.DataFrame:
    """Aggregate glucose by day (count/min/max/avg)."""
    if measurement_frame.empty:
        return pd.DataFrame(
            columns=[
                "date",
                "glucose_count",
                "glucose_min",
                "glucose_max",
                "glucose_avg",
            ]
        )
    g = measurement_frame.groupby("date", as_index=False).agg(
        glucose_count=("glucose_mg_dl", "count"),
        glucose_min=("glucose_mg_dl", "min"),
        glucose_max=("glucose_mg_dl", "max"),
        glucose_avg=("glucose_mg_dl", "mean"),
    )
    g["glucose_avg"] = g["glucose_avg"].round(1)
    return g.sort_values("date").reset_index(drop=True)


def glucose_series(
    measurements: Sequence[Measurement],
    days: int = 30,
    today: date | None = None,
) -> pd.DataFrame:
    """Readings from the last ``days`` days, oldest first, for the chart.

    Returns DataFrame columns:
        date, label (dd/mm), glucose_mg_dl, kind, level
    """
    if today is None:
        today = datetime.now(tz=_LOCAL_TZ).date()
    since = today - timedelta(days=days)

    rows = [
        {
            "date": m.date,
            "time": m.time,
            "label": m.date.strftime("%d/%m"),
            "glucose_mg_dl": m.value,
            "kind": m.kind.value,
            "level": classify_glucose(m.value, m.kind).level,
        }
        for m in measurements
        if m.date >= since
    ]
    columns = ["date", "label", "glucose_mg_dl", "kind", "level"]
    if not rows:
        return pd.DataFrame(columns=columns)
    out = pd.DataFrame(rows).sort_values(["date", "time"], kind="stable")
    return out[columns].reset_index(drop=True)
