"""Modelos tipados para mediciones de glucosa, perfil y estadísticas."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from dateutil.relativedelta import relativedelta


class MeasurementKind(str, Enum):
    """Moment of the day a reading was taken (values as stored)."""

    FASTING = "ayunas"
    POSTPRANDIAL = "postprandial"
    BEFORE_MEAL = "antes_comida"
    AFTER_MEAL = "despues_comida"
    OTHER = "otro"

    @classmethod
    def parse(cls, raw: str) -> MeasurementKind:
        """Accept stored values or English member names (case-insensitive)."""
        text = raw.strip().lower()
        for kind in cls:
            if text in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Tipo de medición desconocido: {raw!r}")


@dataclass(frozen=True)
class Measurement:
    """One glucose reading event, with optional body and vital metrics."""

    value: float
    date: date
    time: str = ""
    kind: MeasurementKind = MeasurementKind.OTHER
    notes: str | None = None
    medication: str | None = None
    exercised: bool = False
    exercise_minutes: int | None = None
    symptoms: tuple[str, ...] = ()
    weight: float | None = None
    systolic: float | None = None
    diastolic: float | None = None
    waist: float | None = None
    hip: float | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, MeasurementKind):
            object.__setattr__(self, "kind", MeasurementKind.parse(str(self.kind)))


@dataclass(frozen=True)
class Profile:
    """Single user profile."""

    first_name: str
    paternal_surname: str = ""
    maternal_surname: str = ""
    birth_date: date | None = None
    age: int | None = None
    email: str = ""
    height_cm: float | None = None
    weight_kg: float | None = None
    years_since_diagnosis: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    @property
    def full_name(self) -> str:
        parts = (self.first_name, self.paternal_surname, self.maternal_surname)
        return " ".join(p for p in parts if p)


@dataclass(frozen=True)
class BloodPressure:
    """Average blood pressure pair (mmHg, rounded to integers)."""

    systolic: int = 0
    diastolic: int = 0


@dataclass(frozen=True)
class Statistics:
    """Aggregates over a list of measurements."""

    average: float = 0
    max: float = 0
    min: float = 0
    count: int = 0
    count_last_7_days: int = 0
    count_last_30_days: int = 0
    avg_fasting: float = 0
    avg_postprandial: float = 0
    count_in_range: int = 0
    count_out_of_range: int = 0
    percent_in_range: float = 0
    trend: str = "stable"
    avg_exercise_minutes: float = 0
    total_exercise_minutes: int = 0
    days_with_exercise: int = 0
    avg_weight: float = 0
    avg_bmi: float = 0
    blood_pressure: BloodPressure = BloodPressure()
    avg_waist: float = 0
    avg_hip: float = 0
    waist_hip_ratio: float = 0

    @property
    def avg_systolic(self) -> int:
        return self.blood_pressure.systolic

    @property
    def avg_diastolic(self) -> int:
        return self.blood_pressure.diastolic


def compute_age(birth_date: date, today: date) -> int:
    """Full years elapsed between ``birth_date`` and ``today``."""
    return relativedelta(today, birth_date).years
