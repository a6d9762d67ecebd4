"""Motor de métricas: clasificación, estadísticas y recomendaciones.

Thresholds follow the ADA targets for type 2 diabetes. Every table is an
ordered sequence of ``(predicate, result)`` entries evaluated first match
wins, except ``RECOMMENDATION_RULES`` where every matching rule fires.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from dateutil import tz

from glucosa_tool.model import (
    BloodPressure,
    Measurement,
    MeasurementKind,
    Profile,
    Statistics,
)

_LOCAL_TZ = tz.gettz("America/Argentina/Buenos_Aires")

HYPOGLYCEMIA_BELOW = 70
VERY_HIGH_ABOVE = 250
IN_RANGE_MIN = 80
IN_RANGE_MAX = 180
TREND_STABLE = "stable"


@dataclass(frozen=True)
class GlucoseBand:
    """Target band (mg/dL), both bounds inclusive."""

    min: float
    max: float


@dataclass(frozen=True)
class GlucoseClassification:
    """Semantic category for one reading plus a stable color token."""

    level: str
    color: str
    description: str


@dataclass(frozen=True)
class Category:
    """BMI or blood pressure category."""

    name: str
    color: str


GLUCOSE_TARGETS: dict[str, GlucoseBand] = {
    "fasting": GlucoseBand(80, 130),
    "postprandial": GlucoseBand(80, 180),
    "general": GlucoseBand(80, 180),
}

LOW = GlucoseClassification(
    "Low", "#e74c3c", "Hipoglucemia - Requiere atención inmediata"
)
IN_RANGE = GlucoseClassification(
    "In Range", "#27ae60", "Valor dentro del rango objetivo"
)
ELEVATED = GlucoseClassification(
    "Elevated", "#f39c12", "Valor por encima del objetivo"
)
VERY_ELEVATED = GlucoseClassification(
    "Very Elevated", "#e74c3c", "Valor muy alto - Consultar médico"
)

# Readings in [70, band.min) match no rule before the catch-all.
GLUCOSE_RULES: tuple[
    tuple[Callable[[float, GlucoseBand], bool], GlucoseClassification], ...
] = (
    (lambda v, band: v < HYPOGLYCEMIA_BELOW, LOW),
    (lambda v, band: band.min <= v <= band.max, IN_RANGE),
    (lambda v, band: band.max < v <= VERY_HIGH_ABOVE, ELEVATED),
    (lambda v, band: True, VERY_ELEVATED),
)

UNDERWEIGHT = Category("Underweight", "#3498db")
NORMAL_WEIGHT = Category("Normal", "#27ae60")
OVERWEIGHT = Category("Overweight", "#f39c12")
OBESITY = Category("Obesity", "#e74c3c")

# Upper bounds are exclusive: a boundary value belongs to the next band.
BMI_BANDS: tuple[tuple[float, Category], ...] = (
    (18.5, UNDERWEIGHT),
    (25.0, NORMAL_WEIGHT),
    (30.0, OVERWEIGHT),
    (math.inf, OBESITY),
)

BP_NORMAL = Category("Normal", "#27ae60")
BP_ELEVATED = Category("Elevated", "#f39c12")
BP_STAGE_1 = Category("Hypertension Stage 1", "#e67e22")
BP_STAGE_2 = Category("Hypertension Stage 2", "#e74c3c")
BP_CRISIS = Category("Hypertensive Crisis", "#c0392b")

# The last rule is unreachable: rules 3 and 4 already cover every remaining
# pair. It stays so the table matches the published categories.
BLOOD_PRESSURE_RULES: tuple[tuple[Callable[[float, float], bool], Category], ...] = (
    (lambda s, d: s < 120 and d < 80, BP_NORMAL),
    (lambda s, d: 120 <= s < 130 and d < 80, BP_ELEVATED),
    (lambda s, d: 130 <= s < 140 or 80 <= d < 90, BP_STAGE_1),
    (lambda s, d: s >= 140 or d >= 90, BP_STAGE_2),
    (lambda s, d: True, BP_CRISIS),
)

FALLBACK_RECOMMENDATION = (
    "¡Excelente! Tu control está en buen rango. Mantén tus hábitos saludables."
)

# Order is declaration order, not importance.
RECOMMENDATION_RULES: tuple[tuple[Callable[[Statistics], bool], str], ...] = (
    (
        lambda s: s.avg_fasting > GLUCOSE_TARGETS["fasting"].max,
        "Tu glucosa en ayunas está elevada. "
        "Considera ajustar tu medicación o dieta.",
    ),
    (
        lambda s: s.avg_postprandial > GLUCOSE_TARGETS["postprandial"].max,
        "Tu glucosa postprandial está alta. "
        "Revisa tu alimentación y horarios de comida.",
    ),
    (
        lambda s: s.percent_in_range < 70,
        "Menos del 70% de tus mediciones están en rango. Consulta con tu médico.",
    ),
    (
        lambda s: s.avg_exercise_minutes < 30,
        "Aumenta tu actividad física. "
        "Intenta hacer al menos 30 minutos de ejercicio diario.",
    ),
    (
        lambda s: s.avg_bmi > 25,
        "Tu IMC indica sobrepeso. "
        "Considera trabajar con un nutricionista para mejorar tu dieta.",
    ),
    (
        lambda s: s.avg_systolic > 130,
        "Tu presión arterial sistólica está elevada. "
        "Reduce el consumo de sal y consulta a tu médico.",
    ),
)


def target_band(kind: MeasurementKind | str | None) -> GlucoseBand:
    """Return the target band that applies to a measurement kind.

    Unknown kinds use the general band.
    """
    if not isinstance(kind, MeasurementKind):
        if not isinstance(kind, str):
            return GLUCOSE_TARGETS["general"]
        try:
            kind = MeasurementKind.parse(kind)
        except ValueError:
            return GLUCOSE_TARGETS["general"]
    if kind == MeasurementKind.FASTING:
        return GLUCOSE_TARGETS["fasting"]
    if kind == MeasurementKind.POSTPRANDIAL:
        return GLUCOSE_TARGETS["postprandial"]
    return GLUCOSE_TARGETS["general"]


def classify_glucose(
    value: float, kind: MeasurementKind | str | None
) -> GlucoseClassification:
    """Classify one glucose reading against the band for its kind."""
    band = target_band(kind)
    for predicate, result in GLUCOSE_RULES:
        if predicate(value, band):
            return result
    return VERY_ELEVATED


def body_mass_index(weight_kg: float, height_cm: float) -> float:
    """BMI in kg/m². Returns 0.0 when height is not positive."""
    if height_cm <= 0:
        return 0.0
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def classify_bmi(bmi: float) -> Category:
    """Map a BMI value to its WHO category."""
    for upper, category in BMI_BANDS:
        if bmi < upper:
            return category
    return OBESITY


def classify_blood_pressure(systolic: float, diastolic: float) -> Category:
    for predicate, category in BLOOD_PRESSURE_RULES:
        if predicate(systolic, diastolic):
            return category
    return BP_CRISIS


def summarize(
    measurements: Sequence[Measurement],
    profile: Profile | None = None,
    today: date | None = None,
) -> Statistics:
    """Compute the statistics summary for a list of measurements.

    Args:
        measurements: Readings to aggregate (not modified).
        profile: Optional profile; its height enables the average BMI.
        today: Reference date for the 7/30-day windows. Defaults to the
            current local date.

    Returns:
        Statistics with every aggregate rounded for display. An empty
        list yields the all-zero summary. Blood pressure averages only
        include records that report both systolic and diastolic.
    """
    if not measurements:
        return Statistics()

    if today is None:
        today = datetime.now(tz=_LOCAL_TZ).date()
    since_7 = today - timedelta(days=7)
    since_30 = today - timedelta(days=30)

    values = [m.value for m in measurements]
    count = len(values)

    fasting = [m.value for m in measurements if m.kind == MeasurementKind.FASTING]
    postprandial = [
        m.value for m in measurements if m.kind == MeasurementKind.POSTPRANDIAL
    ]
    in_range = sum(1 for v in values if IN_RANGE_MIN <= v <= IN_RANGE_MAX)

    exercise_minutes = [m.exercise_minutes or 0 for m in measurements if m.exercised]

    weights = [m.weight for m in measurements if m.weight]
    with_pressure = [m for m in measurements if m.systolic and m.diastolic]
    waists = [m.waist for m in measurements if m.waist]
    hips = [m.hip for m in measurements if m.hip]

    avg_weight = _mean(weights)
    avg_bmi = 0.0
    if profile is not None and profile.height_cm and avg_weight > 0:
        avg_bmi = body_mass_index(avg_weight, profile.height_cm)

    avg_waist = _mean(waists)
    avg_hip = _mean(hips)
    waist_hip_ratio = avg_waist / avg_hip if avg_hip > 0 else 0.0

    return Statistics(
        average=_round_half_up(sum(values) / count, 1),
        max=max(values),
        min=min(values),
        count=count,
        count_last_7_days=sum(1 for m in measurements if m.date >= since_7),
        count_last_30_days=sum(1 for m in measurements if m.date >= since_30),
        avg_fasting=_round_half_up(_mean(fasting), 1),
        avg_postprandial=_round_half_up(_mean(postprandial), 1),
        count_in_range=in_range,
        count_out_of_range=count - in_range,
        percent_in_range=_round_half_up(in_range / count * 100, 1),
        trend=TREND_STABLE,
        avg_exercise_minutes=_round_half_up(_mean(exercise_minutes), 1),
        total_exercise_minutes=sum(exercise_minutes),
        days_with_exercise=len(exercise_minutes),
        avg_weight=_round_half_up(avg_weight, 1),
        avg_bmi=_round_half_up(avg_bmi, 1),
        blood_pressure=BloodPressure(
            systolic=int(_round_half_up(_mean([m.systolic for m in with_pressure]))),
            diastolic=int(
                _round_half_up(_mean([m.diastolic for m in with_pressure]))
            ),
        ),
        avg_waist=_round_half_up(avg_waist, 1),
        avg_hip=_round_half_up(avg_hip, 1),
        waist_hip_ratio=_round_half_up(waist_hip_ratio, 2),
    )


def recommend(
    measurements: Sequence[Measurement],
    profile: Profile | None = None,
    today: date | None = None,
) -> list[str]:
    """Return every recommendation whose rule fires, in rule order.

    When no rule fires the list holds a single positive message. Note that
    an empty history fires the in-range and activity rules, because their
    zero defaults are below the thresholds.
    """
    stats = summarize(measurements, profile, today=today)
    out = [message for rule, message in RECOMMENDATION_RULES if rule(stats)]
    return out or [FALLBACK_RECOMMENDATION]


def _mean(values: Sequence[float | None]) -> float:
    present = [v for v in values if v is not None]
    if not present:
        return 0.0
    return sum(present) / len(present)


def _round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for positives, as displayed figures expect."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor
