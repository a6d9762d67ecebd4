"""Tests for the metrics engine."""

from __future__ import annotations

from datetime import date

import pytest

from glucosa_tool.metrics import (
    BLOOD_PRESSURE_RULES,
    FALLBACK_RECOMMENDATION,
    RECOMMENDATION_RULES,
    body_mass_index,
    classify_blood_pressure,
    classify_bmi,
    classify_glucose,
    recommend,
    summarize,
    target_band,
)
from glucosa_tool.model import (
    BloodPressure,
    Measurement,
    MeasurementKind,
    Profile,
    Statistics,
)

TODAY = date(2025, 12, 20)

_MSG_FASTING = RECOMMENDATION_RULES[0][1]
_MSG_POSTPRANDIAL = RECOMMENDATION_RULES[1][1]
_MSG_IN_RANGE = RECOMMENDATION_RULES[2][1]
_MSG_ACTIVITY = RECOMMENDATION_RULES[3][1]
_MSG_BMI = RECOMMENDATION_RULES[4][1]
_MSG_SODIUM = RECOMMENDATION_RULES[5][1]


def _m(
    value: float, kind: MeasurementKind = MeasurementKind.OTHER, **kw: object
) -> Measurement:
    kw.setdefault("date", TODAY)
    return Measurement(value=value, kind=kind, **kw)  # type: ignore[arg-type]


# --- classify_glucose ---


@pytest.mark.parametrize(
    ("value", "level"),
    [
        (40, "Low"),
        (69.9, "Low"),
        (80, "In Range"),
        (130, "In Range"),
        (130.5, "Elevated"),
        (250, "Elevated"),
        (250.1, "Very Elevated"),
    ],
)
def test_classify_fasting_bands(value: float, level: str) -> None:
    assert classify_glucose(value, MeasurementKind.FASTING).level == level


def test_classify_postprandial_upper_bound_is_180() -> None:
    assert classify_glucose(180, MeasurementKind.POSTPRANDIAL).level == "In Range"
    assert classify_glucose(181, MeasurementKind.POSTPRANDIAL).level == "Elevated"


def test_classify_values_between_70_and_band_min_fall_to_catch_all() -> None:
    for kind in MeasurementKind:
        assert classify_glucose(70, kind).level == "Very Elevated"
        assert classify_glucose(79.9, kind).level == "Very Elevated"


def test_classify_very_high_regardless_of_kind() -> None:
    for kind in MeasurementKind:
        result = classify_glucose(251, kind)
        assert result.level == "Very Elevated"
        assert "Consultar" in result.description


def test_classify_accepts_english_and_stored_kind_names() -> None:
    assert classify_glucose(150, "fasting").level == "Elevated"
    assert classify_glucose(150, "ayunas").level == "Elevated"
    assert classify_glucose(150, "postprandial").level == "In Range"
    assert classify_glucose(150, "before_meal").level == "In Range"


def test_target_band_unknown_kind_uses_general_band() -> None:
    band = target_band("merienda")
    assert (band.min, band.max) == (80, 180)


def test_classify_without_kind_uses_general_band() -> None:
    assert classify_glucose(100, None).level == "In Range"
    assert classify_glucose(200, None).level == "Elevated"


def test_classify_low_carries_color_and_description() -> None:
    result = classify_glucose(55, MeasurementKind.OTHER)
    assert result.color == "#e74c3c"
    assert result.description.startswith("Hipoglucemia")


# --- BMI / blood pressure ---


def test_body_mass_index_no_rounding() -> None:
    assert body_mass_index(75.5, 170) == pytest.approx(26.1245674740)


def test_body_mass_index_guards_non_positive_height() -> None:
    assert body_mass_index(70, 0) == 0.0
    assert body_mass_index(70, -170) == 0.0


@pytest.mark.parametrize(
    ("bmi", "name"),
    [
        (17.0, "Underweight"),
        (18.5, "Normal"),
        (24.9, "Normal"),
        (25.0, "Overweight"),
        (29.99, "Overweight"),
        (30.0, "Obesity"),
        (45.0, "Obesity"),
    ],
)
def test_classify_bmi_half_open_bands(bmi: float, name: str) -> None:
    assert classify_bmi(bmi).name == name


@pytest.mark.parametrize(
    ("systolic", "diastolic", "name"),
    [
        (118, 75, "Normal"),
        (125, 79, "Elevated"),
        (135, 85, "Hypertension Stage 1"),
        (118, 85, "Hypertension Stage 1"),
        (145, 70, "Hypertension Stage 2"),
        (125, 95, "Hypertension Stage 2"),
        (190, 125, "Hypertension Stage 2"),
    ],
)
def test_classify_blood_pressure(systolic: float, diastolic: float, name: str) -> None:
    assert classify_blood_pressure(systolic, diastolic).name == name


def test_blood_pressure_crisis_rule_kept_last() -> None:
    assert BLOOD_PRESSURE_RULES[-1][1].name == "Hypertensive Crisis"


# --- summarize ---


def test_summarize_empty_is_all_zero() -> None:
    stats = summarize([])
    assert stats == Statistics()
    assert stats.count == 0
    assert stats.trend == "stable"
    assert stats.blood_pressure == BloodPressure(0, 0)
    assert stats.average == 0
    assert stats.percent_in_range == 0
    assert stats.waist_hip_ratio == 0


def test_summarize_per_kind_averages_and_global_range() -> None:
    stats = summarize(
        [_m(100, MeasurementKind.FASTING), _m(200, MeasurementKind.POSTPRANDIAL)],
        today=TODAY,
    )
    assert stats.avg_fasting == 100
    assert stats.avg_postprandial == 200
    assert stats.count_in_range == 1
    assert stats.count_out_of_range == 1
    assert stats.percent_in_range == 50
    assert stats.max == 200
    assert stats.min == 100


def test_summarize_range_uses_global_band_not_kind_band() -> None:
    # 150 is Elevated for fasting but inside the global 80-180 band.
    stats = summarize([_m(150, MeasurementKind.FASTING), _m(170)], today=TODAY)
    assert stats.percent_in_range == 100
    assert stats.count_in_range == 2


def test_summarize_counts_readings_recorded_with_kind_names() -> None:
    readings = [
        Measurement(value=150, date=TODAY, kind="fasting"),
        Measurement(value=190, date=TODAY, kind="postprandial"),
    ]
    assert readings[0].kind is MeasurementKind.FASTING
    assert classify_glucose(readings[0].value, readings[0].kind).level == "Elevated"
    stats = summarize(readings, today=TODAY)
    assert stats.avg_fasting == 150
    assert stats.avg_postprandial == 190
    assert recommend(readings, today=TODAY)[:2] == [_MSG_FASTING, _MSG_POSTPRANDIAL]


def test_summarize_rounds_average_to_one_decimal() -> None:
    stats = summarize([_m(100), _m(101), _m(101)], today=TODAY)
    assert stats.average == 100.7
    assert stats.percent_in_range == 100


def test_summarize_empty_kind_subsets_are_zero() -> None:
    stats = summarize([_m(120, MeasurementKind.BEFORE_MEAL)], today=TODAY)
    assert stats.avg_fasting == 0
    assert stats.avg_postprandial == 0


def test_summarize_recency_windows_inclusive() -> None:
    stats = summarize(
        [
            _m(100, date=date(2025, 12, 20)),
            _m(100, date=date(2025, 12, 13)),
            _m(100, date=date(2025, 12, 12)),
            _m(100, date=date(2025, 11, 20)),
            _m(100, date=date(2025, 11, 19)),
        ],
        today=TODAY,
    )
    assert stats.count == 5
    assert stats.count_last_7_days == 2
    assert stats.count_last_30_days == 4


def test_summarize_exercise_only_counts_exercised_records() -> None:
    stats = summarize(
        [
            _m(100, exercised=True, exercise_minutes=40),
            _m(100, exercised=True),
            _m(100, exercised=False, exercise_minutes=100),
        ],
        today=TODAY,
    )
    assert stats.days_with_exercise == 2
    assert stats.total_exercise_minutes == 40
    assert stats.avg_exercise_minutes == 20


def test_summarize_body_aggregates_use_present_fields_only() -> None:
    stats = summarize(
        [
            _m(100, weight=80.0, waist=90.0, hip=100.0),
            _m(100, weight=70.0),
            _m(100),
        ],
        today=TODAY,
    )
    assert stats.avg_weight == 75
    assert stats.avg_waist == 90
    assert stats.avg_hip == 100
    assert stats.waist_hip_ratio == 0.9


def test_summarize_blood_pressure_needs_both_values() -> None:
    stats = summarize(
        [
            _m(100, systolic=130, diastolic=85),
            _m(100, systolic=140, diastolic=90),
            _m(100, systolic=200),
        ],
        today=TODAY,
    )
    assert stats.avg_systolic == 135
    assert stats.avg_diastolic == 88


def test_summarize_waist_hip_ratio_zero_without_hip() -> None:
    stats = summarize([_m(100, waist=85.0)], today=TODAY)
    assert stats.avg_waist == 85
    assert stats.waist_hip_ratio == 0


def test_summarize_bmi_requires_profile_height() -> None:
    readings = [_m(100, weight=75.0), _m(100, weight=76.0)]
    assert summarize(readings, today=TODAY).avg_bmi == 0
    no_height = Profile(first_name="Ana")
    assert summarize(readings, no_height, today=TODAY).avg_bmi == 0
    profile = Profile(first_name="Ana", height_cm=170)
    assert summarize(readings, profile, today=TODAY).avg_bmi == 26.1


def test_summarize_does_not_mutate_input() -> None:
    readings = [_m(90), _m(250)]
    snapshot = list(readings)
    summarize(readings, today=TODAY)
    assert readings == snapshot


# --- recommend ---


def test_recommend_empty_fires_range_and_activity_rules() -> None:
    assert recommend([], today=TODAY) == [_MSG_IN_RANGE, _MSG_ACTIVITY]


def test_recommend_fallback_when_no_rule_fires() -> None:
    readings = [
        _m(100, MeasurementKind.FASTING, exercised=True, exercise_minutes=30),
        _m(150, MeasurementKind.POSTPRANDIAL, exercised=True, exercise_minutes=45),
    ]
    assert recommend(readings, today=TODAY) == [FALLBACK_RECOMMENDATION]


def test_recommend_weight_management_from_profile_height() -> None:
    readings = [
        _m(100, weight=75.0, exercised=True, exercise_minutes=60),
        _m(110, weight=76.0, exercised=True, exercise_minutes=60),
    ]
    profile = Profile(first_name="Ana", height_cm=170)
    assert recommend(readings, profile, today=TODAY) == [_MSG_BMI]


def test_recommend_all_rules_in_declaration_order() -> None:
    readings = [
        _m(200, MeasurementKind.FASTING, weight=95.0, systolic=150, diastolic=95),
        _m(260, MeasurementKind.POSTPRANDIAL),
    ]
    profile = Profile(first_name="Ana", height_cm=170)
    assert recommend(readings, profile, today=TODAY) == [
        _MSG_FASTING,
        _MSG_POSTPRANDIAL,
        _MSG_IN_RANGE,
        _MSG_ACTIVITY,
        _MSG_BMI,
        _MSG_SODIUM,
    ]


def test_recommend_is_deterministic() -> None:
    readings = [_m(190, MeasurementKind.FASTING), _m(90)]
    first = recommend(readings, today=TODAY)
    assert all(recommend(readings, today=TODAY) == first for _ in range(5))
