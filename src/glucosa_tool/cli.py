"""CLI para registrar glucosa, ver estadísticas y exportar a Excel."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

from dateutil import parser as date_parser
from dateutil import tz

from glucosa_tool.consolidate import (
    daily_glucose_summary,
    glucose_series,
    measurements_to_frame,
)
from glucosa_tool.excel_writer import ExcelLayout, summary_frame, write_doctor_xlsx
from glucosa_tool.metrics import (
    body_mass_index,
    classify_blood_pressure,
    classify_bmi,
    classify_glucose,
    recommend,
    summarize,
)
from glucosa_tool.model import Measurement, MeasurementKind, Profile
from glucosa_tool.storage import AppConfig, SQLiteStore

logger = logging.getLogger(__name__)

_LOCAL_TZ = tz.gettz("America/Argentina/Buenos_Aires")

DB_FILENAME = "glucosa_tool.sqlite3"
MAX_GLUCOSE = 1000


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Control de glucosa: registro, estadísticas y exportación."
    )
    parser.add_argument(
        "--base-dir",
        default=str(Path.home() / "proyectos" / "salud"),
        help="Directorio base (default: ~/proyectos/salud).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Nivel de logging (default: WARNING).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("agregar", help="Registrar una medición.")
    add.add_argument("--valor", type=float, required=True, help="Glucosa en mg/dL.")
    add.add_argument("--fecha", help="Fecha (YYYY-MM-DD o dd/mm/yyyy). Default: hoy.")
    add.add_argument("--hora", help="Hora (HH:MM). Default: ahora.")
    add.add_argument(
        "--tipo",
        default=MeasurementKind.OTHER.value,
        help="ayunas, postprandial, antes_comida, despues_comida u otro.",
    )
    add.add_argument("--notas")
    add.add_argument("--medicamento")
    add.add_argument(
        "--ejercicio", action="store_true", help="Hizo ejercicio (sin minutos)."
    )
    add.add_argument("--ejercicio-minutos", type=int)
    add.add_argument("--sintoma", action="append", default=[])
    add.add_argument("--peso", type=float)
    add.add_argument("--sistolica", type=float)
    add.add_argument("--diastolica", type=float)
    add.add_argument("--cintura", type=float)
    add.add_argument("--cadera", type=float)

    lst = sub.add_parser("listar", help="Mostrar historial de mediciones.")
    lst.add_argument("--limite", type=int, default=20)

    sub.add_parser("estadisticas", help="Mostrar resumen estadístico.")
    sub.add_parser("recomendaciones", help="Mostrar recomendaciones.")

    ser = sub.add_parser("serie", help="Mostrar la serie de los últimos días.")
    ser.add_argument("--dias", type=int, default=30)

    prof = sub.add_parser("perfil", help="Mostrar o actualizar el perfil.")
    prof.add_argument("--nombre")
    prof.add_argument("--apellido-paterno")
    prof.add_argument("--apellido-materno")
    prof.add_argument("--fecha-nacimiento")
    prof.add_argument("--correo")
    prof.add_argument("--estatura", type=float, help="Estatura en cm.")
    prof.add_argument("--peso", type=float, help="Peso en kg.")
    prof.add_argument("--tiempo-diagnostico", type=float, help="Años con diabetes.")

    exp = sub.add_parser("exportar", help="Exportar historial y resumen a Excel.")
    exp.add_argument("--export-dir", help="Carpeta de salida (se guarda en config).")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code (0 on success, 1 on invalid input).
    """
    ns = parse_args(argv)
    logging.basicConfig(
        level=ns.log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    base = Path(ns.base_dir).expanduser().resolve()
    store = SQLiteStore(base / DB_FILENAME)

    commands = {
        "agregar": _cmd_add,
        "listar": _cmd_list,
        "estadisticas": _cmd_stats,
        "recomendaciones": _cmd_recommend,
        "serie": _cmd_series,
        "perfil": _cmd_profile,
        "exportar": _cmd_export,
    }
    try:
        return commands[ns.command](ns, store, base)
    except (ValueError, LookupError) as exc:
        logger.debug("Command %s failed", ns.command, exc_info=True)
        print(f"Error ({type(exc).__name__}): {exc}")
        return 1


def _today() -> date:
    return datetime.now(tz=_LOCAL_TZ).date()


def _parse_date(text: str) -> date:
    """Parse ISO or day-first dates. Raises ValueError when unparseable."""
    try:
        return date.fromisoformat(text)
    except ValueError:
        return date_parser.parse(text, dayfirst=True).date()


def _cmd_add(ns: argparse.Namespace, store: SQLiteStore, _base: Path) -> int:
    if not 0 < ns.valor <= MAX_GLUCOSE:
        raise ValueError(f"Valor fuera de dominio (0-{MAX_GLUCOSE} mg/dL): {ns.valor}")
    if ns.ejercicio_minutos is not None and ns.ejercicio_minutos < 0:
        raise ValueError("Los minutos de ejercicio no pueden ser negativos")
    now = datetime.now(tz=_LOCAL_TZ)
    measurement = Measurement(
        value=ns.valor,
        date=_parse_date(ns.fecha) if ns.fecha else now.date(),
        time=ns.hora or now.strftime("%H:%M"),
        kind=MeasurementKind.parse(ns.tipo),
        notes=ns.notas,
        medication=ns.medicamento,
        exercised=ns.ejercicio or ns.ejercicio_minutos is not None,
        exercise_minutes=ns.ejercicio_minutos,
        symptoms=tuple(ns.sintoma),
        weight=ns.peso,
        systolic=ns.sistolica,
        diastolic=ns.diastolica,
        waist=ns.cintura,
        hip=ns.cadera,
    )
    stored = store.add_measurement(measurement)
    level = classify_glucose(stored.value, stored.kind)
    print(f"OK: Medición {stored.id} guardada: {stored.value:g} mg/dL ({level.level})")
    print(f"    {level.description}")
    return 0


def _cmd_list(ns: argparse.Namespace, store: SQLiteStore, _base: Path) -> int:
    measurements = store.load_measurements()
    if not measurements:
        print("Sin mediciones registradas.")
        return 0
    for m in measurements[: ns.limite]:
        level = classify_glucose(m.value, m.kind)
        print(
            f"{m.date.strftime('%d/%m/%Y')} {m.time:>5}  "
            f"{m.value:>6g} mg/dL  {m.kind.value:<15} {level.level}"
        )
    return 0


def _cmd_stats(_ns: argparse.Namespace, store: SQLiteStore, _base: Path) -> int:
    profile = store.load_profile()
    stats = summarize(store.load_measurements(), profile, today=_today())
    print(f"Mediciones: {stats.count} (7 días: {stats.count_last_7_days}, "
          f"30 días: {stats.count_last_30_days})")
    print(f"Promedio: {stats.average:g} mg/dL (mín {stats.min:g}, máx {stats.max:g})")
    print(f"Ayunas: {stats.avg_fasting:g}  Postprandial: {stats.avg_postprandial:g}")
    print(f"En rango: {stats.count_in_range} / fuera: {stats.count_out_of_range} "
          f"({stats.percent_in_range:g}%)")
    print(f"Ejercicio: {stats.total_exercise_minutes} min en "
          f"{stats.days_with_exercise} días (promedio {stats.avg_exercise_minutes:g})")
    if stats.avg_bmi:
        print(f"IMC promedio: {stats.avg_bmi:g} ({classify_bmi(stats.avg_bmi).name})")
    if stats.avg_systolic and stats.avg_diastolic:
        category = classify_blood_pressure(stats.avg_systolic, stats.avg_diastolic)
        print(f"Presión promedio: {stats.avg_systolic}/{stats.avg_diastolic} "
              f"({category.name})")
    if stats.waist_hip_ratio:
        print(f"Índice cintura-cadera: {stats.waist_hip_ratio:g}")
    return 0


def _cmd_recommend(_ns: argparse.Namespace, store: SQLiteStore, _base: Path) -> int:
    profile = store.load_profile()
    items = recommend(store.load_measurements(), profile, today=_today())
    for idx, text in enumerate(items, start=1):
        print(f"{idx}. {text}")
    return 0


def _cmd_series(ns: argparse.Namespace, store: SQLiteStore, _base: Path) -> int:
    if ns.dias <= 0:
        raise ValueError("La cantidad de días debe ser positiva")
    series = glucose_series(store.load_measurements(), days=ns.dias, today=_today())
    if series.empty:
        print(f"Sin mediciones en los últimos {ns.dias} días.")
        return 0
    for row in series.itertuples(index=False):
        print(
            f"{row.label}  {row.glucose_mg_dl:>6g} mg/dL  {row.kind:<15} {row.level}"
        )
    return 0


def _cmd_profile(ns: argparse.Namespace, store: SQLiteStore, _base: Path) -> int:
    current = store.load_profile()
    updates = {
        "first_name": ns.nombre,
        "paternal_surname": ns.apellido_paterno,
        "maternal_surname": ns.apellido_materno,
        "birth_date": _parse_date(ns.fecha_nacimiento) if ns.fecha_nacimiento else None,
        "email": ns.correo,
        "height_cm": ns.estatura,
        "weight_kg": ns.peso,
        "years_since_diagnosis": ns.tiempo_diagnostico,
    }
    updates = {key: value for key, value in updates.items() if value is not None}

    if not updates:
        if current is None:
            print("Sin perfil. Usa: perfil --nombre ...")
            return 0
        _print_profile(current)
        return 0

    if current is None:
        if "first_name" not in updates:
            raise ValueError("El nombre es obligatorio para crear el perfil")
        profile = Profile(**updates)
    else:
        profile = replace(current, **updates)
    if profile.height_cm is not None and profile.height_cm <= 0:
        raise ValueError("La estatura debe ser positiva")

    saved = store.save_profile(profile)
    print(f"OK: Perfil guardado: {saved.full_name}")
    _print_profile(saved)
    return 0


def _print_profile(profile: Profile) -> None:
    print(f"Nombre: {profile.full_name}")
    if profile.birth_date is not None:
        print(f"Nacimiento: {profile.birth_date.strftime('%d/%m/%Y')} "
              f"(edad {profile.age})")
    if profile.email:
        print(f"Correo: {profile.email}")
    if profile.height_cm:
        print(f"Estatura: {profile.height_cm:g} cm")
    if profile.weight_kg:
        print(f"Peso: {profile.weight_kg:g} kg")
        if profile.height_cm:
            bmi = body_mass_index(profile.weight_kg, profile.height_cm)
            print(f"IMC: {bmi:.1f} ({classify_bmi(bmi).name})")
    if profile.years_since_diagnosis is not None:
        print(f"Años con diabetes: {profile.years_since_diagnosis:g}")


def _cmd_export(ns: argparse.Namespace, store: SQLiteStore, base: Path) -> int:
    config = store.load_config()
    if ns.export_dir:
        config = AppConfig(
            export_dir=ns.export_dir, selected_fields=config.selected_fields
        )
        store.save_config(config)

    measurements = store.load_measurements()
    if not measurements:
        print("No hay datos para exportar.")
        return 0

    profile = store.load_profile()
    today = _today()
    frame = measurements_to_frame(measurements)
    cols = [field for field in config.selected_fields if field in frame.columns]
    frame = frame.loc[:, cols] if cols else frame
    summary = summary_frame(
        summarize(measurements, profile, today=today),
        recommend(measurements, profile, today=today),
    )

    out_dir = (
        Path(config.export_dir).expanduser() if config.export_dir else base / "salidas"
    )
    ts = datetime.now(tz=_LOCAL_TZ).strftime("%Y-%m-%d_%H-%M-%S")
    out_path = out_dir / f"glucosa_{ts}.xlsx"
    write_doctor_xlsx(
        frame,
        out_path,
        ExcelLayout(),
        summary=summary,
        daily=daily_glucose_summary(measurements_to_frame(measurements)),
        series=glucose_series(measurements, today=today),
    )

    print(f"OK: Mediciones: {len(measurements)}")
    print(f"OK: Output: {out_path}")
    return 0
