"""Persistencia SQLite para configuracion, mediciones y perfil de usuario."""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass, replace
from datetime import date, datetime
from pathlib import Path
from typing import Any

from dateutil import tz

from glucosa_tool.model import Measurement, MeasurementKind, Profile, compute_age

logger = logging.getLogger(__name__)

_LOCAL_TZ = tz.gettz("America/Argentina/Buenos_Aires")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS mediciones (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    valor REAL NOT NULL,
    fecha TEXT NOT NULL,
    hora TEXT,
    tipo TEXT NOT NULL,
    notas TEXT,
    medicamento TEXT,
    ejercicio INTEGER NOT NULL DEFAULT 0,
    minutos_ejercicio INTEGER,
    sintomas TEXT,
    peso REAL,
    presion_sistolica REAL,
    presion_diastolica REAL,
    cintura REAL,
    cadera REAL
);

CREATE INDEX IF NOT EXISTS idx_mediciones_fecha
ON mediciones(fecha);

CREATE TABLE IF NOT EXISTS perfil_usuario (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    nombre TEXT NOT NULL,
    apellido_paterno TEXT,
    apellido_materno TEXT,
    fecha_nacimiento TEXT,
    edad INTEGER,
    correo TEXT,
    estatura REAL,
    peso REAL,
    tiempo_diagnostico REAL,
    fecha_creacion TEXT NOT NULL,
    fecha_actualizacion TEXT NOT NULL
);
"""

MEASUREMENT_FIELDS = (
    "valor",
    "fecha",
    "hora",
    "tipo",
    "notas",
    "medicamento",
    "ejercicio",
    "minutos_ejercicio",
    "sintomas",
    "peso",
    "presion_sistolica",
    "presion_diastolica",
    "cintura",
    "cadera",
)

PROFILE_FIELDS = (
    "nombre",
    "apellido_paterno",
    "apellido_materno",
    "fecha_nacimiento",
    "edad",
    "correo",
    "estatura",
    "peso",
    "tiempo_diagnostico",
    "fecha_creacion",
    "fecha_actualizacion",
)


@dataclass(frozen=True)
class AppConfig:
    """Configuracion persistida de la app."""

    export_dir: str
    selected_fields: list[str]


class SQLiteStore:
    """Repositorio SQLite para la app."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        logger.debug("Schema ready at %s", self._db_path)

    def load_config(self) -> AppConfig:
        """Devuelve configuracion guardada o defaults."""
        defaults = {
            "export_dir": "",
            "selected_fields": json.dumps(_default_fields()),
        }
        with self._connect() as conn:
            rows = conn.execute("SELECT key, value FROM app_config").fetchall()
        values = {row["key"]: row["value"] for row in rows}
        merged = {**defaults, **values}
        return AppConfig(
            export_dir=merged["export_dir"],
            selected_fields=_parse_json_list(merged["selected_fields"]),
        )

    def save_config(self, config: AppConfig) -> None:
        """Guarda la configuracion en tabla key/value."""
        payload = {
            "export_dir": config.export_dir,
            "selected_fields": json.dumps(config.selected_fields),
        }
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO app_config(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                payload.items(),
            )
            conn.commit()

    def load_measurements(self) -> list[Measurement]:
        """Carga todas las mediciones, la mas reciente primero."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM mediciones ORDER BY fecha DESC, hora DESC, id DESC"
            ).fetchall()
        return [_row_to_measurement(row) for row in rows]

    def add_measurement(self, measurement: Measurement) -> Measurement:
        """Inserta una medicion y la devuelve con el id asignado."""
        row = _measurement_to_row(measurement)
        placeholders = ", ".join("?" for _ in MEASUREMENT_FIELDS)
        with self._connect() as conn:
            cur = conn.execute(
                f"INSERT INTO mediciones({', '.join(MEASUREMENT_FIELDS)}) "
                f"VALUES ({placeholders})",
                tuple(row[field] for field in MEASUREMENT_FIELDS),
            )
            conn.commit()
            new_id = int(cur.lastrowid)
        logger.info("Medicion %s guardada (%s mg/dL)", new_id, measurement.value)
        return replace(measurement, id=new_id)

    def replace_measurement(self, measurement: Measurement) -> Measurement:
        """Reemplaza por completo una medicion existente.

        Raises:
            ValueError: If the measurement has no id.
            LookupError: If no measurement with that id exists.
        """
        if measurement.id is None:
            raise ValueError("Measurement without id cannot be replaced")
        row = _measurement_to_row(measurement)
        assignments = ", ".join(f"{field} = ?" for field in MEASUREMENT_FIELDS)
        with self._connect() as conn:
            cur = conn.execute(
                f"UPDATE mediciones SET {assignments} WHERE id = ?",
                (*(row[field] for field in MEASUREMENT_FIELDS), measurement.id),
            )
            conn.commit()
        if cur.rowcount == 0:
            raise LookupError(f"Measurement {measurement.id} not found")
        logger.info("Medicion %s reemplazada", measurement.id)
        return measurement

    def load_profile(self) -> Profile | None:
        """Carga el perfil unico, o None si todavia no existe."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM perfil_usuario ORDER BY id LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        return _row_to_profile(row)

    def save_profile(
        self, profile: Profile, now: datetime | None = None
    ) -> Profile:
        """Crea o actualiza el perfil unico; la edad se recalcula al guardar."""
        if now is None:
            now = datetime.now(tz=_LOCAL_TZ)
        age = (
            compute_age(profile.birth_date, now.date())
            if profile.birth_date is not None
            else None
        )

        with self._connect() as conn:
            existing = conn.execute(
                "SELECT id, fecha_creacion FROM perfil_usuario ORDER BY id LIMIT 1"
            ).fetchone()
            created_at = (
                datetime.fromisoformat(existing["fecha_creacion"])
                if existing is not None
                else now
            )
            stored = replace(profile, age=age, created_at=created_at, updated_at=now)
            row = _profile_to_row(stored)
            values = tuple(row[field] for field in PROFILE_FIELDS)
            if existing is not None:
                assignments = ", ".join(f"{field} = ?" for field in PROFILE_FIELDS)
                conn.execute(
                    f"UPDATE perfil_usuario SET {assignments} WHERE id = ?",
                    (*values, existing["id"]),
                )
                profile_id = int(existing["id"])
            else:
                placeholders = ", ".join("?" for _ in PROFILE_FIELDS)
                cur = conn.execute(
                    f"INSERT INTO perfil_usuario({', '.join(PROFILE_FIELDS)}) "
                    f"VALUES ({placeholders})",
                    values,
                )
                profile_id = int(cur.lastrowid)
            conn.commit()
        logger.info("Perfil %s guardado", profile_id)
        return replace(stored, id=profile_id)


def _default_fields() -> list[str]:
    return [
        "date",
        "time",
        "glucose_mg_dl",
        "kind",
        "level",
        "exercise_minutes",
        "weight",
        "systolic",
        "diastolic",
    ]


def _parse_json_list(raw: str) -> list[str]:
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError:
        return _default_fields()
    if not isinstance(parsed, list):
        return _default_fields()
    out = [str(item) for item in parsed]
    return out or _default_fields()


def _measurement_to_row(m: Measurement) -> dict[str, object]:
    return {
        "valor": m.value,
        "fecha": m.date.isoformat(),
        "hora": m.time,
        "tipo": m.kind.value,
        "notas": m.notes,
        "medicamento": m.medication,
        "ejercicio": int(m.exercised),
        "minutos_ejercicio": m.exercise_minutes,
        "sintomas": json.dumps(list(m.symptoms), ensure_ascii=False),
        "peso": m.weight,
        "presion_sistolica": m.systolic,
        "presion_diastolica": m.diastolic,
        "cintura": m.waist,
        "cadera": m.hip,
    }


def _row_to_measurement(row: sqlite3.Row) -> Measurement:
    return Measurement(
        id=int(row["id"]),
        value=float(row["valor"]),
        date=date.fromisoformat(row["fecha"]),
        time=row["hora"] or "",
        kind=MeasurementKind(row["tipo"]),
        notes=row["notas"],
        medication=row["medicamento"],
        exercised=bool(row["ejercicio"]),
        exercise_minutes=row["minutos_ejercicio"],
        symptoms=tuple(_parse_symptoms(row["sintomas"])),
        weight=row["peso"],
        systolic=row["presion_sistolica"],
        diastolic=row["presion_diastolica"],
        waist=row["cintura"],
        hip=row["cadera"],
    )


def _parse_symptoms(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return [str(item) for item in parsed]


def _profile_to_row(p: Profile) -> dict[str, object]:
    return {
        "nombre": p.first_name,
        "apellido_paterno": p.paternal_surname,
        "apellido_materno": p.maternal_surname,
        "fecha_nacimiento": p.birth_date.isoformat() if p.birth_date else None,
        "edad": p.age,
        "correo": p.email,
        "estatura": p.height_cm,
        "peso": p.weight_kg,
        "tiempo_diagnostico": p.years_since_diagnosis,
        "fecha_creacion": p.created_at.isoformat() if p.created_at else None,
        "fecha_actualizacion": p.updated_at.isoformat() if p.updated_at else None,
    }


def _row_to_profile(row: sqlite3.Row) -> Profile:
    birth = row["fecha_nacimiento"]
    return Profile(
        id=int(row["id"]),
        first_name=row["nombre"],
        paternal_surname=row["apellido_paterno"] or "",
        maternal_surname=row["apellido_materno"] or "",
        birth_date=date.fromisoformat(birth) if birth else None,
        age=row["edad"],
        email=row["correo"] or "",
        height_cm=row["estatura"],
        weight_kg=row["peso"],
        years_since_diagnosis=row["tiempo_diagnostico"],
        created_at=datetime.fromisoformat(row["fecha_creacion"]),
        updated_at=datetime.fromisoformat(row["fecha_actualizacion"]),
    )
