"""Patient repository with full-record reads and writes."""

import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from .connection import get_connection


@dataclass
class Patient:
    id: str
    name: str
    phone: str | None = None
    # One-line visit summaries, newest first
    history: list[str] = field(default_factory=list)
    last_visit: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class PatientRepository:
    """Repository for patient records."""

    def create(self, patient: Patient) -> Patient:
        """Insert a new patient."""
        conn = get_connection()
        cursor = conn.cursor()

        patient.id = patient.id or str(uuid.uuid4())
        now = datetime.now().isoformat()

        cursor.execute("""
            INSERT INTO patients (id, name, phone, history, last_visit, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            patient.id, patient.name, patient.phone, json.dumps(patient.history),
            patient.last_visit, now, now
        ))

        conn.commit()
        conn.close()

        patient.created_at = now
        patient.updated_at = now
        return patient

    def get_by_id(self, patient_id: str) -> Patient | None:
        """Get a patient by ID."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM patients WHERE id = ?", (patient_id,))
        row = cursor.fetchone()
        conn.close()
        return self._row_to_patient(row) if row else None

    def save(self, patient: Patient) -> Patient | None:
        """Replace every mutable field of an existing patient."""
        conn = get_connection()
        cursor = conn.cursor()

        now = datetime.now().isoformat()
        cursor.execute("""
            UPDATE patients
            SET name = ?, phone = ?, history = ?, last_visit = ?, updated_at = ?
            WHERE id = ?
        """, (
            patient.name, patient.phone, json.dumps(patient.history),
            patient.last_visit, now, patient.id
        ))

        if cursor.rowcount == 0:
            conn.close()
            return None

        conn.commit()
        conn.close()

        patient.updated_at = now
        return patient

    def list_all(self) -> list[Patient]:
        """List every patient, alphabetically."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM patients ORDER BY name")
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_patient(row) for row in rows]

    def _row_to_patient(self, row) -> Patient:
        """Convert a database row to a Patient object."""
        return Patient(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            history=json.loads(row["history"]) if row["history"] else [],
            last_visit=row["last_visit"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
