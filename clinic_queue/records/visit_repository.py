"""Visit repository with full-record reads/writes and stage audit logging."""

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime

from clinic_queue.state_machine import LabOrderStatus, PaymentStatus, Priority, Stage

from .connection import get_connection


@dataclass
class Vitals:
    bp: str = ""
    temp: str = ""
    weight: str = ""
    height: str = ""
    heart_rate: str = ""
    resp_rate: str = ""
    spo2: str = ""


@dataclass
class LabOrder:
    id: str
    test_id: str
    test_name: str
    price: float
    status: LabOrderStatus = LabOrderStatus.PENDING
    ordered_at: str | None = None
    result: str | None = None
    completed_at: str | None = None


@dataclass
class PrescriptionLine:
    inventory_id: str
    name: str
    dosage: str
    quantity: int
    price: float

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@dataclass
class Visit:
    id: str
    patient_id: str
    patient_name: str
    stage: Stage
    stage_start_time: str
    start_time: str
    queue_number: int
    priority: Priority = Priority.NORMAL
    vitals: Vitals | None = None
    chief_complaint: str | None = None
    diagnosis: str | None = None
    doctor_notes: str | None = None
    lab_orders: list[LabOrder] = field(default_factory=list)
    prescription: list[PrescriptionLine] = field(default_factory=list)
    medications_dispensed: bool = False
    consultation_fee: float = 0
    total_bill: float = 0
    payment_status: PaymentStatus = PaymentStatus.PENDING
    metadata: dict = field(default_factory=dict)
    updated_at: str | None = None


class VisitRepository:
    """Repository for visits with stage change audit logging."""

    def create(self, visit: Visit, changed_by: str = "system") -> Visit:
        """Insert a new visit and log its starting stage."""
        conn = get_connection()
        cursor = conn.cursor()

        visit.id = visit.id or f"V-{uuid.uuid4().hex[:12]}"
        now = datetime.now().isoformat()

        cursor.execute("""
            INSERT INTO visits (
                id, patient_id, patient_name, stage, stage_start_time, start_time,
                queue_number, priority, vitals, chief_complaint, diagnosis, doctor_notes,
                lab_orders, prescription, medications_dispensed, consultation_fee,
                total_bill, payment_status, metadata, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (visit.id, *self._visit_values(visit), now))

        self._log_stage_change(cursor, visit.id, None, visit.stage, changed_by)

        conn.commit()
        conn.close()

        visit.updated_at = now
        return visit

    def get_by_id(self, visit_id: str) -> Visit | None:
        """Get a visit by ID."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM visits WHERE id = ?", (visit_id,))
        row = cursor.fetchone()
        conn.close()
        return self._row_to_visit(row) if row else None

    def save(self, visit: Visit, changed_by: str = "system") -> Visit | None:
        """Replace the whole visit record. Logs the stage change, if any."""
        conn = get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT stage FROM visits WHERE id = ?", (visit.id,))
        row = cursor.fetchone()
        if not row:
            conn.close()
            return None

        now = datetime.now().isoformat()
        cursor.execute("""
            UPDATE visits SET
                patient_id = ?, patient_name = ?, stage = ?, stage_start_time = ?,
                start_time = ?, queue_number = ?, priority = ?, vitals = ?,
                chief_complaint = ?, diagnosis = ?, doctor_notes = ?, lab_orders = ?,
                prescription = ?, medications_dispensed = ?, consultation_fee = ?,
                total_bill = ?, payment_status = ?, metadata = ?, updated_at = ?
            WHERE id = ?
        """, (*self._visit_values(visit), now, visit.id))

        previous = Stage(row["stage"])
        if previous != visit.stage:
            self._log_stage_change(cursor, visit.id, previous, visit.stage, changed_by)

        conn.commit()
        conn.close()

        visit.updated_at = now
        return visit

    def count_active(self) -> int:
        """Number of visits not yet completed."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT COUNT(*) FROM visits WHERE stage != ?", (Stage.COMPLETED.value,))
        count = cursor.fetchone()[0]
        conn.close()
        return count

    def next_queue_number(self, day: str) -> int:
        """Next check-in position for the given day (YYYY-MM-DD). Numbers are never reused."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT MAX(queue_number) FROM visits WHERE start_time LIKE ?", (f"{day}%",)
        )
        highest = cursor.fetchone()[0]
        conn.close()
        return (highest or 0) + 1

    def list_active(self, stage: Stage | None = None) -> list[Visit]:
        """Visits still in the queue, in check-in order."""
        conn = get_connection()
        cursor = conn.cursor()

        query = "SELECT * FROM visits WHERE stage != ?"
        params = [Stage.COMPLETED.value]

        if stage:
            query += " AND stage = ?"
            params.append(stage.value)

        query += " ORDER BY queue_number"

        cursor.execute(query, params)
        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_visit(row) for row in rows]

    def get_visits_for_patient(self, patient_id: str) -> list[Visit]:
        """All visits for a patient, most recent first."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute(
            "SELECT * FROM visits WHERE patient_id = ? ORDER BY start_time DESC",
            (patient_id,)
        )
        rows = cursor.fetchall()
        conn.close()
        return [self._row_to_visit(row) for row in rows]

    def get_stage_log(self, visit_id: str) -> list[dict]:
        """Stage changes for a visit, in the order they happened."""
        conn = get_connection()
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM visit_stage_log
            WHERE visit_id = ?
            ORDER BY rowid
        """, (visit_id,))
        rows = cursor.fetchall()
        conn.close()
        return [dict(row) for row in rows]

    # Private helpers

    def _log_stage_change(
        self,
        cursor,
        visit_id: str,
        from_stage: Stage | None,
        to_stage: Stage,
        changed_by: str
    ) -> None:
        """Log a stage change to the audit table."""
        cursor.execute("""
            INSERT INTO visit_stage_log (id, visit_id, from_stage, to_stage, changed_by)
            VALUES (?, ?, ?, ?, ?)
        """, (
            str(uuid.uuid4()), visit_id,
            from_stage.value if from_stage else None, to_stage.value, changed_by
        ))

    def _visit_values(self, visit: Visit) -> tuple:
        """Column values in table order, without id and updated_at."""
        return (
            visit.patient_id,
            visit.patient_name,
            visit.stage.value,
            visit.stage_start_time,
            visit.start_time,
            visit.queue_number,
            visit.priority.value,
            json.dumps(asdict(visit.vitals)) if visit.vitals is not None else None,
            visit.chief_complaint,
            visit.diagnosis,
            visit.doctor_notes,
            json.dumps([_lab_order_to_dict(o) for o in visit.lab_orders]),
            json.dumps([asdict(line) for line in visit.prescription]),
            int(visit.medications_dispensed),
            visit.consultation_fee,
            visit.total_bill,
            visit.payment_status.value,
            json.dumps(visit.metadata),
        )

    def _row_to_visit(self, row) -> Visit:
        """Convert a database row to a Visit object."""
        return Visit(
            id=row["id"],
            patient_id=row["patient_id"],
            patient_name=row["patient_name"],
            stage=Stage(row["stage"]),
            stage_start_time=row["stage_start_time"],
            start_time=row["start_time"],
            queue_number=row["queue_number"],
            priority=Priority(row["priority"]),
            vitals=Vitals(**json.loads(row["vitals"])) if row["vitals"] else None,
            chief_complaint=row["chief_complaint"],
            diagnosis=row["diagnosis"],
            doctor_notes=row["doctor_notes"],
            lab_orders=[_lab_order_from_dict(o) for o in json.loads(row["lab_orders"])],
            prescription=[PrescriptionLine(**line) for line in json.loads(row["prescription"])],
            medications_dispensed=bool(row["medications_dispensed"]),
            consultation_fee=row["consultation_fee"],
            total_bill=row["total_bill"],
            payment_status=PaymentStatus(row["payment_status"]),
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            updated_at=row["updated_at"],
        )


def _lab_order_to_dict(order: LabOrder) -> dict:
    data = asdict(order)
    data["status"] = order.status.value
    return data


def _lab_order_from_dict(data: dict) -> LabOrder:
    return LabOrder(**{**data, "status": LabOrderStatus(data["status"])})
