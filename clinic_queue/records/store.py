"""Record store facade used by the visit workflow."""

import logging
import sqlite3
from typing import Protocol

from clinic_queue.exceptions import RecordNotFoundError, RecordStoreError

from .inventory_repository import InventoryItem, InventoryRepository
from .patient_repository import Patient, PatientRepository
from .visit_repository import Visit, VisitRepository

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Full-record read/replace access to visits, patients and inventory.

    Every call completes before returning. Failures are raised, never
    returned: RecordNotFoundError for unknown ids, RecordStoreError for
    anything else.
    """

    def get_visit(self, visit_id: str) -> Visit: ...

    def save_visit(self, visit: Visit) -> Visit: ...

    def create_visit(self, visit: Visit) -> Visit: ...

    def count_active_visits(self) -> int: ...

    def next_queue_number(self, day: str) -> int: ...

    def get_patient(self, patient_id: str) -> Patient: ...

    def save_patient(self, patient: Patient) -> Patient: ...

    def get_inventory_item(self, item_id: str) -> InventoryItem: ...

    def save_inventory_item(self, item: InventoryItem) -> InventoryItem: ...


class SqliteRecordStore:
    """RecordStore backed by the SQLite repositories."""

    def __init__(self, changed_by: str = "system"):
        self.changed_by = changed_by
        self.visits = VisitRepository()
        self.patients = PatientRepository()
        self.inventory = InventoryRepository()

    # Visits

    def get_visit(self, visit_id: str) -> Visit:
        visit = self._call("get_visit", self.visits.get_by_id, visit_id)
        return self._require(visit, "Visit", visit_id)

    def save_visit(self, visit: Visit) -> Visit:
        saved = self._call("save_visit", self.visits.save, visit, changed_by=self.changed_by)
        return self._require(saved, "Visit", visit.id)

    def create_visit(self, visit: Visit) -> Visit:
        return self._call("create_visit", self.visits.create, visit, changed_by=self.changed_by)

    def count_active_visits(self) -> int:
        return self._call("count_active_visits", self.visits.count_active)

    def next_queue_number(self, day: str) -> int:
        return self._call("next_queue_number", self.visits.next_queue_number, day)

    # Patients

    def get_patient(self, patient_id: str) -> Patient:
        patient = self._call("get_patient", self.patients.get_by_id, patient_id)
        return self._require(patient, "Patient", patient_id)

    def save_patient(self, patient: Patient) -> Patient:
        saved = self._call("save_patient", self.patients.save, patient)
        return self._require(saved, "Patient", patient.id)

    # Inventory

    def get_inventory_item(self, item_id: str) -> InventoryItem:
        item = self._call("get_inventory_item", self.inventory.get_by_id, item_id)
        return self._require(item, "InventoryItem", item_id)

    def save_inventory_item(self, item: InventoryItem) -> InventoryItem:
        saved = self._call(
            "save_inventory_item", self.inventory.save, item,
            action="Dispensed", changed_by=self.changed_by,
        )
        return self._require(saved, "InventoryItem", item.id)

    # Private helpers

    def _call(self, operation: str, func, *args, **kwargs):
        """Run a repository call, translating SQLite failures."""
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as e:
            logger.exception("Record store %s failed", operation)
            raise RecordStoreError(
                message=f"{operation} failed: {e}",
                detail={"operation": operation},
            ) from e

    def _require(self, record, kind: str, record_id: str):
        if record is None:
            raise RecordNotFoundError(
                message=f"{kind} {record_id} not found",
                detail={"kind": kind, "id": record_id},
            )
        return record
