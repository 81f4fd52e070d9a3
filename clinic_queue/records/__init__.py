from .connection import get_connection, init_database
from .inventory_repository import InventoryItem, InventoryRepository
from .patient_repository import Patient, PatientRepository
from .store import RecordStore, SqliteRecordStore
from .visit_repository import LabOrder, PrescriptionLine, Visit, VisitRepository, Vitals

__all__ = [
    "get_connection",
    "init_database",
    "InventoryItem",
    "InventoryRepository",
    "Patient",
    "PatientRepository",
    "RecordStore",
    "SqliteRecordStore",
    "LabOrder",
    "PrescriptionLine",
    "Visit",
    "VisitRepository",
    "Vitals",
]
