"""Tests for the SQLite repositories and record store."""

import pytest

from clinic_queue.exceptions import RecordNotFoundError, RecordStoreError
from clinic_queue.records import (
    InventoryItem,
    InventoryRepository,
    LabOrder,
    Patient,
    PatientRepository,
    PrescriptionLine,
    SqliteRecordStore,
    Visit,
    VisitRepository,
    Vitals,
)
from clinic_queue.state_machine import LabOrderStatus, PaymentStatus, Priority, Stage


def make_visit(visit_id: str, queue_number: int, stage: Stage = Stage.VITALS, **kwargs) -> Visit:
    return Visit(
        id=visit_id,
        patient_id="p-test",
        patient_name="Test Patient",
        stage=stage,
        stage_start_time="2026-01-05T09:00:00",
        start_time="2026-01-05T09:00:00",
        queue_number=queue_number,
        **kwargs,
    )


@pytest.fixture
def visits(patient):
    return VisitRepository()


class TestPatientRepository:
    """Tests for PatientRepository."""

    def test_create_and_get(self, patient):
        found = PatientRepository().get_by_id(patient.id)
        assert found is not None
        assert found.name == "Test Patient"
        assert found.history == []
        assert found.created_at is not None

    def test_get_missing(self):
        assert PatientRepository().get_by_id("p-nobody") is None

    def test_save_replaces_history(self, patient):
        repo = PatientRepository()
        patient.history = ["[2026-01-05] Dx: Flu."]
        patient.last_visit = "2026-01-05"

        repo.save(patient)

        found = repo.get_by_id(patient.id)
        assert found.history == ["[2026-01-05] Dx: Flu."]
        assert found.last_visit == "2026-01-05"

    def test_save_missing_returns_none(self):
        assert PatientRepository().save(Patient(id="p-nobody", name="Nobody")) is None

    def test_list_all_sorted_by_name(self, patient):
        repo = PatientRepository()
        repo.create(Patient(id="p-a", name="Aaron Aloo"))
        assert [p.name for p in repo.list_all()] == ["Aaron Aloo", "Test Patient"]


class TestVisitRepository:
    """Tests for VisitRepository."""

    def test_nested_fields_survive_storage(self, visits):
        visit = make_visit(
            "V-1", 1,
            stage=Stage.LAB,
            priority=Priority.EMERGENCY,
            vitals=Vitals(bp="140/90", spo2="97"),
            lab_orders=[LabOrder(id="LO-1", test_id="t-1", test_name="Malaria RDT", price=1000,
                                 status=LabOrderStatus.COMPLETED, result="Negative")],
            prescription=[PrescriptionLine(inventory_id="inv-1", name="Paracetamol", dosage="1x3",
                                           quantity=2, price=5)],
            metadata={"payment_ref": "MPESA-1"},
        )
        visits.create(visit)

        found = visits.get_by_id("V-1")
        assert found.stage == Stage.LAB
        assert found.priority == Priority.EMERGENCY
        assert found.vitals.bp == "140/90"
        assert found.lab_orders[0].status == LabOrderStatus.COMPLETED
        assert found.lab_orders[0].result == "Negative"
        assert found.prescription[0].line_total == 10
        assert found.payment_status == PaymentStatus.PENDING
        assert found.metadata == {"payment_ref": "MPESA-1"}

    def test_save_missing_returns_none(self, visits):
        assert visits.save(make_visit("V-missing", 1)) is None

    def test_stage_log_only_records_changes(self, visits):
        visit = visits.create(make_visit("V-1", 1))
        visit.chief_complaint = "Cough"
        visits.save(visit)
        visit.stage = Stage.CONSULTATION
        visits.save(visit, changed_by="nurse")

        log = visits.get_stage_log("V-1")
        assert [(e["from_stage"], e["to_stage"], e["changed_by"]) for e in log] == [
            (None, "Vitals", "system"),
            ("Vitals", "Consultation", "nurse"),
        ]

    def test_active_visits(self, visits):
        visits.create(make_visit("V-1", 1))
        visits.create(make_visit("V-2", 2, stage=Stage.COMPLETED))
        visits.create(make_visit("V-3", 3, stage=Stage.BILLING))

        assert visits.count_active() == 2
        assert [v.id for v in visits.list_active()] == ["V-1", "V-3"]
        assert [v.id for v in visits.list_active(Stage.BILLING)] == ["V-3"]

    def test_next_queue_number_per_day(self, visits):
        assert visits.next_queue_number("2026-01-05") == 1
        visits.create(make_visit("V-1", 1, stage=Stage.COMPLETED))
        visits.create(make_visit("V-2", 2))

        assert visits.next_queue_number("2026-01-05") == 3
        assert visits.next_queue_number("2026-01-06") == 1

    def test_visits_for_patient(self, visits):
        visits.create(make_visit("V-1", 1))
        assert [v.id for v in visits.get_visits_for_patient("p-test")] == ["V-1"]


class TestInventoryRepository:
    """Tests for InventoryRepository."""

    def test_save_logs_stock_delta(self, paracetamol):
        repo = InventoryRepository()
        paracetamol.stock = 90
        repo.save(paracetamol, action="Dispensed")

        log = repo.get_log(paracetamol.id)
        assert log[0]["action"] == "Dispensed"
        assert log[0]["quantity_change"] == -10

    def test_save_without_stock_change_logs_nothing(self, paracetamol):
        repo = InventoryRepository()
        paracetamol.price = 250
        repo.save(paracetamol)

        log = repo.get_log(paracetamol.id)
        assert [entry["action"] for entry in log] == ["Created"]
        assert repo.get_by_id(paracetamol.id).price == 250

    def test_low_stock(self, paracetamol, amoxicillin):
        repo = InventoryRepository()
        repo.create(InventoryItem(id="inv-ors", name="ORS Sachet", stock=5, min_stock_level=20))

        low = repo.list_low_stock()
        assert [item.id for item in low] == ["inv-ors"]
        assert low[0].is_low_stock


class TestSqliteRecordStore:
    """Tests for the RecordStore facade."""

    def test_missing_records_raise(self, store):
        with pytest.raises(RecordNotFoundError):
            store.get_visit("V-missing")
        with pytest.raises(RecordNotFoundError):
            store.get_patient("p-missing")
        with pytest.raises(RecordNotFoundError):
            store.get_inventory_item("inv-missing")

    def test_save_unknown_record_raises(self, store):
        with pytest.raises(RecordNotFoundError) as exc_info:
            store.save_patient(Patient(id="p-nobody", name="Nobody"))
        assert exc_info.value.detail == {"kind": "Patient", "id": "p-nobody"}

    def test_inventory_saves_are_logged_as_dispensed(self, store, paracetamol):
        paracetamol.stock = 99
        store.save_inventory_item(paracetamol)

        assert InventoryRepository().get_log(paracetamol.id)[0]["changed_by"] == "test"

    def test_sqlite_errors_are_wrapped(self, store, tmp_path, monkeypatch):
        # A directory cannot be opened as a database file
        monkeypatch.setenv("CLINIC_DB_PATH", str(tmp_path))

        with pytest.raises(RecordStoreError) as exc_info:
            store.get_patient("p-test")
        assert not isinstance(exc_info.value, RecordNotFoundError)
        assert exc_info.value.detail == {"operation": "get_patient"}
