"""Shared pytest fixtures."""

import pytest
from unittest.mock import MagicMock

from clinic_queue.records import (
    InventoryItem,
    InventoryRepository,
    Patient,
    PatientRepository,
    SqliteRecordStore,
    init_database,
)


@pytest.fixture(autouse=True)
def test_database(tmp_path, monkeypatch):
    """Point every test at a fresh SQLite file."""
    db_path = tmp_path / "clinic_queue_test.db"
    monkeypatch.setenv("CLINIC_DB_PATH", str(db_path))
    monkeypatch.setenv("CONSULTATION_FEE", "500")
    init_database()
    yield db_path


@pytest.fixture
def store():
    return SqliteRecordStore(changed_by="test")


@pytest.fixture
def notifier():
    """Stands in for the operator's toast channel."""
    return MagicMock()


@pytest.fixture
def patient():
    return PatientRepository().create(Patient(id="p-test", name="Test Patient", phone="0700000000"))


@pytest.fixture
def paracetamol():
    return InventoryRepository().create(InventoryItem(
        id="inv-para",
        name="Paracetamol 500mg",
        stock=100,
        min_stock_level=10,
        unit="tablet",
        price=200,
    ))


@pytest.fixture
def amoxicillin():
    return InventoryRepository().create(InventoryItem(
        id="inv-amox",
        name="Amoxicillin 500mg",
        stock=2,
        min_stock_level=0,
        unit="capsule",
        price=50,
    ))
