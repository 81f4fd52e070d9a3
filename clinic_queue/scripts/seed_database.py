"""Seed the database with demo patients and pharmacy inventory."""

from clinic_queue.records import (
    InventoryItem,
    InventoryRepository,
    Patient,
    PatientRepository,
    init_database,
)


MOCK_PATIENTS = [
    Patient(id="p-001", name="Amina Wanjiru", phone="0712000101"),
    Patient(id="p-002", name="Brian Otieno", phone="0712000102"),
    Patient(
        id="p-003",
        name="Grace Mutua",
        phone="0712000103",
        history=["[2025-11-02] Dx: Acute tonsillitis. Notes: Amoxicillin 5 days."],
        last_visit="2025-11-02",
    ),
    Patient(id="p-004", name="Daniel Kiprop", phone="0712000104"),
]

MOCK_INVENTORY = [
    InventoryItem(id="inv-001", name="Paracetamol 500mg", stock=500, min_stock_level=100, unit="tablet", price=5),
    InventoryItem(id="inv-002", name="Amoxicillin 500mg", stock=200, min_stock_level=50, unit="capsule", price=20),
    InventoryItem(id="inv-003", name="Artemether/Lumefantrine", stock=60, min_stock_level=20, unit="pack", price=350),
    InventoryItem(id="inv-004", name="ORS Sachet", stock=15, min_stock_level=20, unit="sachet", price=30),
    InventoryItem(id="inv-005", name="Cetirizine 10mg", stock=120, min_stock_level=30, unit="tablet", price=10),
]


def seed_database():
    """Insert demo records, skipping any that already exist."""
    init_database()
    patients = PatientRepository()
    inventory = InventoryRepository()

    print("Creating patients...")
    for patient in MOCK_PATIENTS:
        if patients.get_by_id(patient.id):
            print(f"  Skipping {patient.name} (already exists)")
            continue
        patients.create(patient)
        print(f"  Created {patient.name}")

    print("Creating inventory...")
    for item in MOCK_INVENTORY:
        if inventory.get_by_id(item.id):
            print(f"  Skipping {item.name} (already exists)")
            continue
        inventory.create(item, changed_by="seed")
        print(f"  Created {item.name} ({item.stock} {item.unit})")

    print("\nDatabase seeded successfully!")
    print(f"  - {len(MOCK_PATIENTS)} patients")
    print(f"  - {len(MOCK_INVENTORY)} inventory items")


if __name__ == "__main__":
    seed_database()
