"""Tests for bill computation."""

from clinic_queue.billing import (
    build_bill_summary,
    compute_tax,
    compute_total_bill,
    grand_total,
    round_half_up,
)
from clinic_queue.records.visit_repository import LabOrder, PrescriptionLine, Visit
from clinic_queue.state_machine import Stage


def make_visit(**kwargs) -> Visit:
    return Visit(
        id="V-bill",
        patient_id="p-test",
        patient_name="Test Patient",
        stage=Stage.BILLING,
        stage_start_time="2026-01-05T09:00:00",
        start_time="2026-01-05T09:00:00",
        queue_number=1,
        **kwargs,
    )


def example_visit() -> Visit:
    return make_visit(
        consultation_fee=500,
        lab_orders=[LabOrder(id="LO-1", test_id="t-1", test_name="Full Blood Count", price=1000)],
        prescription=[
            PrescriptionLine(inventory_id="inv-1", name="Paracetamol", dosage="1x3 for 5 days", quantity=3, price=200),
        ],
    )


class TestComputeTotalBill:
    """Tests for the pre-tax subtotal."""

    def test_fee_labs_and_prescription(self):
        assert compute_total_bill(example_visit()) == 2100

    def test_consultation_only(self):
        assert compute_total_bill(make_visit(consultation_fee=500)) == 500


class TestTax:
    """Tests for VAT presentation."""

    def test_grand_total_adds_sixteen_percent(self):
        assert compute_tax(2100) == 336
        assert grand_total(2100) == 2436

    def test_half_rounds_up(self):
        """0.5 rounds up, not to the nearest even number."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2


class TestBillSummary:
    """Tests for the itemised bill."""

    def test_lines_and_totals(self):
        summary = build_bill_summary(example_visit())

        assert [line.description for line in summary.lines] == [
            "Consultation fee",
            "Lab: Full Blood Count",
            "Rx: Paracetamol (1x3 for 5 days)",
        ]
        assert summary.lines[2].amount == 600
        assert summary.subtotal == 2100
        assert summary.tax == 336
        assert summary.grand_total == 2436
