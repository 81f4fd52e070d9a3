"""Bill computation for visits.

The persisted ``total_bill`` is the pre-tax subtotal. VAT is only added when
presenting the amount to the payer and is never stored.
"""

import math
from dataclasses import dataclass, field

TAX_RATE = 0.16


@dataclass
class BillLine:
    description: str
    quantity: int
    unit_price: float

    @property
    def amount(self) -> float:
        return self.unit_price * self.quantity


@dataclass
class BillSummary:
    visit_id: str
    patient_name: str
    lines: list[BillLine] = field(default_factory=list)
    subtotal: float = 0
    tax: int = 0
    grand_total: float = 0


def round_half_up(value: float) -> int:
    """Round .5 upwards, unlike Python's round() which rounds to even."""
    return math.floor(value + 0.5)


def compute_total_bill(visit) -> float:
    """Consultation fee + lab tests + prescription line totals, before tax."""
    lab_cost = sum(order.price for order in visit.lab_orders)
    medication_cost = sum(line.line_total for line in visit.prescription)
    return visit.consultation_fee + lab_cost + medication_cost


def compute_tax(subtotal: float) -> int:
    return round_half_up(subtotal * TAX_RATE)


def grand_total(subtotal: float) -> float:
    """Amount presented to the payer: subtotal plus VAT."""
    return subtotal + compute_tax(subtotal)


def build_bill_summary(visit) -> BillSummary:
    """Itemised bill for display or printing."""
    lines = [BillLine("Consultation fee", 1, visit.consultation_fee)]
    lines.extend(
        BillLine(f"Lab: {order.test_name}", 1, order.price)
        for order in visit.lab_orders
    )
    lines.extend(
        BillLine(f"Rx: {item.name} ({item.dosage})", item.quantity, item.price)
        for item in visit.prescription
    )

    subtotal = compute_total_bill(visit)
    return BillSummary(
        visit_id=visit.id,
        patient_name=visit.patient_name,
        lines=lines,
        subtotal=subtotal,
        tax=compute_tax(subtotal),
        grand_total=grand_total(subtotal),
    )
