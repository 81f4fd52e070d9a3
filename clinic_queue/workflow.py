"""Visit workflow: moves one visit through the stage pipeline.

A VisitWorkflow owns a single Visit value. Each operation checks its guard,
builds the updated visit, applies side effects (bill computation, inventory
decrement, patient history) and persists through the RecordStore. The owned
visit is only replaced once the visit write succeeds.

Guard failures are not exceptions: the operator gets an ``info``
notification and the call returns a TransitionResult with ``applied=False``.
Record store failures are caught here, logged, and reported as ``error``.
"""

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from clinic_queue.billing import build_bill_summary, compute_total_bill, grand_total
from clinic_queue.config import get_consultation_fee
from clinic_queue.exceptions import InvalidTransitionError, RecordNotFoundError, RecordStoreError
from clinic_queue.records.visit_repository import LabOrder, PrescriptionLine, Visit, Vitals
from clinic_queue.state_machine import (
    LabOrderStatus,
    PaymentStatus,
    Priority,
    Stage,
    get_next_stage,
    is_transition_allowed,
)

logger = logging.getLogger(__name__)

PENDING_PAYMENT = "Pending Payment"

# Visit metadata key holding the indices of prescription lines already taken from stock
DISPENSED_LINES = "dispensed_lines"


@dataclass
class TransitionResult:
    """Outcome of a workflow call."""
    applied: bool
    stage: Stage
    message: str


def build_history_summary(visit: Visit) -> str:
    """One-line summary appended to the patient's history on completion."""
    date = visit.start_time.split("T")[0]
    diagnosis_text = f"Dx: {visit.diagnosis}" if visit.diagnosis else "No Diagnosis"
    notes_text = f"Notes: {visit.doctor_notes}" if visit.doctor_notes else ""
    return f"[{date}] {diagnosis_text}. {notes_text}".strip()


class VisitWorkflow:
    """Stage progression for a single visit."""

    def __init__(self, store, notifier, visit: Visit):
        self.store = store
        self.notifier = notifier
        self._visit = visit

    @property
    def visit(self) -> Visit:
        return self._visit

    @property
    def stage(self) -> Stage:
        return self._visit.stage

    # Construction

    @classmethod
    def check_in(
        cls,
        store,
        notifier,
        patient_id: str,
        priority: Priority = Priority.NORMAL,
        skip_vitals: bool = False,
        consultation_fee: float | None = None,
        insurance: dict | None = None,
    ) -> "VisitWorkflow | None":
        """Create a visit for an existing patient and put it in the queue."""
        try:
            patient = store.get_patient(patient_id)
        except RecordNotFoundError:
            logger.info("Check-in refused: patient %s not found", patient_id)
            notifier.notify(f"Patient {patient_id} not found", "error")
            return None
        except RecordStoreError:
            logger.exception("Check-in failed loading patient %s", patient_id)
            notifier.notify("Error checking in patient", "error")
            return None

        fee = get_consultation_fee() if consultation_fee is None else consultation_fee
        now = datetime.now().isoformat()

        try:
            queue_number = store.next_queue_number(now[:10])
            visit = Visit(
                id=f"V-{uuid.uuid4().hex[:12]}",
                patient_id=patient.id,
                patient_name=patient.name,
                stage=Stage.CONSULTATION if skip_vitals else Stage.VITALS,
                stage_start_time=now,
                start_time=now,
                queue_number=queue_number,
                priority=priority,
                vitals=None if skip_vitals else Vitals(),
                consultation_fee=fee,
                total_bill=fee,
                payment_status=PaymentStatus.PENDING,
                metadata={"insurance": insurance} if insurance else {},
            )
            saved = store.create_visit(visit)
        except RecordStoreError:
            logger.exception("Check-in failed for patient %s", patient_id)
            notifier.notify("Error checking in patient", "error")
            return None

        logger.info(
            "Checked in %s as #%d (%s) at %s",
            patient.name, saved.queue_number, priority.value, saved.stage.value,
        )
        notifier.notify(f"{patient.name} checked in.")
        return cls(store, notifier, saved)

    @classmethod
    def load(cls, store, notifier, visit_id: str) -> "VisitWorkflow":
        """Resume the workflow for a stored visit. Raises RecordNotFoundError."""
        return cls(store, notifier, store.get_visit(visit_id))

    # Stage-scoped data entry

    def record_vitals(self, vitals: Vitals) -> TransitionResult:
        if self.stage != Stage.VITALS:
            return self._refuse("Vitals can only be recorded at the Vitals stage")
        updated = copy.deepcopy(self._visit)
        updated.vitals = vitals
        return self._commit(updated)

    def record_consultation(
        self,
        chief_complaint: str | None = None,
        diagnosis: str | None = None,
        doctor_notes: str | None = None,
    ) -> TransitionResult:
        """Update the doctor's free-text fields. None leaves a field unchanged."""
        if self.stage != Stage.CONSULTATION:
            return self._refuse("Clinical notes can only be edited during Consultation")
        updated = copy.deepcopy(self._visit)
        if chief_complaint is not None:
            updated.chief_complaint = chief_complaint
        if diagnosis is not None:
            updated.diagnosis = diagnosis
        if doctor_notes is not None:
            updated.doctor_notes = doctor_notes
        return self._commit(updated)

    def order_lab_test(self, test_id: str, test_name: str, price: float) -> TransitionResult:
        if self.stage != Stage.CONSULTATION:
            return self._refuse("Lab tests can only be ordered during Consultation")
        updated = copy.deepcopy(self._visit)
        updated.lab_orders.append(LabOrder(
            id=f"LO-{uuid.uuid4().hex[:8]}",
            test_id=test_id,
            test_name=test_name,
            price=price,
            status=LabOrderStatus.PENDING,
            ordered_at=datetime.now().isoformat(),
        ))
        return self._commit(updated)

    def prescribe(
        self,
        inventory_id: str,
        name: str,
        price: float,
        dosage: str = "1x2 for 3 days",
        quantity: int = 1,
    ) -> TransitionResult:
        if self.stage != Stage.CONSULTATION:
            return self._refuse("Prescriptions can only be written during Consultation")
        updated = copy.deepcopy(self._visit)
        updated.prescription.append(PrescriptionLine(
            inventory_id=inventory_id,
            name=name,
            dosage=dosage,
            quantity=quantity,
            price=price,
        ))
        return self._commit(updated)

    def enter_lab_result(self, order_id: str, result: str) -> TransitionResult:
        """Record a result. A non-empty result completes the order, an empty one reopens it."""
        if self.stage != Stage.LAB:
            return self._refuse("Lab results can only be entered at the Lab stage")

        updated = copy.deepcopy(self._visit)
        for order in updated.lab_orders:
            if order.id == order_id:
                order.result = result
                if result:
                    order.status = LabOrderStatus.COMPLETED
                    order.completed_at = datetime.now().isoformat()
                else:
                    order.status = LabOrderStatus.PENDING
                    order.completed_at = None
                return self._commit(updated)

        return self._refuse(f"Lab order {order_id} not found on this visit")

    # Payment

    def record_payment(self, reference: str | None = None, manual: bool = False) -> TransitionResult:
        """Mark the visit paid, from the payment collaborator or a manual override."""
        if self.stage not in (Stage.BILLING, Stage.PHARMACY, Stage.CLEARANCE):
            return self._refuse(f"Payment cannot be recorded at the {self.stage.value} stage")
        if self._visit.payment_status == PaymentStatus.PAID:
            return self._refuse("Payment already recorded")

        updated = copy.deepcopy(self._visit)
        updated.payment_status = PaymentStatus.PAID
        updated.metadata["payment_ref"] = reference
        updated.metadata["paid_at"] = datetime.now().isoformat()
        if manual:
            updated.metadata["payment_override"] = True
        return self._commit(updated, "Payment recorded.")

    def mark_paid_and_continue(self) -> TransitionResult:
        """Manual override: mark as paid at Billing and move on."""
        if self.stage != Stage.BILLING:
            return self._refuse("Mark as paid is only available at Billing")
        if self._visit.payment_status != PaymentStatus.PAID:
            result = self.record_payment(manual=True)
            if not result.applied:
                return result
        return self.advance()

    def bill_summary(self):
        return build_bill_summary(self._visit)

    # Transitions

    def advance(self) -> TransitionResult:
        """Move the visit to its next stage, applying that edge's side effects."""
        current = self.stage
        try:
            target = get_next_stage(self._visit)
        except InvalidTransitionError as e:
            return self._refuse(e.message)

        if current == Stage.PHARMACY:
            return self.dispense()
        if current == Stage.CLEARANCE:
            return self.complete()
        if current == Stage.BILLING and self._visit.payment_status != PaymentStatus.PAID:
            return self._refuse(PENDING_PAYMENT)

        updated = self._moved_to(target)
        message = f"Sent to {target.value}."
        if target == Stage.BILLING:
            updated.total_bill = compute_total_bill(updated)
            message = f"Sent to Billing. Amount due {grand_total(updated.total_bill):,.0f} incl. VAT."
        return self._commit(updated, message)

    def dispense(self) -> TransitionResult:
        """Pharmacy -> Clearance. Stock is decremented at most once per visit.

        Progress is kept on the stored visit, so a retry from a freshly
        loaded workflow only dispenses the lines still outstanding.
        """
        if self.stage != Stage.PHARMACY:
            return self._refuse("Medications can only be dispensed at the Pharmacy stage")

        if not self._visit.medications_dispensed:
            try:
                self._dispense_prescription()
            except RecordStoreError:
                logger.exception("Dispensing failed for visit %s", self._visit.id)
                self.notifier.notify("Error dispensing medications", "error")
                return TransitionResult(False, self.stage, "Error dispensing medications")

        updated = self._moved_to(Stage.CLEARANCE)
        return self._commit(updated, "Medications dispensed. Sent to Clearance.")

    def complete(self) -> TransitionResult:
        """Clearance -> Completed. Appends to patient history, then saves the visit.

        The two writes are independent: if the visit write fails after the
        patient write, the history entry stays and the visit remains at
        Clearance.
        """
        if self.stage != Stage.CLEARANCE:
            return self._refuse("Only visits at Clearance can be completed")
        if self._visit.payment_status != PaymentStatus.PAID:
            return self._refuse(PENDING_PAYMENT)

        try:
            self._append_history()
        except RecordStoreError:
            logger.exception("Saving history failed for visit %s", self._visit.id)
            self.notifier.notify("Error updating patient", "error")
            return TransitionResult(False, self.stage, "Error updating patient")

        updated = self._moved_to(Stage.COMPLETED)
        result = self._commit(updated, "Visit finalized.")
        if not result.applied:
            logger.error(
                "Visit %s history was appended but the visit is still at Clearance",
                self._visit.id,
            )
        return result

    # Private helpers

    def _moved_to(self, target: Stage) -> Visit:
        if not is_transition_allowed(self.stage, target):
            raise InvalidTransitionError(
                message=f"Cannot move from {self.stage.value} to {target.value}",
                detail={"visit_id": self._visit.id},
            )
        updated = copy.deepcopy(self._visit)
        updated.stage = target
        updated.stage_start_time = datetime.now().isoformat()
        return updated

    def _dispense_prescription(self) -> None:
        """Take stock for every prescription line not already dispensed.

        A line is marked on the stored visit before its stock is taken, and
        unmarked again if the stock write fails. Stock is therefore never
        taken twice for a line, whichever write fails.
        """
        skipped = []
        for index, line in enumerate(self._visit.prescription):
            if index in self._visit.metadata.get(DISPENSED_LINES, []):
                continue

            self._mark_line(index, dispensed=True)
            try:
                taken = self._take_stock(line)
            except RecordStoreError:
                try:
                    self._mark_line(index, dispensed=False)
                except RecordStoreError:
                    logger.error(
                        "Visit %s: %s stays marked dispensed but no stock was taken",
                        self._visit.id, line.name,
                    )
                raise
            if not taken:
                skipped.append(line.name)

        if skipped:
            self.notifier.notify(
                f"Not in inventory, not dispensed: {', '.join(skipped)}", "info"
            )

        updated = copy.deepcopy(self._visit)
        updated.medications_dispensed = True
        self._visit = self.store.save_visit(updated)

    def _mark_line(self, index: int, dispensed: bool) -> None:
        updated = copy.deepcopy(self._visit)
        done = set(updated.metadata.get(DISPENSED_LINES, []))
        if dispensed:
            done.add(index)
        else:
            done.discard(index)
        updated.metadata[DISPENSED_LINES] = sorted(done)
        self._visit = self.store.save_visit(updated)

    def _take_stock(self, line: PrescriptionLine) -> bool:
        """Decrement stock by the line's quantity, floored at zero. False if the item is gone."""
        try:
            item = self.store.get_inventory_item(line.inventory_id)
        except RecordNotFoundError:
            logger.warning(
                "Visit %s: inventory item %s (%s) not found, skipping",
                self._visit.id, line.inventory_id, line.name,
            )
            return False

        item.stock = max(0, item.stock - line.quantity)
        self.store.save_inventory_item(item)

        if item.is_low_stock:
            logger.warning("Low stock: %s (%d left)", item.name, item.stock)
            self.notifier.notify(f"Low stock: {item.name} ({item.stock} left)", "info")
        return True

    def _append_history(self) -> None:
        visit = self._visit
        try:
            patient = self.store.get_patient(visit.patient_id)
        except RecordNotFoundError:
            logger.warning("Visit %s: patient %s not found, history not updated", visit.id, visit.patient_id)
            return

        summary = build_history_summary(visit)
        if patient.history and patient.history[0] == summary:
            # Left behind by an earlier attempt whose visit write failed
            logger.info("Visit %s: history already appended", visit.id)
            return

        patient.history = [summary, *patient.history]
        patient.last_visit = datetime.now().strftime("%Y-%m-%d")
        self.store.save_patient(patient)

    def _commit(self, updated: Visit, message: str | None = None) -> TransitionResult:
        """Persist the updated visit and adopt it as the owned value."""
        previous = self._visit.stage
        try:
            saved = self.store.save_visit(updated)
        except RecordStoreError:
            logger.exception("Saving visit %s failed", updated.id)
            self.notifier.notify("Error updating visit", "error")
            return TransitionResult(False, self.stage, "Error updating visit")

        self._visit = saved
        if saved.stage != previous:
            logger.info("Visit %s: %s -> %s", saved.id, previous.value, saved.stage.value)
        if message:
            self.notifier.notify(message, "success")
        return TransitionResult(True, saved.stage, message or "Saved.")

    def _refuse(self, message: str) -> TransitionResult:
        logger.info("Visit %s: refused at %s: %s", self._visit.id, self.stage.value, message)
        self.notifier.notify(message, "info")
        return TransitionResult(False, self.stage, message)
