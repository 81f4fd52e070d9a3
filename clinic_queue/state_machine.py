"""State machine for the clinic visit pipeline."""

from enum import Enum

from clinic_queue.exceptions import InvalidTransitionError


class Stage(Enum):
    """Stages a visit moves through, in pipeline order."""
    VITALS = "Vitals"
    CONSULTATION = "Consultation"
    LAB = "Lab"
    BILLING = "Billing"
    PHARMACY = "Pharmacy"
    CLEARANCE = "Clearance"
    COMPLETED = "Completed"


class Priority(Enum):
    NORMAL = "Normal"
    URGENT = "Urgent"
    EMERGENCY = "Emergency"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"


class LabOrderStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


# Every legal edge in the pipeline. Lab -> Consultation is the only backward one.
ALLOWED_TRANSITIONS = {
    Stage.VITALS: {Stage.CONSULTATION},
    Stage.CONSULTATION: {Stage.LAB, Stage.BILLING},
    Stage.LAB: {Stage.CONSULTATION},
    Stage.BILLING: {Stage.PHARMACY, Stage.CLEARANCE},
    Stage.PHARMACY: {Stage.CLEARANCE},
    Stage.CLEARANCE: {Stage.COMPLETED},
    Stage.COMPLETED: set(),
}

# Once a visit reaches one of these, it never goes back to a clinical stage
POST_BILLING_STAGES = {Stage.BILLING, Stage.PHARMACY, Stage.CLEARANCE, Stage.COMPLETED}
CLINICAL_STAGES = {Stage.VITALS, Stage.CONSULTATION, Stage.LAB}


def is_transition_allowed(current: Stage, target: Stage) -> bool:
    """Check whether moving from current to target is a legal edge."""
    return target in ALLOWED_TRANSITIONS[current]


def has_pending_lab_orders(visit) -> bool:
    return any(order.status == LabOrderStatus.PENDING for order in visit.lab_orders)


def get_next_stage(visit) -> Stage:
    """Determine the next stage based on the visit's current stage and contents."""
    current = visit.stage

    if current == Stage.VITALS:
        return Stage.CONSULTATION

    if current == Stage.CONSULTATION:
        # Lab work has to finish before money is collected
        if has_pending_lab_orders(visit):
            return Stage.LAB
        return Stage.BILLING

    if current == Stage.LAB:
        # Results go back to the doctor whether or not every order is resolved
        return Stage.CONSULTATION

    if current == Stage.BILLING:
        if visit.prescription:
            return Stage.PHARMACY
        return Stage.CLEARANCE

    if current == Stage.PHARMACY:
        return Stage.CLEARANCE

    if current == Stage.CLEARANCE:
        return Stage.COMPLETED

    if current == Stage.COMPLETED:
        raise InvalidTransitionError(
            message="Visit is already completed",
            code="VISIT_COMPLETED",
            detail={"visit_id": visit.id},
        )

    raise InvalidTransitionError(
        message=f"Unknown stage: {current!r}",
        code="UNKNOWN_STAGE",
        detail={"visit_id": visit.id},
    )
