"""Front-desk console for the clinic visit queue."""

import shlex
import sys

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from clinic_queue.config import configure_logging
from clinic_queue.exceptions import RecordNotFoundError
from clinic_queue.forms import CheckInForm, LabOrderForm, PrescriptionForm, VitalsForm, bmi
from clinic_queue.notifications import ConsoleNotifier
from clinic_queue.queue_board import sort_queue, wait_minutes
from clinic_queue.records import SqliteRecordStore, Vitals, init_database
from clinic_queue.state_machine import Stage
from clinic_queue.workflow import VisitWorkflow

console = Console()
store = SqliteRecordStore(changed_by="front-desk")
notifier = ConsoleNotifier(console)

HELP_TEXT = """Commands:
  checkin <patient_id> [normal|urgent|emergency] [skip-vitals]
  queue [stage]                 active visits, highest priority first
  show <visit_id>
  vitals <visit_id> key=value   bp, temp, weight, height, heart_rate, resp_rate, spo2
  consult <visit_id> key=value  complaint, dx, notes
  lab <visit_id> <test_id> <test_name> <price>
  rx <visit_id> <inventory_id> [quantity] [dosage]
  result <visit_id> <order_id> <result>
  advance <visit_id>
  pay <visit_id> [reference]    no reference marks as paid manually
  bill <visit_id>
  patients
  quit"""


def _parse_pairs(args: list[str]) -> dict:
    """Turn ['bp=120/80', 'temp=37'] into a dict."""
    pairs = {}
    for arg in args:
        if "=" not in arg:
            raise ValueError(f"Expected key=value, got {arg!r}")
        key, value = arg.split("=", 1)
        pairs[key.strip()] = value.strip()
    return pairs


def _load(visit_id: str) -> VisitWorkflow:
    return VisitWorkflow.load(store, notifier, visit_id)


def handle_checkin(args: list[str]) -> str:
    if not args:
        return "Usage: checkin <patient_id> [priority] [skip-vitals]"
    form = CheckInForm(
        patient_id=args[0],
        priority=args[1] if len(args) > 1 else "Normal",
        skip_vitals="skip-vitals" in args[2:],
    )
    workflow = VisitWorkflow.check_in(
        store, notifier, form.patient_id,
        priority=form.priority,
        skip_vitals=form.skip_vitals,
        insurance=form.insurance(),
    )
    if workflow is None:
        return "Check-in failed."
    visit = workflow.visit
    return f"Visit {visit.id}: queue #{visit.queue_number}, {visit.stage.value}"


def handle_queue(args: list[str]) -> Table:
    stage = Stage(args[0].capitalize()) if args else None
    table = Table(title=f"Queue: {stage.value if stage else 'All'}")
    for column in ("#", "Visit", "Patient", "Priority", "Stage", "Waiting"):
        table.add_column(column)
    for visit in sort_queue(store.visits.list_active(stage)):
        table.add_row(
            str(visit.queue_number),
            visit.id,
            visit.patient_name,
            visit.priority.value,
            visit.stage.value,
            f"{wait_minutes(visit)} min",
        )
    return table


def handle_show(args: list[str]) -> str:
    visit = _load(args[0]).visit
    lines = [
        f"[bold]{visit.patient_name}[/bold] ({visit.id}) #{visit.queue_number} {visit.priority.value}",
        f"Stage: {visit.stage.value}  Payment: {visit.payment_status.value}  Bill: {visit.total_bill:,.0f}",
    ]
    if visit.vitals:
        body_mass = bmi(visit.vitals.weight, visit.vitals.height)
        lines.append(
            f"Vitals: BP {visit.vitals.bp or '-'}, T {visit.vitals.temp or '-'}, "
            f"SpO2 {visit.vitals.spo2 or '-'}, BMI {body_mass or '-'}"
        )
    if visit.diagnosis:
        lines.append(f"Dx: {visit.diagnosis}")
    for order in visit.lab_orders:
        lines.append(f"Lab {order.id}: {order.test_name} ({order.status.value}) {order.result or ''}")
    for item in visit.prescription:
        lines.append(f"Rx: {item.name} x{item.quantity} ({item.dosage})")
    return "\n".join(lines)


def handle_vitals(args: list[str]) -> str:
    form = VitalsForm(**_parse_pairs(args[1:]))
    result = _load(args[0]).record_vitals(Vitals(**form.model_dump()))
    return result.message


def handle_consult(args: list[str]) -> str:
    pairs = _parse_pairs(args[1:])
    result = _load(args[0]).record_consultation(
        chief_complaint=pairs.get("complaint"),
        diagnosis=pairs.get("dx"),
        doctor_notes=pairs.get("notes"),
    )
    return result.message


def handle_lab(args: list[str]) -> str:
    if len(args) < 4:
        return "Usage: lab <visit_id> <test_id> <test_name> <price>"
    form = LabOrderForm(test_id=args[1], test_name=args[2], price=args[3])
    return _load(args[0]).order_lab_test(form.test_id, form.test_name, form.price).message


def handle_rx(args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: rx <visit_id> <inventory_id> [quantity] [dosage]"
    item = store.get_inventory_item(args[1])
    form = PrescriptionForm(
        inventory_id=item.id,
        name=item.name,
        price=item.price,
        quantity=args[2] if len(args) > 2 else 1,
        **({"dosage": args[3]} if len(args) > 3 else {}),
    )
    return _load(args[0]).prescribe(**form.model_dump()).message


def handle_result(args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: result <visit_id> <order_id> <result>"
    return _load(args[0]).enter_lab_result(args[1], " ".join(args[2:])).message


def handle_advance(args: list[str]) -> str:
    return _load(args[0]).advance().message


def handle_pay(args: list[str]) -> str:
    reference = args[1] if len(args) > 1 else None
    workflow = _load(args[0])
    return workflow.record_payment(reference=reference, manual=reference is None).message


def handle_bill(args: list[str]) -> Table:
    summary = _load(args[0]).bill_summary()
    table = Table(title=f"Bill: {summary.patient_name} ({summary.visit_id})")
    table.add_column("Item")
    table.add_column("Qty", justify="right")
    table.add_column("Amount", justify="right")
    for line in summary.lines:
        table.add_row(line.description, str(line.quantity), f"{line.amount:,.0f}")
    table.add_row("Subtotal", "", f"{summary.subtotal:,.0f}")
    table.add_row("VAT (16%)", "", f"{summary.tax:,.0f}")
    table.add_row("[bold]Total[/bold]", "", f"[bold]{summary.grand_total:,.0f}[/bold]")
    return table


def handle_patients(args: list[str]) -> Table:
    table = Table(title="Patients")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Last visit")
    for patient in store.patients.list_all():
        table.add_row(patient.id, patient.name, patient.last_visit or "-")
    return table


# Commands that need a visit id as their first argument
VISIT_COMMANDS = {"show", "vitals", "consult", "lab", "rx", "result", "advance", "pay", "bill"}

COMMAND_HANDLERS = {
    "checkin": handle_checkin,
    "queue": handle_queue,
    "show": handle_show,
    "vitals": handle_vitals,
    "consult": handle_consult,
    "lab": handle_lab,
    "rx": handle_rx,
    "result": handle_result,
    "advance": handle_advance,
    "pay": handle_pay,
    "bill": handle_bill,
    "patients": handle_patients,
}


def process_command(line: str):
    """Parse and run one console command, returning something printable."""
    parts = shlex.split(line)
    if not parts:
        return ""
    command, args = parts[0].lower(), parts[1:]

    handler = COMMAND_HANDLERS.get(command)
    if handler is None:
        return HELP_TEXT
    if command in VISIT_COMMANDS and not args:
        return f"Usage: {command} <visit_id> ..."

    try:
        return handler(args)
    except RecordNotFoundError as e:
        return f"[red]{e.message}[/red]"
    except ValidationError as e:
        errors = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        return f"[red]Invalid input:[/red] {errors}"
    except ValueError as e:
        return f"[red]{e}[/red]"


def main():
    """Main console loop."""
    configure_logging()
    init_database()

    console.print("[bold blue]Clinic queue[/bold blue]")
    console.print("Type 'help' for commands, 'quit' to exit.\n")

    is_tty = sys.stdin.isatty()

    while True:
        try:
            line = console.input("[bold green]queue>[/bold green] ").strip()
            # Echo input when stdin is piped (not interactive)
            if not is_tty and line:
                console.print(f"[dim]{line}[/dim]")
        except (EOFError, KeyboardInterrupt):
            console.print("\n[bold blue]Goodbye![/bold blue]")
            break

        if not line:
            continue

        if line.lower() in ("quit", "exit"):
            console.print("[bold blue]Goodbye![/bold blue]")
            break

        try:
            console.print(process_command(line))
        except Exception as e:
            console.print(f"[bold red]Error:[/bold red] {e}\n")


if __name__ == "__main__":
    main()
