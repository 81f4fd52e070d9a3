"""Operator-facing notifications (toasts)."""

from typing import Literal, Protocol

from rich.console import Console
from rich.markup import escape

Severity = Literal["success", "error", "info"]

SEVERITY_STYLES = {
    "success": "bold green",
    "error": "bold red",
    "info": "bold cyan",
}


class NotificationSink(Protocol):
    """Fire-and-forget channel for transition outcomes."""

    def notify(self, message: str, severity: Severity = "success") -> None: ...


class ConsoleNotifier:
    """Prints notifications to the terminal with rich markup."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def notify(self, message: str, severity: Severity = "success") -> None:
        style = SEVERITY_STYLES.get(severity, "bold")
        self.console.print(f"[{style}]{severity.upper()}:[/{style}] {escape(message)}")
