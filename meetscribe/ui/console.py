"""Console rendering of session events and status with rich."""

import logging
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.events import (
    CaptureErrorEvent,
    PausedEvent,
    ResumedEvent,
    StatusChangeEvent,
    StoppedEvent,
    WarningEvent,
)
from ..models.session import PauseReason, SessionStatus

logger = logging.getLogger(__name__)

EVENT_STYLES = {
    "started": "bold green",
    "paused": "bold yellow",
    "resumed": "green",
    "stopped": "bold blue",
    "silence_detected": "yellow",
    "audio_detected": "green",
    "warning": "bold magenta",
    "capture_error": "bold red",
}


class SessionConsole:
    """Prints lifecycle events and status summaries for one session."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def describe(self, event: StatusChangeEvent) -> str:
        """One-line human description of an event."""
        if isinstance(event, PausedEvent):
            if event.reason is PauseReason.SILENCE:
                return f"⏸️  Paused (silence): {event.message}"
            return f"⏸️  Paused: {event.message or 'manual pause'}"
        if isinstance(event, ResumedEvent):
            reason = event.previous_reason.value if event.previous_reason else "unknown"
            return f"▶️  Resumed (was paused: {reason})"
        if isinstance(event, StoppedEvent):
            return (f"⏹️  Stopped after {event.duration_seconds:.1f}s: "
                    f"{event.chunks_processed} chunks, {event.errors} errors")
        if isinstance(event, WarningEvent):
            return f"⚠️  {event.message}"
        if isinstance(event, CaptureErrorEvent):
            return f"❌ Capture error: {event.message}"
        if event.type == "silence_detected":
            return f"🔇 Silence detected ({event.count} chunks)"
        if event.type == "audio_detected":
            return "🔊 Audio detected"
        if event.type == "started":
            return "🎙️  Transcription started"
        return event.type

    def on_event(self, event: StatusChangeEvent) -> None:
        """pubsub listener; the argument name must stay `event`."""
        stamp = event.timestamp.strftime("%H:%M:%S")
        self.console.print(f"[dim]{stamp}[/dim] {self.describe(event)}",
                           style=EVENT_STYLES.get(event.type, ""))

    def print_status(self, status: SessionStatus) -> None:
        table = Table(show_header=False, box=None)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("State", status.state.value)
        if status.start_time:
            table.add_row("Started", status.start_time.strftime("%Y-%m-%d %H:%M:%S"))
        table.add_row("Chunks transcribed", str(status.chunks_processed))
        table.add_row("Silent chunks skipped", str(status.silent_chunks_skipped))
        table.add_row("Errors", str(status.errors))
        table.add_row("Estimated cost", f"${status.estimated_cost:.4f}")
        table.add_row("Cost saved", f"${status.cost_saved:.4f}")
        if status.warning:
            table.add_row("Warning", f"[yellow]{status.warning}[/yellow]")
        self.console.print(Panel(table, title="Session status", border_style="blue"))

    def print_summary(self, status: SessionStatus, transcript_path: str) -> None:
        self.print_status(status)
        self.console.print(f"📝 Transcript saved to: [bold]{transcript_path}[/bold]")
