"""Terminal progress and result display using rich."""

import threading
import time
from collections import deque
from typing import Dict, Optional

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from shelfscan.models import Confidence, MergedResult

STAGE_LABELS = {
    "frames": "Extracting frames",
    "ocr": "Reading text",
    "extraction": "Identifying books",
    "save": "Saving listings",
}


def format_elapsed(elapsed: float) -> str:
    if elapsed < 60:
        return f"{elapsed:.1f}s"
    if elapsed < 3600:
        return f"{int(elapsed // 60)}m {int(elapsed % 60)}s"
    return f"{int(elapsed // 3600)}h {int((elapsed % 3600) // 60)}m"


class ScanProgressDisplay:
    """Live status and activity log while a scan runs."""

    def __init__(self, console: Optional[Console] = None):
        self.lock = threading.Lock()

        self.stage: Optional[str] = None
        self.message = ""
        self.log: deque = deque(maxlen=100)
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        self.console = console or Console()
        self.running = False
        self.activity_log_max_lines = 10
        self.display_thread: Optional[threading.Thread] = None

    def update(self, stage: str, message: str) -> None:
        """Status callback for the pipeline."""
        with self.lock:
            if self.start_time is None:
                self.start_time = time.time()
            self.stage = stage
            self.message = message
            self.log.append(message)

    def finish(self) -> None:
        with self.lock:
            self.end_time = time.time()

    def _status_panel(self) -> Panel:
        with self.lock:
            text = Text()
            text.append(" Scan Status ", style="bold green on dark_blue")
            text.append(" (Press Ctrl+C to cancel)\n\n", style="dim")
            text.append("Stage: ", style="dim")
            text.append(f"{STAGE_LABELS.get(self.stage, 'Waiting...')}\n", style="bright_white")
            if self.message:
                text.append(f"\n{self.message}\n", style="dim")
            if self.start_time is not None:
                end = self.end_time or time.time()
                text.append("\nElapsed: ", style="dim")
                text.append(format_elapsed(end - self.start_time), style="bright_white")
            return Panel(text, title="Status", border_style="green")

    def _log_panel(self) -> Panel:
        with self.lock:
            text = Text()
            if self.log:
                # Newest at top
                for msg in reversed(list(self.log)[-self.activity_log_max_lines:]):
                    text.append(f"{msg}\n", style="dim")
            else:
                text.append("No activity yet...\n", style="dim")
            return Panel(text, title="Activity Log", border_style="blue")

    def _create_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(self._status_panel(), size=9),
            Layout(self._log_panel()),
        )
        return layout

    def start(self) -> None:
        """Start refreshing the display in a background thread."""
        def run_display():
            self.running = True
            try:
                with Live(self._create_layout(), refresh_per_second=4, console=self.console) as live:
                    while self.running:
                        live.update(self._create_layout())
                        time.sleep(0.25)
            finally:
                self.running = False

        self.display_thread = threading.Thread(target=run_display, daemon=True)
        self.display_thread.start()

    def stop(self) -> None:
        self.running = False
        if self.display_thread is not None:
            self.display_thread.join(timeout=1.0)
            self.display_thread = None


def show_results(
    merged: MergedResult,
    console: Optional[Console] = None,
    timings: Optional[Dict[str, float]] = None,
    ocr_cost: Optional[float] = None
) -> None:
    """Print the identified books as a table with summary counts."""
    console = console or Console()

    summary = (
        f"[green]{merged.high_confidence_count}[/green] high confidence, "
        f"[yellow]{merged.needs_confirmation_count}[/yellow] need review"
    )
    if timings and "total" in timings:
        summary += f"\n[dim]Scanned in {format_elapsed(timings['total'])}"
        if ocr_cost is not None:
            summary += f" (OCR cost £{ocr_cost:.4f})"
        summary += "[/dim]"

    console.print()
    console.print(Panel(
        summary,
        title=f"[bold]{merged.total_identified} Books Identified[/bold]",
        border_style="cyan",
    ))

    if not merged.books:
        console.print("[yellow]No books identified.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="bright_white", overflow="fold")
    table.add_column("Author", style="green", overflow="fold")
    table.add_column("Confidence")
    table.add_column("Evidence", style="dim", overflow="fold")

    for i, book in enumerate(merged.books, start=1):
        if book.confidence == Confidence.HIGH:
            confidence = "[green]high[/green]"
        else:
            confidence = "[yellow]review[/yellow]"
        evidence = book.evidence[:80] + "..." if len(book.evidence) > 80 else book.evidence
        table.add_row(str(i), book.title, book.author, confidence, evidence)

    console.print(table)
    console.print()
