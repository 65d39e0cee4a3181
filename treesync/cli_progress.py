"""Console rendering and progress helpers for treesync CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .models import SyncReport, UploadOutcome, WorkItem
from .utils.events import SyncEvent

console = Console()


def _echo(message: str, target: Optional[Console] = None) -> None:
    (target or console).print(message)


def render_configuration_summary(config: Dict[str, Any], target: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]treesync[/bold green]",
        subtitle="[dim]tree sync[/dim]",
        border_style="blue",
    )
    (target or console).print(panel)


def render_report(report: SyncReport, target: Optional[Console] = None) -> None:
    """Render the final sync report and the list of failed items."""
    out = target or console

    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="bold", justify="right")
    summary.add_column()
    summary.add_row("Total files", str(report.total))
    summary.add_row("Already done", str(report.already_done))
    summary.add_row("Uploaded", f"[green]{report.uploaded}[/green]")
    summary.add_row("Skipped (exists)", f"[cyan]{report.skipped}[/cyan]")
    failed_style = "red" if report.failed else "green"
    summary.add_row("Failed", f"[{failed_style}]{report.failed}[/{failed_style}]")
    summary.add_row("Elapsed", f"{report.elapsed:.1f}s")
    out.print(Panel(summary, title="[bold]Sync complete[/bold]", border_style=failed_style))

    if not report.failures:
        return

    failures = Table(title="Failed files", show_lines=False, header_style="bold red")
    failures.add_column("Remote key", overflow="fold")
    failures.add_column("Attempts", justify="right")
    failures.add_column("Error", overflow="fold")
    for outcome in report.failures:
        failures.add_row(outcome.item.remote_key, str(outcome.attempts), outcome.message)
    out.print(failures)


class SyncProgressDisplay:
    """Event-based console display for a sync run."""

    def __init__(self, target: Optional[Console] = None):
        self._console = target or console
        self._stats: Dict[str, int] = {"pending": 0, "uploaded": 0, "skipped": 0, "failed": 0}
        self._active: Dict[str, TaskID] = {}
        self._live: Optional[Live] = None
        self._overall_task_id: Optional[TaskID] = None
        self._overall = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]Overall", justify="left"),
            BarColumn(bar_width=36),
            MofNCompleteColumn(),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            TimeElapsedColumn(),
            expand=False,
            console=self._console,
        )
        self._files = Progress(
            SpinnerColumn(),
            TextColumn("[green]{task.fields[label]}", justify="left"),
            expand=False,
            console=self._console,
        )

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    def _emit_timeline(self, status: str, name: str, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {"DONE": "green", "SKIP": "cyan", "FAIL": "red"}
        color = palette.get(status, "white")
        error_label = f" cause={error}" if error else ""
        _echo(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {name}{error_label}", self._console)

    def _start_live(self) -> None:
        if self._live is not None:
            return
        self._live = Live(
            Group(self._overall, self._files),
            console=self._console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()

    def _stop_live(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def _update_overall(self) -> None:
        if self._overall_task_id is None:
            return
        done = self._stats["uploaded"] + self._stats["skipped"] + self._stats["failed"]
        self._overall.update(
            self._overall_task_id,
            completed=done,
            detail=(
                f"uploaded={self._stats['uploaded']} skipped={self._stats['skipped']} "
                f"failed={self._stats['failed']}"
            ),
        )

    def _finish_item(self, outcome: UploadOutcome) -> None:
        task_id = self._active.pop(outcome.item.remote_key, None)
        if task_id is not None:
            self._files.remove_task(task_id)

    def on_start(self, total: int, pending: int) -> None:
        self._stats["pending"] = pending
        if total > pending:
            _echo(f"[dim]{total - pending} file(s) already synced, skipping[/dim]", self._console)
        if pending == 0:
            return
        self._start_live()
        self._overall_task_id = self._overall.add_task("overall", total=pending, detail="starting...")

    def on_item_start(self, item: WorkItem) -> None:
        task_id = self._files.add_task("item", label=item.remote_key[:80], total=None)
        self._active[item.remote_key] = task_id

    def on_item_complete(self, outcome: UploadOutcome) -> None:
        self._finish_item(outcome)
        if outcome.skipped:
            self._stats["skipped"] += 1
            self._emit_timeline("SKIP", outcome.item.remote_key)
        else:
            self._stats["uploaded"] += 1
            self._emit_timeline("DONE", outcome.item.remote_key)
        self._update_overall()

    def on_item_fail(self, outcome: UploadOutcome) -> None:
        self._finish_item(outcome)
        self._stats["failed"] += 1
        self._emit_timeline("FAIL", outcome.item.remote_key, error=outcome.message)
        self._update_overall()

    def on_finish(self, report: SyncReport) -> None:
        self._stop_live()
        render_report(report, self._console)

    def attach(self, orchestrator: Any) -> None:
        """Subscribe to an orchestrator's events."""
        orchestrator.on(SyncEvent.START, self.on_start)
        orchestrator.on(SyncEvent.ITEM_START, self.on_item_start)
        orchestrator.on(SyncEvent.ITEM_COMPLETE, self.on_item_complete)
        orchestrator.on(SyncEvent.ITEM_FAIL, self.on_item_fail)
        orchestrator.on(SyncEvent.FINISH, self.on_finish)

    def close(self) -> None:
        """Stop live rendering without printing a report."""
        self._stop_live()
