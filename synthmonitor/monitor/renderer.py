"""Rich terminal renderer for the activity monitor.

Turns buffered activity records, the progress gauge and the current
``SystemStatus`` into Rich renderables.  It reads through
``ActivityMonitor.filter`` and never touches the buffer directly.

Color scheme
------------
- green     : success
- red       : error
- yellow    : warning
- blue      : info
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from synthmonitor.models.activity import ActivityLevel, ActivityRecord
from synthmonitor.models.status import AIServiceState, SystemStatus
from synthmonitor.monitor.projection import step_label

if TYPE_CHECKING:
    from synthmonitor.monitor.projection import FilterCriteria
    from synthmonitor.monitor.session import ActivityMonitor


# ---------------------------------------------------------------------------
# Level -> Rich style mapping
# ---------------------------------------------------------------------------

_LEVEL_STYLES: dict[ActivityLevel, str] = {
    ActivityLevel.SUCCESS: "green",
    ActivityLevel.ERROR: "bold red",
    ActivityLevel.WARNING: "yellow",
    ActivityLevel.INFO: "blue",
}

_AI_STATE_MARKUP: dict[AIServiceState, str] = {
    AIServiceState.ONLINE: "[green]online[/green]",
    AIServiceState.OFFLINE: "[bold red]offline[/bold red]",
    AIServiceState.STARTING: "[yellow]starting[/yellow]",
    AIServiceState.UNKNOWN: "[dim]unknown[/dim]",
}


class ActivityRenderer:
    """Renders an ``ActivityMonitor`` as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    max_rows:
        Maximum number of activity rows shown in the table.
    """

    def __init__(self, console: Console | None = None, *, max_rows: int = 25) -> None:
        self.console = console or Console()
        self.max_rows = max_rows

    def render_monitor(
        self,
        monitor: ActivityMonitor,
        criteria: FilterCriteria | None = None,
    ) -> Panel:
        """Render the full monitor: status line, gauge and activity table."""
        records = monitor.filter(criteria)
        return self.render(records, monitor.current_progress(), monitor.current_status())

    def render(
        self,
        records: list[ActivityRecord],
        progress: int,
        status: SystemStatus,
    ) -> Panel:
        table = self._build_activity_table(records[: self.max_rows])
        gauge = Group(
            Text.from_markup(f"[bold]Progress:[/bold] {progress}%"),
            ProgressBar(total=100, completed=progress),
        )
        content = Group(
            Text.from_markup(self.status_line(status)),
            Text(""),
            gauge,
            Text(""),
            table,
        )
        subtitle = (
            f"Last check: {status.last_check.strftime('%H:%M:%S UTC')}"
            if status.last_check
            else "Last check: never"
        )
        return Panel(
            content,
            title="[bold]Synthetic Data Activity Monitor[/bold]",
            subtitle=subtitle,
            border_style="blue",
            padding=(1, 2),
        )

    @staticmethod
    def status_line(status: SystemStatus) -> str:
        backend = (
            f"[green]healthy[/green] ({status.backend_latency_ms}ms)"
            if status.backend_healthy
            else "[bold red]unreachable[/bold red]"
        )
        transport = (
            "[green]connected[/green]"
            if status.transport_connected
            else "[bold red]disconnected[/bold red]"
        )
        parts = [
            f"[bold]Backend:[/bold] {backend}",
            f"[bold]AI:[/bold] {_AI_STATE_MARKUP[status.ai_service_state]} {status.ai_model}",
            f"[bold]Agents:[/bold] {status.agents_operational}/{status.agents_total}",
            f"[bold]Live:[/bold] {transport}",
        ]
        return "  |  ".join(parts)

    def _build_activity_table(self, records: list[ActivityRecord]) -> Table:
        table = Table(
            show_header=True,
            header_style="bold cyan",
            expand=True,
            show_lines=False,
        )
        table.add_column("Time", style="dim", width=10)
        table.add_column("Stage", min_width=22)
        table.add_column("Agent", min_width=14)
        table.add_column("Message", ratio=1)
        table.add_column("%", justify="right", width=5)

        if not records:
            table.add_row("", "[dim]No activity yet[/dim]", "", "", "")
            return table

        for record in records:
            style = _LEVEL_STYLES.get(record.level, "")
            progress = "" if record.progress is None else str(record.progress)
            table.add_row(
                record.timestamp.strftime("%H:%M:%S"),
                step_label(record.type),
                record.agent,
                Text(record.message, style=style),
                progress,
            )
        return table

    def print_monitor(
        self,
        monitor: ActivityMonitor,
        criteria: FilterCriteria | None = None,
    ) -> None:
        self.console.print(self.render_monitor(monitor, criteria))
