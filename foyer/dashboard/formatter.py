"""
Rich formatter module for the Foyer Board Display.

Handles all Rich-based terminal rendering for kiosk mode: the current
board header with its rotation progress, the prioritized task list and
a board overview.
"""

from datetime import datetime
from typing import List, Optional

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from foyer.core.config import DisplaySettings
from foyer.core.models import AggregateResult, DisplayTask
from foyer.dashboard.classifier import (
    DEFAULT_SETTINGS,
    Classifier,
    PriorityLevel,
    local_now,
)
from foyer.dashboard.rotation import RotationState, calculate_display_duration
from foyer.dashboard.service import DisplayStatus
from foyer.dashboard.sorter import urgent_task_count


# Color hints -> Rich styles
HINT_STYLES = {
    "error": "red bold",
    "warning": "yellow",
    "info": "cyan",
    "success": "green",
    "default": "dim",
}

PRIORITY_LABELS = {
    PriorityLevel.HIGH: "High",
    PriorityLevel.LOW: "Low",
    PriorityLevel.URGENT: "Urgent",
}


class DisplayFormatter:
    """
    Rich-based formatter for the board display.

    Creates terminal output using Rich panels, tables, and styling.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        settings: Optional[DisplaySettings] = None,
    ):
        """
        Initialize formatter.

        Args:
            console: Rich Console instance (creates default if not provided)
            settings: Thresholds used for due-date descriptions
        """
        self.console = console or Console()
        self.settings = settings or DEFAULT_SETTINGS
        self.classifier = Classifier(self.settings)

    def _styled(self, text: str, hint: str) -> str:
        style = HINT_STYLES.get(hint, "white")
        return f"[{style}]{text}[/{style}]"

    def _format_assignees(self, task: DisplayTask) -> str:
        names = [u.display_name or u.uid for u in task.card.assigned_users]
        if not names:
            return "[dim]---[/dim]"
        first_names = [n.split()[0] if n else "?" for n in names]
        return escape(", ".join(first_names))

    def format_header(self, state: RotationState, status: DisplayStatus) -> Panel:
        """
        Create header panel with board title and rotation progress.

        Args:
            state: Current rotation state
            status: Fetch status

        Returns:
            Rich Panel with header content
        """
        board = state.current_board
        title = board.title if board else "Tasks"

        content = Text()
        if state.total > 1:
            content.append(f"Board {state.index + 1} of {state.total}", style="bold")
        elif state.total == 1:
            content.append("Single board", style="bold")
        else:
            content.append("No boards", style="dim")

        if status.last_updated:
            updated = status.last_updated.astimezone().strftime("%H:%M")
            content.append(f"  •  updated {updated}", style="dim")
        if status.loading:
            content.append("  •  refreshing...", style="yellow")

        parts = [content]
        if state.total > 1:
            parts.append(ProgressBar(total=100, completed=state.progress, width=60))

        border = "dim" if state.transitioning else "blue"
        return Panel(
            Group(*parts),
            title=f"[bold]{escape(title)}[/bold]",
            title_align="center",
            border_style=border,
            padding=(0, 2),
        )

    def format_tasks(
        self,
        tasks: List[DisplayTask],
        now: Optional[datetime] = None,
    ) -> Panel:
        """
        Create panel showing the prioritized tasks.

        Args:
            tasks: Sorted display tasks

        Returns:
            Rich Panel with task list
        """
        if not tasks:
            content = Text("No active tasks", style="dim", justify="center")
            return Panel(
                content,
                title="[bold]Tasks[/bold]",
                border_style="green",
                padding=(0, 1),
            )

        if now is None:
            now = local_now()

        table = Table(
            show_header=False,
            box=None,
            padding=(0, 1),
            expand=True,
        )
        table.add_column("#", width=2)
        table.add_column("Title", ratio=1)
        table.add_column("Stack", width=14)
        table.add_column("Due", width=20, justify="right")
        table.add_column("Priority", width=7, justify="right")
        table.add_column("Assigned", width=18, justify="right")

        for i, task in enumerate(tasks, 1):
            due_info = self.classifier.describe_due_date(task.due_date, now)
            due_str = self._styled(due_info.text, due_info.color) if due_info else "[dim]---[/dim]"

            priority = self.classifier.classify(task.card, now)
            label = PRIORITY_LABELS.get(priority.level)
            priority_str = self._styled(label, priority.color) if label else ""

            title = escape(task.title[:45] + "..." if len(task.title) > 45 else task.title)
            table.add_row(
                f"[bold]{i}.[/bold]",
                title,
                f"[dim]{escape(task.stack_title[:14])}[/dim]",
                due_str,
                priority_str,
                self._format_assignees(task),
            )

        return Panel(
            table,
            title="[bold]Tasks[/bold]",
            border_style="green",
            padding=(0, 1),
        )

    def format_board_overview(
        self,
        result: AggregateResult,
        now: Optional[datetime] = None,
    ) -> Table:
        """
        Create table of all boards with urgency and display time.

        Args:
            result: Aggregated boards

        Returns:
            Rich Table
        """
        if now is None:
            now = local_now()

        table = Table(title="Boards", expand=True)
        table.add_column("ID", style="dim", width=6)
        table.add_column("Title")
        table.add_column("Stacks", justify="right")
        table.add_column("Cards", justify="right")
        table.add_column("Urgent", justify="right")
        table.add_column("Shown", justify="right")

        for board in result.boards:
            urgent = urgent_task_count(board, now, self.settings)
            duration = calculate_display_duration(urgent, self.settings.rotation_base_ms)
            urgent_str = f"[red bold]{urgent}[/red bold]" if urgent else "[dim]0[/dim]"
            table.add_row(
                str(board.id),
                escape(board.title),
                str(len(board.stacks)),
                str(board.total_cards()),
                urgent_str,
                f"{duration / 1000:.0f}s",
            )

        return table

    def format_status_bar(self, status: DisplayStatus, result: Optional[AggregateResult]) -> str:
        """
        Create bottom status bar.

        Returns:
            Formatted status string
        """
        parts = []
        if result is not None:
            parts.append(f"[white]{len(result.boards)} boards[/white]")
            parts.append(f"[white]{result.total_cards()} cards[/white]")
            if result.warnings:
                parts.append(f"[yellow]⚠ {len(result.warnings)} warnings[/yellow]")
        if status.error:
            parts.append(f"[red]✗ {escape(status.error)}[/red]")
        return " │ ".join(parts)


    def build_display(
        self,
        state: RotationState,
        tasks: List[DisplayTask],
        status: DisplayStatus,
        result: Optional[AggregateResult] = None,
        verbose: bool = False,
    ) -> Group:
        """
        Build the complete display as one renderable.

        Used directly by live mode; render_display() prints it once.

        Args:
            state: Rotation state
            tasks: Tasks of the current board
            status: Fetch status
            result: Aggregated boards (for the overview)
            verbose: Also show the board overview
        """
        parts = [self.format_header(state, status), Text()]

        if result is not None and result.is_empty():
            parts.append(Panel(
                Text("Nothing to show", style="dim", justify="center"),
                border_style="dim",
            ))
        else:
            parts.append(self.format_tasks(tasks))
        parts.append(Text())

        if verbose and result is not None:
            parts.append(self.format_board_overview(result))
            parts.append(Text())

        parts.append(Rule(style="dim"))
        parts.append(Text.from_markup(self.format_status_bar(status, result), justify="center"))
        return Group(*parts)

    def render_display(
        self,
        state: RotationState,
        tasks: List[DisplayTask],
        status: DisplayStatus,
        result: Optional[AggregateResult] = None,
        verbose: bool = False,
    ) -> None:
        """Render the complete display to console."""
        self.console.print(self.build_display(state, tasks, status, result, verbose))
