#!/usr/bin/env python3
"""
Foyer Board Display - Command Line Interface
Kiosk runner and maintenance commands for the Deck board display
"""

import sys
import time
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.table import Table
from typing import List, Optional

from foyer.core import BoardSelectionStore, Config, configure_logging
from foyer.core.config import parse_board_ids
from foyer.dashboard import DisplayFormatter, DisplayService, top_tasks
from foyer.dashboard.classifier import local_now
from foyer.deck import DeckAggregator, DeckClient, DeckError

# Initialize CLI app and console
app = typer.Typer(help="Foyer Board Display - Nextcloud Deck boards on a rotating screen")

console = Console()
config = Config()

# Lazy-loaded service (initialized on first use)
_service: Optional[DisplayService] = None


def get_service() -> DisplayService:
    """
    Get or initialize the DisplayService instance.

    Deferred so commands that only manage the selection or the connection
    check skip the aggregator and its timers.
    """
    global _service
    if _service is None:
        configure_logging(config)
        client = DeckClient.from_config(config)
        _service = DisplayService(config, DeckAggregator(client, config))
    return _service


@app.command()
def show(
    boards: Optional[str] = typer.Option(None, "--boards", "-b", help="Comma-separated board ids"),
    all_boards: bool = typer.Option(False, "--all", "-a", help="Render every board, not just the first"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show the board overview"),
):
    """
    Fetch the boards once and render the display

    Shows the first board of the rotation (or every board with --all):
    - Board title and position
    - Top prioritized tasks
    - Fetch warnings and errors
    """
    service = get_service()
    ids = parse_board_ids(boards)
    if boards and not ids:
        console.print(f"[red]No valid board ids in: {boards}[/red]")
        raise typer.Exit(1)

    result = service.refresh(board_ids=ids)
    status = service.get_status()
    if result is None:
        console.print(f"[red]Error loading boards: {status.error}[/red]")
        raise typer.Exit(1)

    formatter = DisplayFormatter(console, service.settings)
    try:
        if not all_boards or len(result.boards) <= 1:
            formatter.render_display(
                service.get_rotation_state(),
                service.get_display_tasks(),
                status,
                result,
                verbose=verbose,
            )
            return

        now = local_now()
        limit = service.settings.max_tasks_per_board
        for board in result.boards:
            console.print(f"[bold blue]{escape(board.title)}[/bold blue] [dim](#{board.id})[/dim]")
            console.print(formatter.format_tasks(top_tasks(board, limit, now, service.settings), now))
            console.print()

        if verbose:
            console.print(formatter.format_board_overview(result))
    finally:
        service.shutdown()


@app.command()
def watch(
    interval: Optional[int] = typer.Option(None, "--interval", "-i", help="Refresh interval in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show the board overview"),
):
    """
    Run the rotating display in the terminal until Ctrl-C

    Boards rotate on their urgency-scaled timers and are refetched in the
    background.
    """
    service = get_service()
    formatter = DisplayFormatter(console, service.settings)

    service.refresh()
    service.start_background_refresh(interval)

    frame_seconds = max(service.settings.progress_tick_ms, 100) / 1000.0
    try:
        with Live(console=console, screen=True, auto_refresh=False) as live:
            while True:
                live.update(
                    formatter.build_display(
                        service.get_rotation_state(),
                        service.get_display_tasks(),
                        service.get_status(),
                        service.get_aggregate_result(),
                        verbose=verbose,
                    ),
                    refresh=True,
                )
                time.sleep(frame_seconds)
    except KeyboardInterrupt:
        pass
    finally:
        service.shutdown()
    console.print("[dim]Display stopped[/dim]")


@app.command("boards")
def list_boards():
    """List the Deck boards visible to the configured user"""
    client = DeckClient.from_config(config)
    try:
        raw_boards = client.list_boards()
    except DeckError as e:
        console.print(f"[red]Error listing boards: {e}[/red]")
        raise typer.Exit(1)

    selected = set(BoardSelectionStore(config.selection_file).load(config.instance_id()) or [])
    defaults = set(config.deck_settings().default_boards)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", width=6)
    table.add_column("Title", min_width=30)
    table.add_column("Archived", justify="center", width=8)
    table.add_column("Shown", justify="center", width=8)

    for board in raw_boards:
        if not isinstance(board, dict) or board.get("id") is None:
            continue
        board_id = int(board["id"])
        if board_id in selected:
            shown = "[green]●[/green]"
        elif not selected and board_id in defaults:
            shown = "[cyan]default[/cyan]"
        else:
            shown = ""
        table.add_row(
            str(board_id),
            escape(board.get("title") or "Untitled Board"),
            "yes" if board.get("archived") else "",
            shown,
        )

    console.print(table)


@app.command()
def select(
    board_ids: List[str] = typer.Argument(..., help="Board ids to display"),
):
    """Store the board selection of this display"""
    store = BoardSelectionStore(config.selection_file)
    stored = store.save(config.instance_id(), board_ids)
    if not stored:
        console.print("[red]No valid board ids given[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Displaying boards: {', '.join(str(i) for i in stored)}")


@app.command("clear-selection")
def clear_selection():
    """Drop the stored selection; default boards apply again"""
    store = BoardSelectionStore(config.selection_file)
    if store.clear(config.instance_id()):
        console.print("[green]✓[/green] Board selection cleared")
    else:
        console.print("[dim]No board selection stored[/dim]")


@app.command()
def health():
    """Check the connection to Nextcloud Deck"""
    client = DeckClient.from_config(config)
    status = client.test_connection()
    if not status.get("connected"):
        console.print(f"[red]✗ Deck connection failed: {status.get('error')}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Connected to {client.base_url}: {status['boards_count']} boards")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
):
    """Run the HTTP API for browser displays"""
    import uvicorn
    uvicorn.run("backend.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
