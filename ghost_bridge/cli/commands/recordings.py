"""CLI — Recording inspection commands."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ghost_bridge.config import get_settings
from ghost_bridge.recording.store import RecipeStore

app = typer.Typer(help="List and inspect captured recordings.")
console = Console()


def _store(base_dir: Path | None) -> RecipeStore:
    return RecipeStore(base_dir if base_dir is not None else get_settings().storage.base_dir)


@app.command("list")
def list_recordings(
    base_dir: Path | None = typer.Option(None, "--base-dir"),
) -> None:
    """List stored recordings, newest first."""
    names = _store(base_dir).list_recordings()
    if not names:
        console.print("[yellow]No recordings found.[/yellow]")
        return
    for name in names:
        console.print(name)


@app.command("show")
def show_recording(
    name: str = typer.Argument(help="Recording name as printed by 'recordings list'."),
    base_dir: Path | None = typer.Option(None, "--base-dir"),
    json_output: bool = typer.Option(False, "--json"),
) -> None:
    """Show the steps of a recording."""
    recording = _store(base_dir).load_recording(name)
    if recording is None:
        console.print(f"[red]Recording not found: {name}[/red]")
        raise typer.Exit(1)

    if json_output:
        console.print(Syntax(json.dumps(recording.to_wire(), indent=2, sort_keys=True), "json"))
        return

    console.print(f"[bold]{recording.name}[/bold]  {recording.recorded_at.isoformat()}")
    console.print(f"Duration: {recording.duration:.1f}s  Steps: {len(recording.steps)}")

    table = Table()
    table.add_column("#", justify="right")
    table.add_column("Method", style="cyan")
    table.add_column("OK")
    table.add_column("Description")
    for index, step in enumerate(recording.steps, start=1):
        table.add_row(
            str(index),
            step.method,
            "[green]yes[/green]" if step.success else "[red]no[/red]",
            step.description or "",
        )
    console.print(table)
