"""CLI — Recipe management commands."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from ghost_bridge.config import get_settings
from ghost_bridge.exceptions import RecipeValidationError, StoreError
from ghost_bridge.recording.store import RecipeStore

app = typer.Typer(help="List, inspect, save and delete stored recipes.")
console = Console()

BASE_DIR_HELP = "Store directory (defaults to storage.base_dir from the config)."


def _store(base_dir: Path | None) -> RecipeStore:
    return RecipeStore(base_dir if base_dir is not None else get_settings().storage.base_dir)


@app.command("list")
def list_recipes(
    base_dir: Path | None = typer.Option(None, "--base-dir", help=BASE_DIR_HELP),
    json_output: bool = typer.Option(False, "--json"),
) -> None:
    """List stored recipes."""
    summaries = _store(base_dir).list_recipes()

    if json_output:
        payload = [s.to_wire() for s in summaries]
        console.print(Syntax(json.dumps(payload, indent=2, sort_keys=True), "json"))
        return

    if not summaries:
        console.print("[yellow]No recipes found.[/yellow]")
        return

    table = Table(title="Recipes")
    table.add_column("Name", style="cyan")
    table.add_column("Steps", justify="right")
    table.add_column("App")
    table.add_column("Params")
    table.add_column("Description")
    for summary in summaries:
        table.add_row(
            summary.name,
            str(summary.step_count),
            summary.app or "",
            ", ".join(summary.params),
            summary.description or "",
        )
    console.print(table)


@app.command("show")
def show_recipe(
    name: str = typer.Argument(help="Recipe name."),
    base_dir: Path | None = typer.Option(None, "--base-dir", help=BASE_DIR_HELP),
) -> None:
    """Print a recipe as JSON."""
    recipe = _store(base_dir).load_recipe(name)
    if recipe is None:
        console.print(f"[red]Recipe not found: {name}[/red]")
        raise typer.Exit(1)
    console.print(Syntax(json.dumps(recipe.to_file_dict(), indent=2, sort_keys=True), "json"))


@app.command("save")
def save_recipe(
    recipe_file: Path = typer.Argument(help="Path to the recipe JSON file."),
    name: str | None = typer.Option(None, "--name", help="Store under this name instead."),
    base_dir: Path | None = typer.Option(None, "--base-dir", help=BASE_DIR_HELP),
) -> None:
    """Validate a recipe file and copy it into the store."""
    if not recipe_file.exists():
        console.print(f"[red]File not found: {recipe_file}[/red]")
        raise typer.Exit(1)

    try:
        recipe = _store(base_dir).save_recipe_data(recipe_file.read_bytes(), name=name)
    except RecipeValidationError as exc:
        console.print(f"[red]{escape(exc.message)}[/red]")
        raise typer.Exit(1)
    except StoreError as exc:
        console.print(f"[red]Error: {escape(exc.message)}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Recipe saved:[/green] {name or recipe.name} ({len(recipe.steps)} steps)")


@app.command("delete")
def delete_recipe(
    name: str = typer.Argument(help="Recipe name."),
    base_dir: Path | None = typer.Option(None, "--base-dir", help=BASE_DIR_HELP),
) -> None:
    """Delete a stored recipe."""
    if not _store(base_dir).delete_recipe(name):
        console.print(f"[red]Recipe not found: {name}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Recipe deleted:[/green] {name}")
