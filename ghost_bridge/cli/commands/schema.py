"""CLI — Schema export commands."""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.syntax import Syntax

app = typer.Typer(help="Export JSONSchemas for the wire envelope and recipe files.")
console = Console()


@app.callback()
def schema_callback() -> None:
    """Export JSONSchemas for the wire envelope and recipe files."""


def _schemas() -> dict[str, Any]:
    from ghost_bridge.protocol.models import Request
    from ghost_bridge.protocol.results import Response
    from ghost_bridge.recording.models import Recipe, Recording

    return {
        "request": Request.model_json_schema(by_alias=True),
        "response": Response.model_json_schema(by_alias=True),
        "recipe": Recipe.model_json_schema(by_alias=True),
        "recording": Recording.model_json_schema(by_alias=True),
    }


@app.command("dump")
def dump_schema(
    kind: str | None = typer.Argument(
        default=None, help="One of request, response, recipe, recording. Dumps all if omitted."
    ),
    output: str | None = typer.Option(None, "--output", "-o", help="Output file path."),
) -> None:
    """Dump JSONSchemas to stdout or a file."""
    schemas = _schemas()
    if kind is not None:
        if kind not in schemas:
            console.print(f"[red]Unknown schema: {kind}. Choose from {', '.join(schemas)}[/red]")
            raise typer.Exit(1)
        schema: dict[str, Any] = schemas[kind]
    else:
        schema = schemas

    json_str = json.dumps(schema, indent=2, sort_keys=True, default=str)

    if output:
        import pathlib

        pathlib.Path(output).write_text(json_str)
        console.print(f"[green]Schema written to {output}[/green]")
    else:
        console.print(Syntax(json_str, "json"))
