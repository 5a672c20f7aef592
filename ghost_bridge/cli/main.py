"""Ghost Bridge CLI — Entry point.

Usage:
    ghost-bridge recipes list
    ghost-bridge recipes show <name>
    ghost-bridge recipes save <file.json> [--name NAME]
    ghost-bridge recipes delete <name>
    ghost-bridge recordings list
    ghost-bridge recordings show <name>
    ghost-bridge schema dump [request|response|recipe|recording]
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from ghost_bridge.cli.commands import recipes, recordings, schema
from ghost_bridge.config import Settings, override_settings
from ghost_bridge.logging import configure_logging

app = typer.Typer(
    name="ghost-bridge",
    help="Ghost Bridge — control plane of a desktop UI-automation agent.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

console = Console()

app.add_typer(recipes.app, name="recipes")
app.add_typer(recordings.app, name="recordings")
app.add_typer(schema.app, name="schema")


@app.callback()
def main_callback(
    config: Path | None = typer.Option(None, "--config", help="Path to a YAML config file."),
) -> None:
    settings = Settings.load(config)
    override_settings(settings)
    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )


if __name__ == "__main__":
    app()
