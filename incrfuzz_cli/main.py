#!/usr/bin/env python3
"""
incrfuzz CLI - differential testing of cargo incremental builds

Main entrypoint for the incrfuzz command-line tool.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from incrfuzz_cli.commands import build, replay
from incrfuzz_cli.logging_config import setup_logging

# Initialize Typer app
app = typer.Typer(
    name="incrfuzz",
    help="Differential testing of cargo incremental compilation against git history",
    add_completion=False,
)

console = Console()

app.command("replay")(replay.replay_command)
app.command("build")(build.build_command)


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override INCRFUZZ_LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)"
    ),
):
    """Differential testing of cargo incremental compilation."""
    setup_logging(log_level)


@app.command()
def version():
    """Show version information."""
    from incrfuzz_cli import __version__

    table = Table(show_header=False, box=None)
    table.add_row("[bold]incrfuzz[/bold]", f"v{__version__}")
    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
