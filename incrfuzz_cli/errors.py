"""
Fatal error reporting: the only place that prints a failure and exits.
"""

from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from incrfuzz.core.errors import DifferentialError
from incrfuzz.core.results import ProcessOutput

EXIT_FAILURE = 1

err_console = Console(stderr=True, highlight=False, soft_wrap=True)


def _plain(console: Console, text: str = "") -> None:
    console.print(text, markup=False, highlight=False)


def print_output(console: Console, label: str, output: ProcessOutput) -> None:
    """Dump one side of a comparison in full."""
    stdout = output.stdout.decode("utf-8", errors="replace")
    stderr = output.stderr.decode("utf-8", errors="replace")

    _plain(console)
    _plain(console, f"{label.upper()}")
    _plain(console, "=" * len(label))
    _plain(console)
    _plain(console, "EXIT STATUS:")
    _plain(console, "=============")
    _plain(console, output.status_line)
    _plain(console)
    _plain(console, "STANDARD OUT")
    _plain(console, "============")
    _plain(console, stdout)
    _plain(console)
    _plain(console, "STANDARD ERR")
    _plain(console, "============")
    _plain(console, stderr)


def report_fatal(err: Exception, console: Optional[Console] = None) -> None:
    """Print `error: <message>` and, for discrepancies, every evidence side."""
    console = console or err_console
    if isinstance(err, DifferentialError):
        for label, output in err.evidence:
            print_output(console, label, output)
        _plain(console)
    console.print(f"[bold red]error:[/bold red] {escape(str(err))}", highlight=False)


def fatal(err: Exception) -> NoReturn:
    report_fatal(err)
    raise typer.Exit(EXIT_FAILURE)
