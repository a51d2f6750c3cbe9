"""
Replay command: differential build/test over a commit range
"""

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from incrfuzz.config import ReplayConfig
from incrfuzz.core.errors import IncrFuzzError
from incrfuzz.history import find_path
from incrfuzz.process import CargoToolchain
from incrfuzz.replay import STAGES, ReplayOrchestrator, ReplaySummary, WorkDirs, format_optional
from incrfuzz.vcs import GitRepository

from ..errors import fatal
from ..logging_config import get_logger

console = Console()
logger = get_logger(__name__)


def render_summary(summary: ReplaySummary) -> Table:
    table = Table(title="Fuzzing report", show_header=False)
    table.add_column("Metric", style="green")
    table.add_column("Value", style="cyan", justify="right")

    table.add_row("Commits built", str(summary.commits))
    table.add_row("Normal compilation", f"{summary.normal.build_time:.2f}s")
    table.add_row("Incremental compilation", f"{summary.incremental.build_time:.2f}s")
    table.add_row("Normal/incremental ratio", format_optional(summary.ratio()))
    table.add_row("Tests executed (passed)", f"{summary.tests_total} ({summary.tests_passed})")
    table.add_row(
        "Modules re-used",
        f"{summary.incremental.modules_reused} of {summary.incremental.modules_total} "
        f"({format_optional(summary.reuse_percent(), '{:.0f}%')})",
    )
    return table


def replay_command(
    revisions: str = typer.Argument(..., help="Commit range `A..B`, or a single endpoint for its whole history"),
    manifest: Path = typer.Option(Path("Cargo.toml"), "--cargo", help="Path to Cargo.toml"),
    work_dir: Path = typer.Option(Path("work"), "--work-dir", "-w", help="Disposable work directory"),
    just_current: bool = typer.Option(
        False, "--just-current", help="Only the current crate uses the incremental cache"
    ),
    live_log: bool = typer.Option(
        False, "--live-log", help="Stream cargo output instead of saving it per stage"
    ),
    skip_tests: bool = typer.Option(False, "--skip-tests", help="Do not run or compare tests"),
    no_debuginfo: bool = typer.Option(False, "--no-debuginfo", help="Build with `debug = 0`"),
    checkout_interval: float = typer.Option(
        1.0,
        "--checkout-interval",
        envvar="INCRFUZZ_CHECKOUT_INTERVAL",
        help="Minimum seconds between consecutive checkouts",
    ),
    json_output: bool = typer.Option(False, "--json", help="Output the report as JSON"),
):
    """
    Replay a commit range, building and testing each commit normally and
    incrementally, and abort on the first discrepancy.

    Examples:
        incrfuzz replay HEAD~5..HEAD
        incrfuzz replay v0.3.0..master --just-current --skip-tests
        incrfuzz replay HEAD --live-log
    """
    try:
        config = ReplayConfig(
            revisions=revisions,
            manifest=manifest,
            work_dir=work_dir,
            just_current=just_current,
            live_log=live_log,
            skip_tests=skip_tests,
            no_debuginfo=no_debuginfo,
            checkout_interval=checkout_interval,
        )
    except ValidationError as e:
        fatal(e)

    try:
        config.check_manifest()
        repo = GitRepository.discover(config.manifest)
        repo.check_clean()

        start, end = repo.resolve_range(config.revisions)
        commits = find_path(start, end)
        logger.info("replaying %d commits", len(commits))

        toolchain = CargoToolchain(config.project_dir, stream_output=config.live_log)
        work_dirs = WorkDirs(config.work_dir)

        if config.live_log:
            summary = ReplayOrchestrator(
                repo, toolchain, commits, work_dirs, config.replay_options()
            ).run()
        else:
            with Progress(console=console, transient=True) as bar:
                task = bar.add_task("replaying", total=len(commits) * len(STAGES))

                def update(index, short_id, stage):
                    bar.update(
                        task,
                        completed=index * len(STAGES) + STAGES.index(stage),
                        description=f"processing {short_id} ({stage.value})",
                    )

                summary = ReplayOrchestrator(
                    repo, toolchain, commits, work_dirs, config.replay_options(), progress=update
                ).run()
    except IncrFuzzError as e:
        fatal(e)

    if json_output:
        print(json.dumps({"success": True, **summary.to_dict()}, indent=2))
    else:
        console.print(render_summary(summary))
