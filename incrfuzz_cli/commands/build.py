"""
Build command: checkpoint the work tree, then build incrementally
"""

from pathlib import Path

import typer
from rich.console import Console

from incrfuzz.config import BuildConfig
from incrfuzz.core.errors import IncrFuzzError
from incrfuzz.core.results import BuildInvocationConfig, BuildMode, CompilationStats
from incrfuzz.process import CargoToolchain
from incrfuzz.replay import format_optional
from incrfuzz.vcs import CHECKPOINT_BRANCH, GitRepository

from ..errors import fatal, print_output

console = Console()

CACHE_DIR_NAME = "build-cache"
TARGET_DIR_NAME = "target"


def build_command(
    manifest: Path = typer.Option(Path("Cargo.toml"), "--cargo", help="Path to Cargo.toml"),
    just_current: bool = typer.Option(
        False, "--just-current", help="Only the current crate uses the incremental cache"
    ),
    live_log: bool = typer.Option(False, "--live-log", help="Stream cargo output as it arrives"),
):
    """
    Record a checkpoint commit on the `cargo-incremental-build` branch, then
    run one incremental build with a persistent cache.

    Examples:
        incrfuzz build
        incrfuzz build --cargo crates/foo/Cargo.toml --just-current
    """
    config = BuildConfig(manifest=manifest, just_current=just_current, live_log=live_log)

    try:
        config.check_manifest()
        repo = GitRepository.discover(config.manifest)
        repo.check_no_untracked_sources(".rs")

        console.print(f"head is: [cyan]{repo.current_branch()}[/cyan]")
        console.print(f"committing checkpoint on [cyan]{CHECKPOINT_BRANCH}[/cyan]")
        oid = repo.commit_checkpoint(CHECKPOINT_BRANCH)
        console.print(f"Commit: [yellow]{oid}[/yellow]")

        project_dir = config.project_dir
        invocation = BuildInvocationConfig(
            mode=BuildMode.INCREMENTAL,
            target_dir=project_dir / TARGET_DIR_NAME,
            cache_dir=project_dir / CACHE_DIR_NAME,
            scope=config.scope,
        )
        stats = CompilationStats()

        console.print("[bold]Building..[/bold]")
        toolchain = CargoToolchain(project_dir, stream_output=config.live_log)
        result = toolchain.build(invocation, None, stats)
    except IncrFuzzError as e:
        fatal(e)

    if not config.live_log and result.raw_output is not None:
        print_output(console, "cargo build", result.raw_output)

    if result.success:
        console.print(f"[green]✓ Build succeeded[/green] in {stats.build_time:.2f}s")
    else:
        console.print("[red]✗ Build failed[/red]")
    console.print(
        f"  re-use: {stats.modules_reused}/{stats.modules_total} "
        f"({format_optional(stats.reuse_percent(), '{:.0f}%')})"
    )
    console.print(f"  diagnostics: {len(result.messages)}")

    if not result.success:
        raise typer.Exit(1)
