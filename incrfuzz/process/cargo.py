"""
Cargo adapter: build and test invocations for each build mode.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..core.results import (
    BuildInvocationConfig,
    BuildResult,
    CacheScope,
    CompilationStats,
    TestResult,
)
from .parser import parse_build_output, parse_test_output
from .runner import run_process, save_output

logger = logging.getLogger(__name__)

CARGO = "cargo"


def _incremental_flags(cache_dir: Path) -> List[str]:
    return ["-C", f"incremental={cache_dir}", "-Z", "incremental-info"]


def _base_env(config: BuildInvocationConfig, base: Optional[Dict[str, str]]) -> Dict[str, str]:
    env = dict(os.environ if base is None else base)
    env["CARGO_TARGET_DIR"] = str(config.target_dir)
    # No cargo-managed incremental directory in any mode
    env["CARGO_INCREMENTAL"] = "0"
    return env


def _with_rustflags(env: Dict[str, str], cache_dir: Path) -> None:
    flags = " ".join(_incremental_flags(cache_dir))
    inherited = env.get("RUSTFLAGS", "")
    env["RUSTFLAGS"] = f"{flags} {inherited}".strip()


def cargo_build_args(
    config: BuildInvocationConfig, base_env: Optional[Dict[str, str]] = None
) -> Tuple[List[str], Dict[str, str]]:
    """
    argv and environment for a build in `config.mode`.

    - normal: `cargo build -v`
    - all-deps: `cargo build -v`, cache flags via RUSTFLAGS
    - current-project: `cargo rustc -v -- <cache flags>`
    """
    env = _base_env(config, base_env)
    if not config.mode.is_incremental:
        return [CARGO, "build", "-v"], env

    if config.scope is CacheScope.CURRENT_PROJECT:
        return [CARGO, "rustc", "-v", "--", *_incremental_flags(config.cache_dir)], env

    _with_rustflags(env, config.cache_dir)
    return [CARGO, "build", "-v"], env


def cargo_test_args(
    config: BuildInvocationConfig, base_env: Optional[Dict[str, str]] = None
) -> Tuple[List[str], Dict[str, str]]:
    """argv and environment for `cargo test`; cache flags always go through RUSTFLAGS."""
    env = _base_env(config, base_env)
    if config.mode.is_incremental:
        _with_rustflags(env, config.cache_dir)
    return [CARGO, "test"], env


class CargoToolchain:
    """
    Runs cargo for one project and parses the results.

    Args:
        project_dir: Directory holding Cargo.toml
        stream_output: Relay cargo output live instead of saving evidence files
        base_env: Environment to derive child environments from (None = ours)
    """

    def __init__(self, project_dir: Path, stream_output: bool = False,
                 base_env: Optional[Dict[str, str]] = None):
        self.project_dir = Path(project_dir)
        self.stream_output = stream_output
        self.base_env = base_env

    def _run(self, argv: List[str], env: Dict[str, str], evidence_dir: Optional[Path]):
        output = run_process(argv, self.project_dir, env=env, stream=self.stream_output)
        if evidence_dir is not None and not self.stream_output:
            save_output(evidence_dir, output)
        return output

    def build(self, config: BuildInvocationConfig, evidence_dir: Optional[Path],
              stats: CompilationStats) -> BuildResult:
        argv, env = cargo_build_args(config, self.base_env)
        logger.info("%s build into %s", config.mode.value, config.target_dir)
        output = self._run(argv, env, evidence_dir)
        return parse_build_output(output, stats)

    def test(self, config: BuildInvocationConfig, evidence_dir: Optional[Path]) -> TestResult:
        argv, env = cargo_test_args(config, self.base_env)
        logger.info("%s test run from %s", config.mode.value, config.target_dir)
        output = self._run(argv, env, evidence_dir)
        return parse_test_output(output)
