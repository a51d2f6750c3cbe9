"""
Replay orchestrator: differential build/test of each commit in a plan.

Per commit, stages run in a fixed order:

    checkout -> normal build -> incremental build -> compare build output
    -> normal test -> incremental test -> compare test output
    -> full reuse check -> from-scratch cache check

Any divergence aborts the whole run: later commits are only meaningful on
top of a trustworthy baseline. Everything runs sequentially; one work tree,
one pair of output directories and one primary cache are live at a time.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..cache.compare import compare_cache_trees
from ..core.errors import (
    BuildMismatchError,
    CacheMismatchError,
    HarnessInvariantError,
    IncompleteReuseError,
    IncrFuzzError,
    TestMismatchError,
)
from ..core.results import (
    BuildInvocationConfig,
    BuildMode,
    CacheScope,
    CompilationStats,
)
from ..history.graph import HistoryNode
from .manifest import disable_debuginfo
from .summary import ReplaySummary
from .workdirs import WorkDirs, recreate_dir

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    CHECKOUT = "checkout"
    NORMAL_BUILD = "normal build"
    INCREMENTAL_BUILD = "incremental build"
    COMPARE_BUILD = "compare build output"
    NORMAL_TEST = "normal test"
    INCREMENTAL_TEST = "incremental test"
    COMPARE_TEST = "compare test output"
    FULL_REUSE = "full reuse check"
    FROM_SCRATCH = "from-scratch cache check"


STAGES: List[Stage] = list(Stage)

ProgressCallback = Callable[[int, str, Stage], None]


@dataclass(frozen=True)
class ReplayOptions:
    """
    Fields:
        scope: Which crates compile against the incremental cache
        skip_tests: Skip both test stages and their comparison
        no_debuginfo: Force `debug = 0` in the manifest for every commit
        manifest_path: Cargo.toml to mutate when no_debuginfo is set
        checkout_interval: Minimum seconds between consecutive checkouts
    """
    scope: CacheScope = CacheScope.ALL_DEPS
    skip_tests: bool = False
    no_debuginfo: bool = False
    manifest_path: Optional[Path] = None
    checkout_interval: float = 1.0


def _evidence(*sides):
    return [(label, result.raw_output) for label, result in sides if result.raw_output is not None]


class ReplayOrchestrator:
    """
    Drives the stage sequence over a replay plan.

    Args:
        repo: Version-control collaborator (checkout, reset_hard)
        toolchain: Build-tool collaborator (build, test)
        commits: Replay plan, oldest first
        work_dirs: Work directory layout
        options: Run configuration
        progress: Called on every stage transition
        sleep: Sleep function used for checkout throttling
        clock: Monotonic clock used for checkout throttling
    """

    def __init__(
        self,
        repo,
        toolchain,
        commits: Sequence[HistoryNode],
        work_dirs: WorkDirs,
        options: ReplayOptions = ReplayOptions(),
        progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repo = repo
        self.toolchain = toolchain
        self.commits = list(commits)
        self.work_dirs = work_dirs
        self.options = options
        self.progress = progress
        self.sleep = sleep
        self.clock = clock

        self.summary = ReplaySummary()
        self._stage = Stage.CHECKOUT
        self._last_checkout: Optional[float] = None

    def _config(self, mode: BuildMode) -> BuildInvocationConfig:
        dirs = self.work_dirs
        if mode is BuildMode.NORMAL:
            return BuildInvocationConfig(mode=mode, target_dir=dirs.target_normal)
        if mode is BuildMode.INCREMENTAL:
            return BuildInvocationConfig(
                mode=mode, target_dir=dirs.target_incr, cache_dir=dirs.incr, scope=self.options.scope
            )
        return BuildInvocationConfig(
            mode=mode,
            target_dir=dirs.target_incr_from_scratch,
            cache_dir=dirs.incr_from_scratch,
            scope=self.options.scope,
        )

    def _enter(self, index: int, short_id: str, stage: Stage) -> None:
        self._stage = stage
        logger.info("[%s] %s", short_id, stage.value, extra={"trace_id": short_id})
        if self.progress is not None:
            self.progress(index, short_id, stage)

    def _throttle(self) -> None:
        # Checkouts stay checkout_interval apart so mtimes always differ
        if self._last_checkout is None:
            return
        remaining = self.options.checkout_interval - (self.clock() - self._last_checkout)
        if remaining > 0:
            self.sleep(remaining)

    def run(self) -> ReplaySummary:
        """
        Replay every commit, then check run-wide invariants.

        Raises:
            IncrFuzzError: On the first fatal condition, located at its stage
        """
        self.work_dirs.reset()

        for index, commit in enumerate(self.commits):
            short_id = commit.human_readable_id()
            try:
                self._replay_commit(index, commit, short_id)
            except IncrFuzzError as err:
                err.locate(self._stage.value, index, short_id)
                raise
            self.summary.commits += 1

        if self.summary.normal.modules_reused != 0:
            raise HarnessInvariantError(
                f"normal build reused {self.summary.normal.modules_reused} modules; "
                "incremental flags leaked into the normal build environment"
            )
        return self.summary

    def _replay_commit(self, index: int, commit: HistoryNode, short_id: str) -> None:
        dirs = self.work_dirs

        self._enter(index, short_id, Stage.CHECKOUT)
        self._throttle()
        self.repo.checkout(commit)
        self._last_checkout = self.clock()
        mutated = False
        if self.options.no_debuginfo and self.options.manifest_path is not None:
            disable_debuginfo(self.options.manifest_path)
            mutated = True

        self._enter(index, short_id, Stage.NORMAL_BUILD)
        normal = self.toolchain.build(
            self._config(BuildMode.NORMAL),
            dirs.evidence_dir(index, short_id, "normal-build"),
            self.summary.normal,
        )

        self._enter(index, short_id, Stage.INCREMENTAL_BUILD)
        incremental_config = self._config(BuildMode.INCREMENTAL)
        incremental = self.toolchain.build(
            incremental_config,
            dirs.evidence_dir(index, short_id, "incr-build"),
            self.summary.incremental,
        )

        self._enter(index, short_id, Stage.COMPARE_BUILD)
        if normal != incremental:
            raise BuildMismatchError(
                "incremental build differed from normal build",
                _evidence(("normal build", normal), ("incremental build", incremental)),
            )

        if self.options.skip_tests:
            logger.debug("skipping tests for %s", short_id)
        else:
            self._enter(index, short_id, Stage.NORMAL_TEST)
            normal_test = self.toolchain.test(
                self._config(BuildMode.NORMAL),
                dirs.evidence_dir(index, short_id, "normal-test"),
            )

            self._enter(index, short_id, Stage.INCREMENTAL_TEST)
            incremental_test = self.toolchain.test(
                incremental_config,
                dirs.evidence_dir(index, short_id, "incr-test"),
            )

            self._enter(index, short_id, Stage.COMPARE_TEST)
            if normal_test != incremental_test:
                raise TestMismatchError(
                    "incremental tests differed from normal tests",
                    _evidence(("normal test", normal_test), ("incremental test", incremental_test)),
                )
            self.summary.tests_total += len(normal_test.results)
            self.summary.tests_passed += normal_test.passed

        if incremental.success:
            self._enter(index, short_id, Stage.FULL_REUSE)
            self._check_full_reuse(index, short_id, incremental_config)

            self._enter(index, short_id, Stage.FROM_SCRATCH)
            self._check_from_scratch(index, short_id, incremental)
        else:
            logger.info("incremental build failed for %s; skipping cache checks", short_id)

        if mutated:
            self.repo.reset_hard(commit)

    def _check_full_reuse(self, index: int, short_id: str, config: BuildInvocationConfig) -> None:
        """Rebuild into a cleared output directory; every module must come from the cache."""
        recreate_dir(config.target_dir)
        stats = CompilationStats()
        rebuild = self.toolchain.build(
            config, self.work_dirs.evidence_dir(index, short_id, "incr-rebuild"), stats
        )
        if stats.modules_reused != stats.modules_total:
            raise IncompleteReuseError(
                f"no-op rebuild reused only {stats.modules_reused} of {stats.modules_total} modules",
                _evidence(("incremental rebuild", rebuild)),
            )

    def _check_from_scratch(self, index: int, short_id: str, incremental) -> None:
        """Build into a brand-new cache; it must match the primary cache byte for byte."""
        config = self._config(BuildMode.INCREMENTAL_FROM_SCRATCH)
        recreate_dir(config.cache_dir)
        recreate_dir(config.target_dir)
        fresh = self.toolchain.build(
            config,
            self.work_dirs.evidence_dir(index, short_id, "incr-from-scratch-build"),
            CompilationStats(),
        )
        try:
            compared = compare_cache_trees(config.cache_dir, self.work_dirs.incr)
        except CacheMismatchError as err:
            err.evidence.extend(
                _evidence(("incremental build", incremental), ("from-scratch build", fresh))
            )
            raise
        logger.debug("%d cache units identical for %s", compared, short_id)


def replay(repo, toolchain, commits: Sequence[HistoryNode], work_dir: Path,
           options: ReplayOptions = ReplayOptions(),
           progress: Optional[ProgressCallback] = None) -> ReplaySummary:
    """Convenience wrapper: run a full replay over `commits` in `work_dir`."""
    orchestrator = ReplayOrchestrator(
        repo, toolchain, commits, WorkDirs(work_dir), options, progress=progress
    )
    return orchestrator.run()
