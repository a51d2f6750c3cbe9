"""
Tests for the replay orchestrator.

Critical: stages run in order, the first discrepancy aborts the whole run
before any later stage, and the error carries both sides' raw output.
"""

from collections import Counter

import pytest

from incrfuzz.core.errors import (
    BuildMismatchError,
    CacheMismatchError,
    HarnessInvariantError,
    IncompleteReuseError,
    TestMismatchError,
)
from incrfuzz.core.results import (
    BuildMode,
    BuildResult,
    CacheScope,
    Message,
    ProcessOutput,
    TestCaseResult,
    TestResult,
)
from incrfuzz.history import SyntheticNode
from incrfuzz.replay import (
    ReplayOptions,
    ReplayOrchestrator,
    Stage,
    WorkDirs,
    format_optional,
    replay,
)

SESSION = "s-fyf3p8k4aq-1dcvxbx-3kfb9pc0mj7q1"


class FakeRepo:
    def __init__(self):
        self.head = None
        self.checkouts = []
        self.resets = []

    def checkout(self, commit):
        self.head = commit
        self.checkouts.append(commit.name)

    def reset_hard(self, commit):
        self.resets.append(commit.name)


class FakeToolchain:
    """
    Scripted build tool.

    Args:
        repo: Where the current commit is read from
        diverging_build: Commits whose incremental build reports an extra warning
        diverging_tests: Commits whose incremental tests report a different outcome
        partial_rebuild: Commits whose no-op rebuild misses a module
        diverging_cache: Commits whose fresh cache gets different object bytes
        failing: Commits whose builds fail in every mode
        normal_reuse: Modules the normal build claims to reuse
    """

    def __init__(self, repo, diverging_build=(), diverging_tests=(), partial_rebuild=(),
                 diverging_cache=(), failing=(), normal_reuse=0, on_build=None):
        self.repo = repo
        self.diverging_build = set(diverging_build)
        self.diverging_tests = set(diverging_tests)
        self.partial_rebuild = set(partial_rebuild)
        self.diverging_cache = set(diverging_cache)
        self.failing = set(failing)
        self.normal_reuse = normal_reuse
        self.on_build = on_build
        self.calls = []
        self._incremental_builds = Counter()

    def _write_cache(self, config, name):
        session = config.cache_dir / "demo-1a2b" / SESSION
        session.mkdir(parents=True, exist_ok=True)
        obj = b"obj-" + name.encode()
        if config.mode is BuildMode.INCREMENTAL_FROM_SCRATCH and name in self.diverging_cache:
            obj += b"-nondeterministic"
        (session / "demo.cgu-0.o").write_bytes(obj)
        (session / "dep-graph.bin").write_bytes(config.mode.value.encode())

    def build(self, config, evidence_dir, stats):
        name = self.repo.head.name
        self.calls.append(("build", name, config.mode))
        if self.on_build is not None:
            self.on_build()
        raw = ProcessOutput(0, f"{config.mode.value} build of {name}\n".encode())

        if name in self.failing:
            error = Message("error", "mismatched types", "src/lib.rs:1:1")
            return BuildResult(False, [error], ProcessOutput(101, b"", b"error\n"))

        stats.build_time += 2.0 if config.mode is BuildMode.NORMAL else 0.5
        messages = []
        if config.mode is BuildMode.NORMAL:
            stats.modules_reused += self.normal_reuse
            stats.modules_total += 4
        else:
            self._write_cache(config, name)
            reused = 4
            if config.mode is BuildMode.INCREMENTAL:
                self._incremental_builds[name] += 1
                first = self._incremental_builds[name] == 1
                if first:
                    reused = 0
                elif name in self.partial_rebuild:
                    reused = 3
                if name in self.diverging_build:
                    messages.append(Message("warning", "unused variable: `x`", "src/main.rs:2:9"))
            stats.modules_reused += reused
            stats.modules_total += 4

        return BuildResult(True, messages, raw)

    def test(self, config, evidence_dir):
        name = self.repo.head.name
        self.calls.append(("test", name, config.mode))
        status = "ok"
        if config.mode.is_incremental and name in self.diverging_tests:
            status = "FAILED"
        results = [TestCaseResult("tests::a", "ok"), TestCaseResult("tests::b", status)]
        raw = ProcessOutput(0, f"{config.mode.value} test of {name}\n".encode())
        return TestResult(True, results, raw)


def linear_history(count):
    commits = [SyntheticNode("c0")]
    for i in range(1, count):
        commits.append(SyntheticNode(f"c{i}", [commits[-1]]))
    return commits


class FakeClock:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_orchestrator(tmp_path, toolchain_kwargs=None, options=None, commits=3, clock=None):
    repo = FakeRepo()
    toolchain = FakeToolchain(repo, **(toolchain_kwargs or {}))
    clock = clock or FakeClock()
    stages = []
    orchestrator = ReplayOrchestrator(
        repo,
        toolchain,
        linear_history(commits),
        WorkDirs(tmp_path / "work"),
        options or ReplayOptions(),
        progress=lambda index, short_id, stage: stages.append((short_id, stage)),
        sleep=clock.sleep,
        clock=clock,
    )
    return orchestrator, repo, toolchain, stages


def test_clean_run_summary(tmp_path):
    orchestrator, repo, toolchain, _ = make_orchestrator(tmp_path)

    summary = orchestrator.run()

    assert repo.checkouts == ["c0", "c1", "c2"]
    assert summary.commits == 3
    assert summary.normal.build_time == 6.0
    assert summary.incremental.build_time == 1.5
    assert summary.ratio() == 4.0
    assert summary.tests_total == 6
    assert summary.tests_passed == 6
    # Only the first build of each commit is counted in the run statistics
    assert (summary.incremental.modules_reused, summary.incremental.modules_total) == (0, 12)


def test_stage_order_per_commit(tmp_path):
    orchestrator, _, _, stages = make_orchestrator(tmp_path, commits=1)

    orchestrator.run()

    assert [stage for _, stage in stages] == list(Stage)


def test_build_mismatch_aborts_before_tests(tmp_path):
    """A diagnostics difference at c1 stops the run before c1's test stages."""
    orchestrator, repo, toolchain, stages = make_orchestrator(
        tmp_path, {"diverging_build": {"c1"}}
    )

    with pytest.raises(BuildMismatchError) as excinfo:
        orchestrator.run()

    err = excinfo.value
    assert err.stage == Stage.COMPARE_BUILD.value
    assert (err.commit_index, err.commit_id) == (1, "c1")
    assert "compare build output" in str(err)

    labels = [label for label, _ in err.evidence]
    assert labels == ["normal build", "incremental build"]
    assert err.evidence[0][1].stdout == b"normal build of c1\n"
    assert err.evidence[1][1].stdout == b"incremental build of c1\n"

    assert ("test", "c1", BuildMode.NORMAL) not in toolchain.calls
    assert ("test", "c0", BuildMode.NORMAL) in toolchain.calls
    assert repo.checkouts == ["c0", "c1"]
    assert stages[-1] == ("c1", Stage.COMPARE_BUILD)


def test_test_mismatch_aborts(tmp_path):
    orchestrator, repo, _, _ = make_orchestrator(tmp_path, {"diverging_tests": {"c0"}})

    with pytest.raises(TestMismatchError) as excinfo:
        orchestrator.run()

    err = excinfo.value
    assert err.stage == Stage.COMPARE_TEST.value
    assert [label for label, _ in err.evidence] == ["normal test", "incremental test"]
    assert repo.checkouts == ["c0"]


def test_skip_tests(tmp_path):
    orchestrator, _, toolchain, stages = make_orchestrator(
        tmp_path, {"diverging_tests": {"c0"}}, ReplayOptions(skip_tests=True)
    )

    summary = orchestrator.run()

    assert not [call for call in toolchain.calls if call[0] == "test"]
    assert Stage.NORMAL_TEST not in [stage for _, stage in stages]
    assert summary.tests_total == 0


def test_incomplete_reuse(tmp_path):
    orchestrator, _, _, _ = make_orchestrator(tmp_path, {"partial_rebuild": {"c2"}})

    with pytest.raises(IncompleteReuseError, match="3 of 4") as excinfo:
        orchestrator.run()

    assert excinfo.value.stage == Stage.FULL_REUSE.value
    assert excinfo.value.commit_id == "c2"
    assert [label for label, _ in excinfo.value.evidence] == ["incremental rebuild"]


def test_from_scratch_cache_mismatch(tmp_path):
    orchestrator, _, _, _ = make_orchestrator(tmp_path, {"diverging_cache": {"c1"}})

    with pytest.raises(CacheMismatchError, match="demo.cgu-0.o") as excinfo:
        orchestrator.run()

    err = excinfo.value
    assert err.stage == Stage.FROM_SCRATCH.value
    assert err.commit_index == 1
    assert [label for label, _ in err.evidence] == ["incremental build", "from-scratch build"]


def test_failed_builds_skip_cache_checks(tmp_path):
    """Equal failures are not a discrepancy; with no build time the ratio is n/a."""
    orchestrator, _, toolchain, stages = make_orchestrator(
        tmp_path, {"failing": {"c0", "c1"}}, commits=2
    )

    summary = orchestrator.run()

    assert Stage.FULL_REUSE not in [stage for _, stage in stages]
    assert not [c for c in toolchain.calls if c[2] is BuildMode.INCREMENTAL_FROM_SCRATCH]
    assert summary.ratio() is None
    assert format_optional(summary.ratio()) == "n/a"
    assert format_optional(summary.reuse_percent(), "{:.1f}%") == "n/a"


def test_normal_build_reuse_is_harness_error(tmp_path):
    orchestrator, _, _, _ = make_orchestrator(tmp_path, {"normal_reuse": 1}, commits=1)

    with pytest.raises(HarnessInvariantError, match="leaked"):
        orchestrator.run()


def test_checkouts_are_throttled(tmp_path):
    clock = FakeClock()
    orchestrator, _, _, _ = make_orchestrator(
        tmp_path, options=ReplayOptions(checkout_interval=1.5), clock=clock
    )

    orchestrator.run()

    assert clock.sleeps == [1.5, 1.5]


def test_slow_builds_need_no_throttling(tmp_path):
    clock = FakeClock()

    def advance():
        clock.now += 1.0

    repo = FakeRepo()
    orchestrator = ReplayOrchestrator(
        repo,
        FakeToolchain(repo, on_build=advance),
        linear_history(3),
        WorkDirs(tmp_path / "work"),
        ReplayOptions(),
        sleep=clock.sleep,
        clock=clock,
    )

    orchestrator.run()

    assert clock.sleeps == []


def test_no_debuginfo_mutates_and_resets(tmp_path):
    manifest = tmp_path / "Cargo.toml"
    manifest.write_text('[package]\nname = "demo"\n')
    options = ReplayOptions(no_debuginfo=True, manifest_path=manifest)
    orchestrator, repo, _, _ = make_orchestrator(tmp_path, options=options, commits=2)

    orchestrator.run()

    assert "debug = 0" in manifest.read_text()
    assert repo.resets == ["c0", "c1"]


def test_work_dirs_reset_at_start(tmp_path):
    stale = tmp_path / "work" / "incr" / "stale-unit"
    stale.mkdir(parents=True)
    orchestrator, _, _, _ = make_orchestrator(
        tmp_path, options=ReplayOptions(scope=CacheScope.CURRENT_PROJECT), commits=1
    )

    orchestrator.run()

    assert not stale.exists()
    assert (tmp_path / "work" / "incr" / "demo-1a2b" / SESSION).is_dir()


def test_replay_wrapper(tmp_path):
    repo = FakeRepo()
    commits = linear_history(1)

    summary = replay(repo, FakeToolchain(repo), commits, tmp_path / "work")

    assert summary.commits == 1
    assert (tmp_path / "work" / "target-normal").is_dir()
