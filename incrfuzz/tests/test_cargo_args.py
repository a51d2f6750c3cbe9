"""
Tests for cargo invocation construction.

Critical: normal mode must never see incremental flags, and every mode gets
its own output directory.
"""

from pathlib import Path

import pytest

from incrfuzz.core.results import BuildInvocationConfig, BuildMode, CacheScope
from incrfuzz.process import cargo_build_args, cargo_test_args

FLAGS = "-C incremental=/work/incr -Z incremental-info"


def incremental(scope=CacheScope.ALL_DEPS):
    return BuildInvocationConfig(
        mode=BuildMode.INCREMENTAL,
        target_dir=Path("/work/target-incr"),
        cache_dir=Path("/work/incr"),
        scope=scope,
    )


def test_normal_build_has_no_incremental_flags():
    config = BuildInvocationConfig(mode=BuildMode.NORMAL, target_dir=Path("/work/target-normal"))

    argv, env = cargo_build_args(config, base_env={"PATH": "/usr/bin"})

    assert argv == ["cargo", "build", "-v"]
    assert env["CARGO_TARGET_DIR"] == "/work/target-normal"
    assert env["CARGO_INCREMENTAL"] == "0"
    assert "RUSTFLAGS" not in env
    assert env["PATH"] == "/usr/bin"


def test_all_deps_build_uses_rustflags():
    argv, env = cargo_build_args(incremental(), base_env={})

    assert argv == ["cargo", "build", "-v"]
    assert env["RUSTFLAGS"] == FLAGS
    assert env["CARGO_TARGET_DIR"] == "/work/target-incr"


def test_inherited_rustflags_kept():
    _, env = cargo_build_args(incremental(), base_env={"RUSTFLAGS": "-C target-cpu=native"})
    assert env["RUSTFLAGS"] == FLAGS + " -C target-cpu=native"


def test_current_project_build_passes_flags_to_rustc():
    argv, env = cargo_build_args(incremental(CacheScope.CURRENT_PROJECT), base_env={})

    assert argv == ["cargo", "rustc", "-v", "--", "-C", "incremental=/work/incr",
                    "-Z", "incremental-info"]
    assert "RUSTFLAGS" not in env


def test_base_env_is_not_mutated():
    base = {"RUSTFLAGS": "-g"}
    cargo_build_args(incremental(), base_env=base)
    assert base == {"RUSTFLAGS": "-g"}


@pytest.mark.parametrize("scope", list(CacheScope))
def test_incremental_tests_always_use_rustflags(scope):
    argv, env = cargo_test_args(incremental(scope), base_env={})

    assert argv == ["cargo", "test"]
    assert env["RUSTFLAGS"] == FLAGS


def test_normal_tests():
    config = BuildInvocationConfig(mode=BuildMode.NORMAL, target_dir=Path("/work/target-normal"))
    argv, env = cargo_test_args(config, base_env={})

    assert argv == ["cargo", "test"]
    assert "RUSTFLAGS" not in env


def test_incremental_mode_requires_cache_dir():
    with pytest.raises(ValueError, match="requires a cache directory"):
        BuildInvocationConfig(mode=BuildMode.INCREMENTAL_FROM_SCRATCH, target_dir=Path("/t"))
