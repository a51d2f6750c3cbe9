"""
Parse cargo/rustc output into structured results.

The patterns encode assumptions about the build tool's output format. When
an assumption breaks (duration reported twice, a test summary that does not
add up) we raise OutputFormatError rather than guess.
"""

import re
from typing import List, Optional, Tuple

from ..core.errors import OutputFormatError
from ..core.results import (
    BuildResult,
    CompilationStats,
    Message,
    ProcessOutput,
    TestCaseResult,
    TestResult,
)

REUSE_RE = re.compile(r"^incremental: re-?using (\d+) out of (\d+) modules$", re.MULTILINE)

# "Finished dev [unoptimized + debuginfo] target(s) in 0.52 secs"
# "Finished `dev` profile [unoptimized + debuginfo] target(s) in 1m 02s"
BUILD_TIME_RE = re.compile(
    r"^\s*Finished .* in (?:(\d+)m )?([0-9]+(?:\.[0-9]+)?) ?s(?:ecs)?$",
    re.MULTILINE,
)

MESSAGE_RE = re.compile(
    r"^(warning|error)(?:\[\w+\])?: (.*)\n[ \t]*--> ([^:\n]+:\d+:\d+)$",
    re.MULTILINE,
)

TEST_CASE_RE = re.compile(r"^test (.*) \.\.\. (\w+)", re.MULTILINE)

TEST_SUMMARY_RE = re.compile(r"(\d+) passed; (\d+) failed; (\d+) ignored; (\d+) measured")


def decode_output(output: ProcessOutput) -> str:
    """stdout followed by stderr, as text."""
    try:
        return output.combined_bytes().decode("utf-8")
    except UnicodeDecodeError as err:
        raise OutputFormatError(f"unable to parse output as utf-8: {err}") from err


def accumulate_reuse(text: str, stats: CompilationStats) -> Tuple[int, int]:
    """
    Add every "re-using N out of M modules" report to `stats`.

    Returns:
        (reused, total) found in this text alone
    """
    reused = total = 0
    for match in REUSE_RE.finditer(text):
        reused += int(match.group(1))
        total += int(match.group(2))
    stats.modules_reused += reused
    stats.modules_total += total
    return reused, total


def parse_build_time(text: str, success: bool) -> Optional[float]:
    """
    Find the single total build time, in seconds.

    A failed build may stop before reporting a time (None is returned); a
    successful one must report exactly one.
    """
    build_time = None
    for match in BUILD_TIME_RE.finditer(text):
        if build_time is not None:
            raise OutputFormatError("cargo reported total build time twice")
        minutes = int(match.group(1)) if match.group(1) else 0
        build_time = minutes * 60 + float(match.group(2))

    if build_time is None and success:
        raise OutputFormatError("cargo build did not fail but failed to report total build time")
    return build_time


def parse_messages(text: str) -> List[Message]:
    return [
        Message(kind=m.group(1), message=m.group(2), location=m.group(3))
        for m in MESSAGE_RE.finditer(text)
    ]


def parse_build_output(output: ProcessOutput, stats: CompilationStats) -> BuildResult:
    """
    Turn one build invocation's output into a BuildResult.

    Reuse counts and build time are added to `stats`.
    """
    text = decode_output(output)
    accumulate_reuse(text, stats)
    build_time = parse_build_time(text, output.success)
    stats.build_time += build_time or 0.0

    return BuildResult(
        success=output.success,
        messages=parse_messages(text),
        raw_output=output,
    )


def parse_test_cases(text: str) -> List[TestCaseResult]:
    return sorted(
        TestCaseResult(test_name=m.group(1), status=m.group(2))
        for m in TEST_CASE_RE.finditer(text)
    )


def summary_total(text: str) -> int:
    """Sum of passed + failed + ignored over every test summary line."""
    total = 0
    for match in TEST_SUMMARY_RE.finditer(text):
        total += int(match.group(1)) + int(match.group(2)) + int(match.group(3))
    return total


def parse_test_output(output: ProcessOutput) -> TestResult:
    """
    Turn one test invocation's output into a TestResult.

    Raises:
        OutputFormatError: If the enumerated tests disagree with the summaries
    """
    text = decode_output(output)
    results = parse_test_cases(text)

    expected = summary_total(text)
    if expected != len(results):
        raise OutputFormatError(
            f"matched a different number of tests ({len(results)}) "
            f"than in the summary ({expected})"
        )

    return TestResult(success=output.success, results=results, raw_output=output)
