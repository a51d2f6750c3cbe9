"""
Core types shared by every harness component.

- results: build/test results, process output, compilation statistics
- errors: fatal condition taxonomy
"""

from .results import (
    BuildInvocationConfig,
    BuildMode,
    BuildResult,
    CacheScope,
    CompilationStats,
    Message,
    ProcessOutput,
    TestCaseResult,
    TestResult,
)
from .errors import (
    BuildMismatchError,
    CacheMismatchError,
    DifferentialError,
    HarnessInvariantError,
    HistoryError,
    IncompleteReuseError,
    IncrFuzzError,
    OutputFormatError,
    PreconditionError,
    ProcessLaunchError,
    TestMismatchError,
    VcsError,
)

__all__ = [
    "BuildInvocationConfig",
    "BuildMode",
    "BuildResult",
    "CacheScope",
    "CompilationStats",
    "Message",
    "ProcessOutput",
    "TestCaseResult",
    "TestResult",
    "BuildMismatchError",
    "CacheMismatchError",
    "DifferentialError",
    "HarnessInvariantError",
    "HistoryError",
    "IncompleteReuseError",
    "IncrFuzzError",
    "OutputFormatError",
    "PreconditionError",
    "ProcessLaunchError",
    "TestMismatchError",
    "VcsError",
]
