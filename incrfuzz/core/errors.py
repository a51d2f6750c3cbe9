"""
Exception types for the differential testing harness.

Components never print or exit; they raise one of these and let the CLI
dispatcher report it.
"""

from typing import List, Optional, Tuple

from .results import ProcessOutput


class IncrFuzzError(Exception):
    """Base class for every fatal condition raised by the harness."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.stage: Optional[str] = None
        self.commit_index: Optional[int] = None
        self.commit_id: Optional[str] = None

    def locate(self, stage: str, commit_index: int, commit_id: str) -> "IncrFuzzError":
        """Record where in the replay the error happened (first location wins)."""
        if self.stage is None:
            self.stage = stage
            self.commit_index = commit_index
            self.commit_id = commit_id
        return self

    def __str__(self) -> str:
        if self.stage is None:
            return self.message
        return (
            f"{self.message} (aborted at stage `{self.stage}` of commit "
            f"{self.commit_index} [{self.commit_id}])"
        )


class PreconditionError(IncrFuzzError):
    """Raised when the environment is unfit to start (dirty tree, bad range, ...)."""
    pass


class VcsError(IncrFuzzError):
    """Raised when a git operation fails."""
    pass


class HistoryError(IncrFuzzError):
    """Raised when commit history is corrupt or incomplete."""
    pass


class ProcessLaunchError(IncrFuzzError):
    """Raised when the build tool cannot be spawned."""
    pass


class OutputFormatError(IncrFuzzError):
    """Raised when build tool output no longer matches the parser's assumptions."""
    pass


class HarnessInvariantError(IncrFuzzError):
    """Raised when the harness itself is inconsistent (e.g. flags leaked into normal mode)."""
    pass


class DifferentialError(IncrFuzzError):
    """
    A discrepancy between build modes; the reason the harness exists.

    Fields:
        evidence: (label, raw output) pairs to dump in full before exiting
    """

    def __init__(self, message: str, evidence: Optional[List[Tuple[str, ProcessOutput]]] = None):
        super().__init__(message)
        self.evidence = list(evidence or [])


class BuildMismatchError(DifferentialError):
    """Incremental build diagnostics differ from the normal build."""
    pass


class TestMismatchError(DifferentialError):
    """Incremental test outcomes differ from the normal test run."""

    __test__ = False


class IncompleteReuseError(DifferentialError):
    """A no-op rebuild did not reuse every module."""
    pass


class CacheMismatchError(DifferentialError):
    """Two incremental caches that should be identical are not."""
    pass
