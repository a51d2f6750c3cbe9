"""
Byte-exact comparison of two incremental cache trees.

Layout of a cache tree:

    <cache>/<unit>/s-<timestamp>-<random>-<hash>/   session directory
    <cache>/<unit>/s-<timestamp>-<random>-<hash>.lock

Each unit directory holds one active session at comparison time. Inside a
session, compiled-unit artifacts (object and bitcode files) have a stable
encoding and are compared byte for byte. Dependency-graph and query-cache
files are not yet encoded reproducibly, so only their presence is checked.
"""

import logging
from pathlib import Path
from typing import List, Optional

from ..core.errors import CacheMismatchError

logger = logging.getLogger(__name__)

SESSION_PREFIX = "s-"
ARTIFACT_SUFFIXES = (".o", ".bc")
CHUNK_SIZE = 64 * 1024


def session_suffix(session_dir: Path) -> str:
    """Trailing hash segment of a session directory name."""
    return session_dir.name.rsplit("-", 1)[-1]


def is_artifact(name: str) -> bool:
    return name.endswith(ARTIFACT_SUFFIXES)


def _sorted_entries(directory: Path) -> List[Path]:
    return sorted(directory.iterdir(), key=lambda p: p.name)


def find_session_dir(unit_dir: Path, suffix: Optional[str] = None) -> Path:
    """
    Locate the active session directory of one unit.

    Args:
        unit_dir: Per-unit cache directory
        suffix: Hash suffix to match (None = require exactly one session)

    Raises:
        CacheMismatchError: If no session or more than one matches
    """
    sessions = [
        p for p in _sorted_entries(unit_dir)
        if p.is_dir() and p.name.startswith(SESSION_PREFIX)
    ]
    if suffix is not None:
        sessions = [p for p in sessions if session_suffix(p) == suffix]

    wanted = f"session with suffix `{suffix}`" if suffix is not None else "session directory"
    if not sessions:
        raise CacheMismatchError(f"no {wanted} found in `{unit_dir}`")
    if len(sessions) > 1:
        names = ", ".join(p.name for p in sessions)
        raise CacheMismatchError(f"more than one {wanted} found in `{unit_dir}`: {names}")
    return sessions[0]


def files_identical(a: Path, b: Path, chunk_size: int = CHUNK_SIZE) -> bool:
    """Compare lengths, then contents chunk by chunk."""
    if a.stat().st_size != b.stat().st_size:
        return False
    with open(a, "rb") as fa, open(b, "rb") as fb:
        while True:
            chunk_a = fa.read(chunk_size)
            chunk_b = fb.read(chunk_size)
            if chunk_a != chunk_b:
                return False
            if not chunk_a:
                return True


def compare_session_dirs(reference: Path, tested: Path) -> None:
    """
    Require identical member names and identical artifact contents.

    Raises:
        CacheMismatchError: On missing/extra members or differing artifacts
    """
    reference_names = {p.name for p in reference.iterdir()}
    tested_names = {p.name for p in tested.iterdir()}

    if reference_names != tested_names:
        missing = sorted(reference_names - tested_names)
        extra = sorted(tested_names - reference_names)
        details = []
        if missing:
            details.append(f"missing from `{tested}`: {', '.join(missing)}")
        if extra:
            details.append(f"not in `{reference}`: {', '.join(extra)}")
        raise CacheMismatchError(f"session contents differ; {'; '.join(details)}")

    for name in sorted(reference_names):
        if not is_artifact(name):
            logger.debug("skipping content check of metadata file %s", name)
            continue
        if not files_identical(reference / name, tested / name):
            raise CacheMismatchError(
                f"artifact `{name}` differs between `{reference}` and `{tested}`"
            )


def compare_cache_trees(reference: Path, tested: Path, match_by_suffix: bool = True) -> int:
    """
    Confirm that `tested` holds the same compilation outcome as `reference`.

    Args:
        reference: Cache tree every unit is looked up from
        tested: Cache tree that must contain each reference unit
        match_by_suffix: Locate the tested session by the reference session's
            hash suffix instead of requiring a single session

    Returns:
        Number of units compared

    Raises:
        CacheMismatchError: On the first divergence
    """
    reference = Path(reference)
    tested = Path(tested)
    compared = 0

    for unit_dir in _sorted_entries(reference):
        if not unit_dir.is_dir():
            continue

        tested_unit = tested / unit_dir.name
        if not tested_unit.is_dir():
            raise CacheMismatchError(
                f"unit directory `{unit_dir.name}` missing from `{tested}`"
            )

        reference_session = find_session_dir(unit_dir)
        suffix = session_suffix(reference_session) if match_by_suffix else None
        tested_session = find_session_dir(tested_unit, suffix)

        logger.debug("comparing %s with %s", reference_session, tested_session)
        compare_session_dirs(reference_session, tested_session)
        compared += 1

    return compared
