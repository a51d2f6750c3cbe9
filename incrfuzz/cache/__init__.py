"""
Incremental cache inspection.
"""

from .compare import (
    ARTIFACT_SUFFIXES,
    SESSION_PREFIX,
    compare_cache_trees,
    compare_session_dirs,
    files_identical,
    find_session_dir,
    session_suffix,
)

__all__ = [
    "ARTIFACT_SUFFIXES",
    "SESSION_PREFIX",
    "compare_cache_trees",
    "compare_session_dirs",
    "files_identical",
    "find_session_dir",
    "session_suffix",
]
