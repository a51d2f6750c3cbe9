"""
Version-control collaborator (git).
"""

from .git import CHECKPOINT_BRANCH, GitCommit, GitRepository

__all__ = [
    "CHECKPOINT_BRANCH",
    "GitCommit",
    "GitRepository",
]
