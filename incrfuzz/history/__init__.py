"""
Commit history traversal.

- HistoryNode: narrow view of a commit (id, parents)
- SyntheticNode: in-memory node for hand-built graphs
- find_path: linear, gap-free replay plan for a range
"""

from .graph import HistoryNode, SyntheticNode
from .linearize import DfsFrame, find_path, walk

__all__ = [
    "HistoryNode",
    "SyntheticNode",
    "DfsFrame",
    "find_path",
    "walk",
]
