"""
HistoryNode abstract interface.

The linearizer only needs identity and parent lookup, so history is seen
through this narrow interface. GitCommit (incrfuzz.vcs.git) backs it with a
real repository; SyntheticNode backs it with an in-memory graph.
"""

from abc import ABC, abstractmethod
from typing import Hashable, Sequence


class HistoryNode(ABC):
    """
    A commit-like node with ordered parents.

    Implementations must guarantee:
    - id() is stable and unique within one history
    - parent(i) is valid for 0 <= i < num_parents()
    """

    @abstractmethod
    def id(self) -> Hashable:
        ...

    @abstractmethod
    def human_readable_id(self) -> str:
        ...

    @abstractmethod
    def parent(self, index: int) -> "HistoryNode":
        """
        Load parent number `index`.

        Raises:
            HistoryError: If the parent cannot be loaded
        """
        ...

    @abstractmethod
    def num_parents(self) -> int:
        ...


class SyntheticNode(HistoryNode):
    """In-memory history node, used to exercise traversal on hand-built graphs."""

    def __init__(self, name: str, parents: Sequence["SyntheticNode"] = ()):
        self.name = name
        self.parents = list(parents)

    def id(self) -> str:
        return self.name

    def human_readable_id(self) -> str:
        return self.name

    def parent(self, index: int) -> "SyntheticNode":
        return self.parents[index]

    def num_parents(self) -> int:
        return len(self.parents)

    def __repr__(self) -> str:
        return f"SyntheticNode({self.name!r})"
