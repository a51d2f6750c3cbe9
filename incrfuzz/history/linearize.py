"""
Turn a history range into a linear replay plan.

The plan is the post-order of a depth-first walk along parent edges, which
puts every commit after all of its (non-excluded) ancestors. For

       A
       |\\
       B C
       |/
       D

a walk from A yields D, B, C, A (or D, C, B, A).

The start point is not necessarily a common ancestor. With start B and end
A we yield B, C, A: only nodes reachable *through* the start are excluded,
not every ancestor it happens to share. Replaying `X..Y` and then `Y..Z`
therefore covers every commit that landed between X and Z exactly once,
including merged siblings such as C.

Both walks use an explicit stack of frames so history depth is not bounded
by the interpreter's recursion limit.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Hashable, List, Optional, Set

from .graph import HistoryNode

logger = logging.getLogger(__name__)


@dataclass
class DfsFrame:
    """
    One node on the traversal stack.

    Fields:
        node: Node being expanded
        next_parent: Index of the next parent to visit
        num_parents: Parent count, read once when the frame is created
    """
    node: HistoryNode
    next_parent: int
    num_parents: int

    @classmethod
    def new(cls, node: HistoryNode) -> "DfsFrame":
        return cls(node=node, next_parent=0, num_parents=node.num_parents())


def walk(
    start: HistoryNode,
    check: Callable[[HistoryNode], bool],
    complete: Callable[[HistoryNode], None],
) -> Set[Hashable]:
    """
    Depth-first walk over the ancestors of `start`.

    Args:
        start: Node to start from (always expanded and completed)
        check: Called once per newly visited parent; False prunes it
            (the node is neither descended into nor completed)
        complete: Called in post-order, once all parents of a node are done

    Returns:
        Ids of every parent node visited (pruned ones included, start excluded)
    """
    visited: Set[Hashable] = set()
    stack = [DfsFrame.new(start)]

    while stack:
        frame = stack.pop()
        if frame.next_parent == frame.num_parents:
            complete(frame.node)
            continue

        node = frame.node.parent(frame.next_parent)
        frame.next_parent += 1
        stack.append(frame)

        node_id = node.id()
        if node_id in visited:
            continue
        visited.add(node_id)
        if check(node):
            stack.append(DfsFrame.new(node))

    return visited


def find_path(start: Optional[HistoryNode], end: HistoryNode) -> List[HistoryNode]:
    """
    Compute the ordered list of commits to replay.

    Args:
        start: Lower bound of the range (None = all ancestors of end)
        end: Upper bound, always the last element

    Returns:
        Commits oldest first, each exactly once
    """
    logger.debug(
        "find_path(start=%s, end=%s)",
        start.human_readable_id() if start is not None else "None",
        end.human_readable_id(),
    )

    # Everything reachable through start, except start itself
    reachable_from_start: Set[Hashable] = set()
    if start is not None:
        reachable_from_start = walk(start, lambda _: True, lambda _: None)
        reachable_from_start.discard(start.id())

    commits: List[HistoryNode] = []
    walk(
        end,
        lambda node: node.id() not in reachable_from_start,
        commits.append,
    )

    if start is not None and all(c.id() != start.id() for c in commits):
        logger.warning(
            "start point %s is not an ancestor of %s",
            start.human_readable_id(),
            end.human_readable_id(),
        )

    return commits
