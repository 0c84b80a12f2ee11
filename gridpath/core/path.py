# gridpath/core/path.py
#!/usr/bin/env python3
from typing import List

from gridpath.core.errors import BrokenParentChain
from gridpath.core.types import Coordinate


def reconstruct(grid, goal_neighbor: Coordinate, start: Coordinate, goal: Coordinate) -> List[Coordinate]:
    """
    Start->Goal path through `goal_neighbor`, the cell that first touched Goal.

    The parent walk runs goal_neighbor..Start and must stop on Start; the
    result is that walk reversed with `goal` appended.
    """
    walk: List[Coordinate] = []
    cur = goal_neighbor
    limit = grid.width * grid.height
    while True:
        walk.append(cur)
        parent = grid.cell(cur).parent
        if parent is None:
            break
        if len(walk) > limit:
            raise BrokenParentChain(f"parent chain from {goal_neighbor} loops")
        cur = parent
    if cur != start:
        raise BrokenParentChain(f"parent chain from {goal_neighbor} ends at {cur}, not start {start}")
    walk.reverse()
    walk.append(goal)
    return walk
