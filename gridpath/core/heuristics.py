# gridpath/core/heuristics.py
#!/usr/bin/env python3
from math import sqrt
from typing import Callable, Dict

from gridpath.core.types import Coordinate, Heuristic


def manhattan(a: Coordinate, b: Coordinate) -> float:
    return float(abs(b.x - a.x) + abs(b.y - a.y))


def euclidean(a: Coordinate, b: Coordinate) -> float:
    dx = b.x - a.x
    dy = b.y - a.y
    return sqrt(dx * dx + dy * dy)


HEURISTICS: Dict[Heuristic, Callable[[Coordinate, Coordinate], float]] = {
    Heuristic.MANHATTAN: manhattan,
    Heuristic.EUCLIDEAN: euclidean,
}


def estimate(src: Coordinate, dst: Coordinate, kind: Heuristic) -> float:
    """Estimated remaining cost from `src` to `dst`. Both kinds are admissible on a 4-connected unit grid."""
    return HEURISTICS[Heuristic.parse(kind)](src, dst)
