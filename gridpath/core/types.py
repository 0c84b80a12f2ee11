# gridpath/core/types.py
#!/usr/bin/env python3
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Dict, Any, Sequence


@dataclass(frozen=True, order=True)
class Coordinate:
    x: int
    y: int

    @classmethod
    def from_seq(cls, value: Sequence[int]) -> "Coordinate":
        x, y = value
        return cls(int(x), int(y))

    def neighbors(self) -> Iterator["Coordinate"]:
        """Orthogonal candidates in W, E, N, S order. Bounds are the grid's job."""
        yield Coordinate(self.x - 1, self.y)
        yield Coordinate(self.x + 1, self.y)
        yield Coordinate(self.x, self.y - 1)
        yield Coordinate(self.x, self.y + 1)

    def __iter__(self):
        # lets callers unpack `x, y = coord` like the old (col, row) tuples
        yield self.x
        yield self.y

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


class _Labelled(Enum):
    """Enum parsed from its display label (case-insensitive) or member name."""

    @property
    def label(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value.lower(), member.name.lower()):
                return member
        choices = ", ".join(m.value for m in cls)
        raise ValueError(f"unknown {cls.__name__.lower()} {value!r} (expected one of: {choices})")


class Role(_Labelled):
    EMPTY = "empty"
    WALL = "wall"
    START = "start"
    GOAL = "goal"


class SearchTag(_Labelled):
    UNVISITED = "unvisited"
    FRONTIER = "frontier"
    VISITED = "visited"


class Algorithm(_Labelled):
    DIJKSTRA = "Dijkstra"
    ASTAR = "A*"


class Heuristic(_Labelled):
    MANHATTAN = "Manhattan"
    EUCLIDEAN = "Euclidean"


@dataclass(frozen=True)
class CellSnapshot:
    role: Role
    tag: SearchTag


@dataclass
class StepResult:
    status: str                   # "idle" | "running" | "done" | "no_path" | "cancelled"
    opened: List[Coordinate] = field(default_factory=list)
    closed: List[Coordinate] = field(default_factory=list)
    current: Optional[Coordinate] = None
    path: Optional[List[Coordinate]] = None
    metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def finished(self) -> bool:
        return self.status in ("done", "no_path", "cancelled")


@dataclass(frozen=True)
class PathResult:
    """Outcome of a full run: a found path, no path, or a cancelled run."""

    status: str                   # "found" | "not_found" | "cancelled"
    path: Optional[List[Coordinate]] = None
    visited_count: int = 0

    @classmethod
    def found_path(cls, path: List[Coordinate], visited_count: int = 0) -> "PathResult":
        return cls("found", list(path), visited_count)

    @classmethod
    def not_found(cls, visited_count: int = 0) -> "PathResult":
        return cls("not_found", None, visited_count)

    @classmethod
    def cancelled(cls, visited_count: int = 0) -> "PathResult":
        return cls("cancelled", None, visited_count)

    @property
    def found(self) -> bool:
        return self.status == "found"
