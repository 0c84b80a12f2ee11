# gridpath/core/grid.py
#!/usr/bin/env python3
"""
Mutable walkable/blocked grid with exactly one Start and one Goal.

- cells are stored [row][col], i.e. cells[y][x]
- every cell carries its role plus the transient search state the engine writes
- parent links are coordinates looked up in this grid, never object references
- while a search run holds the grid, role edits raise GridLocked
"""

import logging
import threading
from dataclasses import dataclass
from math import inf
from typing import Iterable, Iterator, List, Optional

from gridpath.core.errors import GridError, GridLocked, InvalidPreset
from gridpath.core.heuristics import estimate
from gridpath.core.types import Algorithm, CellSnapshot, Coordinate, Heuristic, Role, SearchTag

logger = logging.getLogger(__name__)


@dataclass
class Cell:
    coord: Coordinate
    role: Role = Role.EMPTY
    tag: SearchTag = SearchTag.UNVISITED
    cost_from_start: float = inf
    cost_to_goal: float = inf
    parent: Optional[Coordinate] = None

    def set_role(self, role: Role) -> None:
        self.role = role
        self.clear_search()

    def clear_search(self) -> None:
        self.tag = SearchTag.UNVISITED
        self.cost_from_start = 0.0 if self.role is Role.START else inf
        self.parent = None

    def relax(self, cost: float, parent: Coordinate) -> None:
        self.cost_from_start = cost
        self.parent = parent

    def priority_key(self, algorithm: Algorithm) -> float:
        if algorithm is Algorithm.ASTAR:
            return self.cost_from_start + self.cost_to_goal
        return self.cost_from_start

    def snapshot(self) -> CellSnapshot:
        return CellSnapshot(self.role, self.tag)


class Grid:
    def __init__(self, width: int = 10, height: int = 10,
                 start: Optional[Coordinate] = None, goal: Optional[Coordinate] = None):
        if width < 1 or height < 1 or width * height < 2:
            raise GridError(f"grid must hold at least two cells, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.cells: List[List[Cell]] = [
            [Cell(Coordinate(x, y)) for x in range(self.width)] for y in range(self.height)
        ]
        start = start if start is not None else Coordinate(0, 0)
        goal = goal if goal is not None else Coordinate(self.width - 1, self.height - 1)
        for name, c in (("start", start), ("goal", goal)):
            if not self.in_bounds(c):
                raise GridError(f"{name} {c} outside {self.width}x{self.height} grid")
        if start == goal:
            raise GridError(f"start and goal must differ, both are {start}")

        self.start = start
        self.goal = goal
        self.cell(start).set_role(Role.START)
        self.cell(goal).set_role(Role.GOAL)

        # last heuristic applied; a Goal move recomputes cost_to_goal with it
        self.heuristic: Optional[Heuristic] = None

        self.guard = threading.RLock()
        self._run_owner: Optional[object] = None

    @classmethod
    def from_preset(cls, preset, width: int = 10, height: int = 10) -> "Grid":
        grid = cls(width, height)
        grid.apply_preset(preset)
        return grid

    # -------------------- lookup --------------------

    def in_bounds(self, c: Coordinate) -> bool:
        x, y = c
        return 0 <= x < self.width and 0 <= y < self.height

    def cell(self, c: Coordinate) -> Cell:
        if not self.in_bounds(c):
            raise GridError(f"{c} outside {self.width}x{self.height} grid")
        return self.cells[c.y][c.x]

    def role_of(self, c: Coordinate) -> Role:
        return self.cell(c).role

    def cell_snapshot(self, c: Coordinate) -> CellSnapshot:
        with self.guard:
            return self.cell(c).snapshot()

    def coordinates(self) -> Iterator[Coordinate]:
        for y in range(self.height):
            for x in range(self.width):
                yield Coordinate(x, y)

    def __iter__(self) -> Iterator[Cell]:
        for row in self.cells:
            yield from row

    @property
    def walls(self) -> List[Coordinate]:
        return [cell.coord for cell in self if cell.role is Role.WALL]

    def neighbors_of(self, c: Coordinate) -> List[Coordinate]:
        """Up to four in-bounds orthogonal neighbours, always in W, E, N, S order."""
        return [n for n in c.neighbors() if self.in_bounds(n)]

    # -------------------- run lock --------------------

    @property
    def is_running(self) -> bool:
        return self._run_owner is not None

    def acquire_run(self, owner: object) -> None:
        with self.guard:
            if self._run_owner is not None:
                raise GridLocked("grid is already owned by a running search")
            self._run_owner = owner

    def release_run(self, owner: object) -> None:
        with self.guard:
            if self._run_owner is owner:
                self._run_owner = None

    def _check_unlocked(self, action: str, owner: Optional[object] = None) -> None:
        if self._run_owner is not None and self._run_owner is not owner:
            logger.debug("Rejected %s: grid locked by a running search", action)
            raise GridLocked(f"cannot {action} while a search is running")

    # -------------------- mutation --------------------

    def set_cell_role(self, c: Coordinate, role) -> None:
        """
        Apply one user edit.

        WALL toggles Wall <-> Empty and never touches Start/Goal.
        START/GOAL relocate the single Start/Goal, demoting the old one to Empty.
        EMPTY clears a Wall; Start/Goal cells are left alone.
        """
        role = Role.parse(role)
        with self.guard:
            self._check_unlocked(f"set {c} to {role.value}")
            cell = self.cell(c)

            if role is Role.WALL:
                if cell.role in (Role.START, Role.GOAL):
                    return
                cell.set_role(Role.EMPTY if cell.role is Role.WALL else Role.WALL)
            elif role is Role.EMPTY:
                if cell.role is Role.WALL:
                    cell.set_role(Role.EMPTY)
            elif role is Role.START:
                if cell.role in (Role.START, Role.GOAL):
                    return
                self.cell(self.start).set_role(Role.EMPTY)
                cell.set_role(Role.START)
                self.start = c
            else:
                if cell.role in (Role.START, Role.GOAL):
                    return
                self.cell(self.goal).set_role(Role.EMPTY)
                cell.set_role(Role.GOAL)
                self.goal = c
                if self.heuristic is not None:
                    self.compute_heuristics(self.heuristic)
            logger.debug("Cell %s is now %s", c, cell.role.value)

    def validate_preset(self, preset) -> None:
        where = f"preset {getattr(preset, 'name', '?')!r}"
        for name, c in (("start", preset.start), ("goal", preset.goal)):
            if not self.in_bounds(c):
                raise InvalidPreset(f"{where}: {name} {c} outside {self.width}x{self.height} grid")
        if preset.start == preset.goal:
            raise InvalidPreset(f"{where}: start and goal are both {preset.start}")
        for w in preset.walls:
            if not self.in_bounds(w):
                raise InvalidPreset(f"{where}: wall {w} outside {self.width}x{self.height} grid")

    def apply_preset(self, preset) -> None:
        with self.guard:
            self._check_unlocked(f"apply preset {preset.name!r}")
            self.validate_preset(preset)

            walls = set(preset.walls)
            for cell in self:
                cell.set_role(Role.WALL if cell.coord in walls else Role.EMPTY)
            self.cell(preset.start).set_role(Role.START)
            self.cell(preset.goal).set_role(Role.GOAL)
            self.start = preset.start
            self.goal = preset.goal
            if self.heuristic is not None:
                self.compute_heuristics(self.heuristic)
            logger.info("Applied preset %r (%d walls)", preset.name, len(walls))

    def reset_search_state(self, owner: Optional[object] = None) -> None:
        """Back to a clean grid: every tag Unvisited, costs +inf (0 on Start), no parents."""
        with self.guard:
            self._check_unlocked("reset search state", owner)
            for cell in self:
                cell.clear_search()

    def compute_heuristics(self, kind) -> None:
        kind = Heuristic.parse(kind)
        with self.guard:
            for cell in self:
                cell.cost_to_goal = estimate(cell.coord, self.goal, kind)
            self.heuristic = kind

    # -------------------- invariants --------------------

    def role_count(self, role: Role) -> int:
        return sum(1 for cell in self if cell.role is role)

    def check_endpoints(self) -> List[str]:
        """Return the list of invariant problems with Start/Goal (empty when all is well)."""
        problems = []
        for role, tracked in ((Role.START, self.start), (Role.GOAL, self.goal)):
            count = self.role_count(role)
            if count != 1:
                problems.append(f"expected exactly one {role.value}, found {count}")
            elif self.cell(tracked).role is not role:
                problems.append(f"tracked {role.value} {tracked} has role {self.cell(tracked).role.value}")
        if self.start == self.goal:
            problems.append(f"start and goal are both {self.start}")
        return problems

    # -------------------- debug --------------------

    def render_ascii(self, path: Optional[Iterable[Coordinate]] = None) -> str:
        on_path = set(path or ())
        rows = []
        for row in self.cells:
            chars = []
            for cell in row:
                if cell.role is Role.START:
                    ch = "S"
                elif cell.role is Role.GOAL:
                    ch = "G"
                elif cell.role is Role.WALL:
                    ch = "#"
                elif cell.coord in on_path:
                    ch = "*"
                elif cell.tag is SearchTag.VISITED:
                    ch = "x"
                elif cell.tag is SearchTag.FRONTIER:
                    ch = "o"
                else:
                    ch = "."
                chars.append(ch)
            rows.append("".join(chars))
        return "\n".join(rows)
