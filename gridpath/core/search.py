# gridpath/core/search.py
#!/usr/bin/env python3
"""
Dijkstra / A* over a Grid - one expansion per step() for animation.

API (same shape the viewer drives):
- begin(grid, algorithm, heuristic) - step() -> StepResult - reset()
- start(...) runs begin + step to the end and returns a PathResult
- start_in_background(...) does the same on a worker thread, returns a Future

Priority key:
- Dijkstra: cost_from_start
- A*:       cost_from_start + cost_to_goal (heuristic filled in before the run)

Tie-breaking in the PQ: (key, first_seq, cell) -> lower key, then the cell
that entered the frontier first. Neighbours are pushed in W, E, N, S order.

Termination: the run stops as soon as the Goal shows up as a NEIGHBOUR of
the expanded cell, not when the Goal is popped.
"""

import heapq
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from gridpath.core.errors import GridLocked, InvalidSearchState, SearchAlreadyRunning
from gridpath.core.grid import Grid
from gridpath.core.path import reconstruct
from gridpath.core.types import (
    Algorithm, Coordinate, Heuristic, PathResult, Role, SearchTag, StepResult,
)

logger = logging.getLogger(__name__)

TagListener = Callable[[Coordinate, SearchTag], None]


class SearchState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


@dataclass
class SearchEngine:
    name: str = "search"

    # Internal state
    grid: Optional[Grid] = None
    algorithm: Algorithm = Algorithm.DIJKSTRA
    heuristic: Heuristic = Heuristic.MANHATTAN
    state: SearchState = SearchState.IDLE
    open_pq: List[Tuple[float, int, Coordinate]] = field(default_factory=list)  # (key, first_seq, cell)
    open_set: set = field(default_factory=set)         # live frontier, for overlay
    closed_set: set = field(default_factory=set)
    first_seq: Dict[Coordinate, int] = field(default_factory=dict)
    path: Optional[List[Coordinate]] = None
    popped_count: int = 0
    seq: int = 0  # monotonic counter for PQ stability
    listeners: List[TagListener] = field(default_factory=list)

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _run_id: int = field(default=0, repr=False)  # bumped by begin()/reset(); a stale worker stops on mismatch
    _cancel: threading.Event = field(default_factory=threading.Event, repr=False)
    _executor: Optional[ThreadPoolExecutor] = field(default=None, repr=False)

    # -------------------- lifecycle --------------------

    def subscribe(self, listener: TagListener) -> None:
        self.listeners.append(listener)

    def unsubscribe(self, listener: TagListener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    @property
    def is_running(self) -> bool:
        return self.state is SearchState.RUNNING

    def begin(self, grid: Grid, algorithm=Algorithm.DIJKSTRA, heuristic=Heuristic.MANHATTAN) -> None:
        """Validate, take the grid's run lock and seed the frontier with Start."""
        algorithm = Algorithm.parse(algorithm)
        heuristic = Heuristic.parse(heuristic)

        with self._lock:
            if self.state is SearchState.RUNNING:
                raise SearchAlreadyRunning(f"{self.name}: a run is already in progress")
            if grid.is_running:
                raise SearchAlreadyRunning(f"{self.name}: grid is owned by another run")
            problems = grid.check_endpoints()
            if problems:
                raise InvalidSearchState("; ".join(problems))
            try:
                grid.acquire_run(self)
            except GridLocked as ex:
                raise SearchAlreadyRunning(str(ex)) from ex

            self.grid = grid
            self.algorithm = algorithm
            self.heuristic = heuristic
            self._clear()
            self._run_id += 1
            self.state = SearchState.RUNNING

            try:
                with grid.guard:
                    grid.reset_search_state(owner=self)
                    if algorithm is Algorithm.ASTAR:
                        grid.compute_heuristics(heuristic)
                    self._push(grid.start)
            except Exception:
                self.state = SearchState.IDLE
                grid.release_run(self)
                raise

        logger.info("%s: %s run from %s to %s%s", self.name, algorithm.label, grid.start, grid.goal,
                    f" ({heuristic.label})" if algorithm is Algorithm.ASTAR else "")

    def reset(self) -> None:
        """Abandon the current run (if any), release the grid and clear all search state.

        A background worker still stepping the abandoned run stops and
        reports a cancelled result.
        """
        self._cancel.set()
        with self._lock:
            self._run_id += 1
            grid = self.grid
            if grid is None:
                self._clear()
                self.state = SearchState.IDLE
                return
            with grid.guard:
                grid.release_run(self)
                if not grid.is_running:
                    grid.reset_search_state()
                self._clear()
                self.state = SearchState.IDLE

    def cancel(self) -> None:
        """Ask a running search to stop; checked at the top of every selection."""
        self._cancel.set()

    def _clear(self) -> None:
        self.open_pq.clear()
        self.open_set.clear()
        self.closed_set.clear()
        self.first_seq.clear()
        self.path = None
        self.popped_count = 0
        self.seq = 0
        self._cancel.clear()

    # -------------------- full runs --------------------

    def start(self, grid: Grid, algorithm=Algorithm.DIJKSTRA, heuristic=Heuristic.MANHATTAN) -> PathResult:
        self.begin(grid, algorithm, heuristic)
        return self._run_to_end(self._run_id)

    def start_in_background(self, grid: Grid, algorithm=Algorithm.DIJKSTRA,
                            heuristic=Heuristic.MANHATTAN) -> "Future[PathResult]":
        """Like start(), but the expansion loop runs on a worker thread. Validation errors still raise here."""
        self.begin(grid, algorithm, heuristic)
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-worker")
        return self._executor.submit(self._run_to_end, self._run_id)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _run_to_end(self, run_id: int) -> PathResult:
        visited = 0
        while True:
            with self._lock:
                if self._run_id != run_id:
                    # reset() (or a newer begin()) took the run away
                    return PathResult.cancelled(visited)
                res = self.step()
                if res.finished:
                    return self.result()
                if res.status == "idle":
                    return PathResult.cancelled(visited)
                visited = self.popped_count

    def result(self) -> PathResult:
        if self.state is SearchState.SUCCEEDED:
            return PathResult.found_path(self.path, self.popped_count)
        if self.state is SearchState.EXHAUSTED:
            return PathResult.not_found(self.popped_count)
        if self.state is SearchState.CANCELLED:
            return PathResult.cancelled(self.popped_count)
        raise InvalidSearchState(f"{self.name}: no finished run (state is {self.state.value})")

    # -------------------- helpers --------------------

    def _tag(self, c: Coordinate, tag: SearchTag) -> None:
        self.grid.cell(c).tag = tag
        for listener in list(self.listeners):
            listener(c, tag)

    def _push(self, c: Coordinate) -> bool:
        """Add/refresh `c` in the frontier. Returns True when the cell was not already on it."""
        if c not in self.first_seq:
            self.seq += 1
            self.first_seq[c] = self.seq
        key = self.grid.cell(c).priority_key(self.algorithm)
        heapq.heappush(self.open_pq, (key, self.first_seq[c], c))
        fresh = c not in self.open_set
        self.open_set.add(c)
        self._tag(c, SearchTag.FRONTIER)
        return fresh

    def _pop(self) -> Optional[Coordinate]:
        while self.open_pq:
            key, _, c = heapq.heappop(self.open_pq)
            cell = self.grid.cell(c)
            # Ignore stale pops: already expanded, or a cheaper entry was pushed since
            if cell.tag is SearchTag.VISITED or key != cell.priority_key(self.algorithm):
                continue
            return c
        return None

    def _finish(self, state: SearchState) -> None:
        self.state = state
        self.grid.release_run(self)
        logger.info("%s: run %s after %d expansions%s", self.name, state.value, self.popped_count,
                    f", path of {len(self.path)} cells" if self.path else "")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s: final grid\n%s", self.name, self.grid.render_ascii(self.path))

    # -------------------- main stepping logic --------------------

    def step(self) -> StepResult:
        """
        Run ONE expansion:
          - pop the frontier cell with the lowest key and mark it Visited
          - scan its W/E/N/S neighbours: skip walls, stop on Goal, relax the rest
          - report Exhausted when nothing is left on the frontier
        """
        with self._lock:
            return self._step_locked()

    def _step_locked(self) -> StepResult:
        if self.grid is None or self.state is SearchState.IDLE:
            return StepResult(status="idle", metrics=self._metrics())
        if self.state is SearchState.SUCCEEDED:
            return StepResult(status="done", path=self.path,
                              metrics=self._metrics(path_len=len(self.path)))
        if self.state is SearchState.EXHAUSTED:
            return StepResult(status="no_path", metrics=self._metrics())
        if self.state is SearchState.CANCELLED:
            return StepResult(status="cancelled", metrics=self._metrics())

        try:
            with self.grid.guard:
                return self._expand()
        except Exception:
            # leave the grid editable if a listener or an invariant check blows up
            self.state = SearchState.IDLE
            self.grid.release_run(self)
            raise

    def _expand(self) -> StepResult:
        grid = self.grid

        if self._cancel.is_set():
            self._finish(SearchState.CANCELLED)
            return StepResult(status="cancelled", metrics=self._metrics())

        u = self._pop()
        if u is None:
            self._finish(SearchState.EXHAUSTED)
            return StepResult(status="no_path", metrics=self._metrics())

        self.popped_count += 1
        self.open_set.discard(u)
        self.closed_set.add(u)
        self._tag(u, SearchTag.VISITED)
        cell_u = grid.cell(u)
        logger.debug("%s: expand %s key=%.3f", self.name, u, cell_u.priority_key(self.algorithm))

        opened_now: List[Coordinate] = []
        for v in grid.neighbors_of(u):
            cell_v = grid.cell(v)
            if cell_v.role is Role.WALL:
                continue

            alt = cell_u.cost_from_start + 1

            if cell_v.role is Role.GOAL:
                if alt < cell_v.cost_from_start:
                    cell_v.relax(alt, u)
                self.path = reconstruct(grid, u, grid.start, grid.goal)
                self._finish(SearchState.SUCCEEDED)
                return StepResult(status="done", opened=opened_now, closed=[u], current=u,
                                  path=self.path, metrics=self._metrics(path_len=len(self.path)))

            if alt < cell_v.cost_from_start and cell_v.tag is not SearchTag.VISITED:
                cell_v.relax(alt, u)
                if self._push(v):
                    opened_now.append(v)

        if not self.open_set:
            self._finish(SearchState.EXHAUSTED)
            return StepResult(status="no_path", opened=opened_now, closed=[u], current=u,
                              metrics=self._metrics())

        return StepResult(status="running", opened=opened_now, closed=[u], current=u,
                          metrics=self._metrics())

    # -------------------- metrics --------------------

    def _metrics(self, path_len: int = 0) -> dict:
        return {
            "algo": self.algorithm.label,
            "heuristic": self.heuristic.label if self.algorithm is Algorithm.ASTAR else None,
            "state": self.state.value,
            "popped": self.popped_count,
            "open_size": len(self.open_set),
            "closed_count": len(self.closed_set),
            "path_len": path_len,
        }
