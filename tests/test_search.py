import logging
import queue
import random
import threading
import time

import pytest

from conftest import C, assert_valid_path, tags, walled_grid
from gridpath.core.errors import GridLocked, InvalidSearchState, SearchAlreadyRunning
from gridpath.core.events import TagChannel
from gridpath.core.grid import Grid
from gridpath.core.search import SearchEngine, SearchState
from gridpath.core.types import Algorithm, Heuristic, Role, SearchTag

ALL_RUNS = [
    (Algorithm.DIJKSTRA, Heuristic.MANHATTAN),
    (Algorithm.ASTAR, Heuristic.MANHATTAN),
    (Algorithm.ASTAR, Heuristic.EUCLIDEAN),
]


def test_dijkstra_corner_to_corner_on_empty_grid(grid):
    result = SearchEngine().start(grid, Algorithm.DIJKSTRA)
    assert result.found
    assert len(result.path) == 19
    assert result.path[0] == C(0, 0)
    assert result.path[-1] == C(9, 9)
    assert_valid_path(grid, result.path)


@pytest.mark.parametrize("algorithm,heuristic", ALL_RUNS)
@pytest.mark.parametrize("start,goal", [((0, 0), (9, 9)), ((3, 7), (8, 1)), ((5, 5), (5, 0)), ((0, 4), (1, 4))])
def test_open_grid_path_length_is_manhattan_plus_one(algorithm, heuristic, start, goal):
    grid = walled_grid(start=start, goal=goal)
    result = SearchEngine().start(grid, algorithm, heuristic)
    dx, dy = abs(goal[0] - start[0]), abs(goal[1] - start[1])
    assert len(result.path) == dx + dy + 1
    assert_valid_path(grid, result.path)


@pytest.mark.parametrize("algorithm,heuristic", ALL_RUNS)
def test_path_goes_through_the_only_gap(algorithm, heuristic):
    grid = walled_grid(walls=[(x, 5) for x in range(10) if x != 5])
    result = SearchEngine().start(grid, algorithm, heuristic)
    assert result.found
    assert C(5, 5) in result.path
    assert len(result.path) == 19
    assert_valid_path(grid, result.path)


def test_tie_breaking_follows_neighbour_order():
    grid = walled_grid(3, 3, start=(0, 0), goal=(2, 2))
    result = SearchEngine().start(grid, Algorithm.DIJKSTRA)
    assert result.path == [C(0, 0), C(1, 0), C(2, 0), C(2, 1), C(2, 2)]
    assert result.visited_count == 7


def test_goal_next_to_start():
    grid = walled_grid(start=(0, 0), goal=(1, 0))
    result = SearchEngine().start(grid)
    assert result.path == [C(0, 0), C(1, 0)]
    assert result.visited_count == 1


@pytest.mark.parametrize("algorithm,heuristic", ALL_RUNS)
def test_enclosed_goal_visits_exactly_the_reachable_component(algorithm, heuristic):
    grid = walled_grid(walls=[(8, 9), (9, 8)])
    engine = SearchEngine()
    result = engine.start(grid, algorithm, heuristic)

    assert not result.found
    assert result.status == "not_found"
    assert result.path is None
    assert result.visited_count == 97
    assert engine.state is SearchState.EXHAUSTED
    for c in grid:
        expected = SearchTag.VISITED if c.role in (Role.EMPTY, Role.START) else SearchTag.UNVISITED
        assert c.tag is expected


def test_boxed_in_start_is_exhausted_after_one_expansion():
    grid = walled_grid(start=(0, 0), walls=[(1, 0), (0, 1)])
    result = SearchEngine().start(grid)
    assert result.status == "not_found"
    assert result.visited_count == 1


@pytest.mark.parametrize("heuristic", [Heuristic.MANHATTAN, Heuristic.EUCLIDEAN])
def test_dijkstra_and_astar_agree_on_length(heuristic):
    rng = random.Random(1234)
    for _ in range(60):
        walls = [(x, y) for x in range(10) for y in range(10) if rng.random() < 0.3]
        grid = walled_grid(walls=walls)
        d = SearchEngine().start(grid, Algorithm.DIJKSTRA)
        a = SearchEngine().start(grid, Algorithm.ASTAR, heuristic)
        assert d.found == a.found
        if d.found:
            assert len(d.path) == len(a.path)
            assert_valid_path(grid, a.path)


def test_astar_heads_straight_for_the_goal():
    grid = walled_grid(start=(0, 0), goal=(9, 0))
    d = SearchEngine().start(grid, Algorithm.DIJKSTRA)
    a = SearchEngine().start(grid, Algorithm.ASTAR, Heuristic.MANHATTAN)
    assert a.visited_count == 9
    assert d.visited_count > a.visited_count
    assert a.path == [C(x, 0) for x in range(10)]


def test_repeat_runs_are_reproducible():
    grid = walled_grid(walls=[(4, y) for y in range(1, 10)])
    engine = SearchEngine()
    first = engine.start(grid, Algorithm.ASTAR, Heuristic.EUCLIDEAN)
    second = engine.start(grid, Algorithm.ASTAR, Heuristic.EUCLIDEAN)
    assert first == second


def test_tag_events_are_reported_in_order(grid):
    seen = []
    engine = SearchEngine()
    engine.subscribe(lambda c, tag: seen.append((c, tag)))
    engine.start(grid, Algorithm.DIJKSTRA)

    assert seen[0] == (C(0, 0), SearchTag.FRONTIER)
    assert seen[1] == (C(0, 0), SearchTag.VISITED)
    last = {}
    for c, tag in seen:
        last[c] = tag
    for c, tag in last.items():
        assert grid.cell_snapshot(c).tag is tag


def test_step_api_reports_progress(grid):
    engine = SearchEngine()
    engine.begin(grid, "A*", "manhattan")
    first = engine.step()
    assert first.status == "running"
    assert first.current == C(0, 0)
    assert first.closed == [C(0, 0)]
    assert first.opened == [C(1, 0), C(0, 1)]
    assert first.metrics["algo"] == "A*"

    res = first
    while not res.finished:
        res = engine.step()
    assert res.status == "done"
    assert res.metrics["path_len"] == 19
    # further steps keep reporting the finished run
    assert engine.step().path == res.path


def test_step_without_run_is_idle():
    engine = SearchEngine()
    assert engine.step().status == "idle"
    with pytest.raises(InvalidSearchState):
        engine.result()


def test_second_start_while_running_is_rejected(grid):
    engine = SearchEngine()
    engine.begin(grid, Algorithm.DIJKSTRA)
    for _ in range(5):
        engine.step()
    before = tags(grid)
    popped = engine.popped_count

    with pytest.raises(SearchAlreadyRunning):
        engine.start(grid, Algorithm.ASTAR)
    with pytest.raises(SearchAlreadyRunning):
        SearchEngine().begin(grid)

    assert tags(grid) == before
    assert engine.popped_count == popped
    assert engine.state is SearchState.RUNNING
    while not engine.step().finished:
        pass
    assert len(engine.result().path) == 19


def test_grid_is_locked_while_running(grid):
    engine = SearchEngine()
    engine.begin(grid)
    engine.step()
    with pytest.raises(GridLocked):
        grid.set_cell_role(C(4, 4), Role.WALL)
    with pytest.raises(GridLocked):
        grid.apply_preset(grid_preset())
    with pytest.raises(GridLocked):
        grid.reset_search_state()

    while not engine.step().finished:
        pass
    grid.set_cell_role(C(4, 4), Role.WALL)
    assert grid.role_of(C(4, 4)) is Role.WALL


def test_reset_releases_the_grid_and_clears_state(grid):
    engine = SearchEngine()
    engine.begin(grid)
    engine.step()
    engine.step()
    engine.reset()

    assert engine.state is SearchState.IDLE
    assert not grid.is_running
    assert set(tags(grid).values()) == {SearchTag.UNVISITED}
    grid.set_cell_role(C(4, 4), Role.WALL)


def test_invalid_grid_state_is_rejected_without_side_effects(grid):
    grid.cell(grid.goal).role = Role.EMPTY  # corrupt: no goal left
    grid.cell(C(2, 2)).tag = SearchTag.VISITED
    before = tags(grid)
    engine = SearchEngine()
    with pytest.raises(InvalidSearchState):
        engine.start(grid)
    assert tags(grid) == before
    assert not grid.is_running
    assert engine.state is SearchState.IDLE


def test_cancel_stops_at_next_selection(grid):
    engine = SearchEngine()
    engine.begin(grid)
    engine.step()
    engine.cancel()
    res = engine.step()
    assert res.status == "cancelled"
    assert engine.result().status == "cancelled"
    assert not grid.is_running


def test_failing_listener_releases_the_grid(grid):
    def boom(c, tag):
        if tag is SearchTag.VISITED:
            raise RuntimeError("renderer gone")

    engine = SearchEngine()
    engine.subscribe(boom)
    with pytest.raises(RuntimeError):
        engine.start(grid)
    assert not grid.is_running
    engine.unsubscribe(boom)
    assert engine.start(grid).found


def test_background_run_feeds_a_blocking_renderer():
    grid = walled_grid(walls=[(x, 5) for x in range(10) if x != 5])
    engine = SearchEngine()
    channel = TagChannel()
    engine.subscribe(channel)
    seen = []
    finished = threading.Event()

    def render_loop():
        while True:
            try:
                seen.append(channel.get(timeout=0.05))
            except queue.Empty:
                if finished.is_set():
                    return

    renderer = threading.Thread(target=render_loop)
    renderer.start()
    try:
        future = engine.start_in_background(grid, Algorithm.ASTAR, Heuristic.MANHATTAN)
        result = future.result(timeout=10)
    finally:
        finished.set()
        renderer.join(timeout=10)
        engine.shutdown()
    seen.extend(channel.drain())

    assert not renderer.is_alive()
    assert result.found
    assert C(5, 5) in result.path
    assert seen[0] == (grid.start, SearchTag.FRONTIER)
    assert sum(1 for _, tag in seen if tag is SearchTag.VISITED) == result.visited_count
    assert len(channel) == 0


def test_reset_during_background_run_reports_cancelled(grid):
    engine = SearchEngine()
    first_visit = threading.Event()

    def slow_listener(c, tag):
        if tag is SearchTag.VISITED:
            first_visit.set()
            time.sleep(0.001)

    engine.subscribe(slow_listener)
    try:
        future = engine.start_in_background(grid, Algorithm.DIJKSTRA)
        assert first_visit.wait(timeout=10)
        engine.reset()
        result = future.result(timeout=10)
    finally:
        engine.shutdown()

    assert result.status == "cancelled"
    assert not result.found
    assert engine.state is SearchState.IDLE
    assert not grid.is_running
    assert all(cell.tag is SearchTag.UNVISITED for cell in grid)

    engine.unsubscribe(slow_listener)
    assert engine.start(grid).found


def test_finished_run_logs_grid_dump(caplog):
    grid = walled_grid(4, 3, goal=(3, 2), walls=[(1, 1), (2, 1)])
    with caplog.at_level(logging.DEBUG, logger="gridpath.core.search"):
        result = SearchEngine().start(grid)
    assert result.found
    assert "final grid" in caplog.text
    assert grid.render_ascii(result.path) in caplog.text



def test_background_start_validates_synchronously(grid):
    engine = SearchEngine()
    engine.begin(grid)
    with pytest.raises(SearchAlreadyRunning):
        engine.start_in_background(grid)
    engine.reset()
    engine.shutdown()


def grid_preset():
    from gridpath.core.presets import Preset
    return Preset.build("other", (1, 1), (2, 2))
