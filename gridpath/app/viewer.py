# gridpath/app/viewer.py
#!/usr/bin/env python3
"""
Pathfinding Viewer - Build Mode + Search Controls + Metrics

- Mouse:
    [LEFT CLICK] -> edit the clicked cell with the current build mode
- Keyboard:
    [W]/[S]/[G]  -> build mode: wall toggle / move start / move goal
    [1]..[9]     -> load preset
    [D]/[A]      -> select algorithm (Dijkstra / A*)
    [M]/[E]      -> select heuristic (Manhattan / Euclidean, A* only)
    [SPACE]      -> run/pause
    [N]          -> single step
    [R]          -> reset search
    [+]/[-]      -> steps/sec
    [Q]/[ESC]    -> quit

Settings come from GRIDPATH_* env vars and --key=value flags (see gridpath.core.config).
"""

import logging
import sys
import time
from typing import Dict, List, Optional, Sequence, Tuple

import pygame

from gridpath.core.config import Settings, configure_logging, resolve_settings
from gridpath.core.errors import PathfinderError
from gridpath.core.events import TagChannel
from gridpath.core.grid import Grid
from gridpath.core.presets import Preset, find_preset, load_presets
from gridpath.core.search import SearchEngine, SearchState
from gridpath.core.types import Algorithm, Coordinate, Heuristic, Role, SearchTag

logger = logging.getLogger(__name__)

# ---------- Layout ----------
PANEL_W = 420            # right band: metrics + buttons
GRID_MARGIN = 16
CELL_SIZE_DEFAULT = 48
FONT_NAME = None  # default pygame font

# Colors
WHITE       = (255,255,255)
BLACK       = (  0,  0,  0)
BLUE        = ( 70,130,180)
RED         = (220, 50, 47)
DIRT_BROWN  = (167,133,108)
BOX_BROWN   = ( 77, 59, 47)
NEON_CYAN_A = (0,150,255,110)
NEON_MAG_A  = (255,0,120,90)
NEON_MINT   = (0,255,200)

CARD_BG     = (24,28,36,220)
CARD_HI     = (255,255,255,18)
TEXT_LIGHT  = (230,235,240)
TEXT_ERROR  = (255,120,110)
ACCENT_GOLD = (255,210,0)

BUILD_MODES = {
    Role.WALL:  "Place Wall",
    Role.START: "Place Start",
    Role.GOAL:  "Place Goal",
}


# ---------- Simple UI Button ----------
class UIButton:
    def __init__(self, label: str, rect: pygame.Rect, callback, *, togglable: bool = False):
        self.label = label
        self.rect = rect
        self.callback = callback
        self.hover = False
        self.togglable = togglable
        self.active = False  # highlight state

    def set_active(self, value: bool):
        self.active = bool(value)

    def draw(self, screen: pygame.Surface, font: pygame.font.Font):
        base = pygame.Surface(self.rect.size, pygame.SRCALPHA)
        bg_idle   = (36, 40, 48, 220)
        bg_hover  = (46, 50, 60, 230)
        bg_active = (58, 86, 160, 235)
        border_active = (120, 170, 255, 255)

        if self.active and self.togglable:
            bg = bg_active
        elif self.hover:
            bg = bg_hover
        else:
            bg = bg_idle
        pygame.draw.rect(base, bg, base.get_rect(), border_radius=10)
        screen.blit(base, self.rect.topleft)

        if self.active and self.togglable:
            pygame.draw.rect(screen, border_active, self.rect, width=2, border_radius=10)

        text = font.render(self.label, True, (235,238,242))
        screen.blit(text, text.get_rect(center=self.rect.center))

    def handle_mouse(self, event: pygame.event.Event) -> bool:
        if event.type == pygame.MOUSEMOTION:
            self.hover = self.rect.collidepoint(event.pos)
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self.callback()
                return True
        return False


# ---------- Viewer ----------
class Viewer:
    def __init__(self, grid: Grid, settings: Settings, presets: Dict[str, Preset]):
        pygame.init()

        self.grid = grid
        self.settings = settings
        self.presets = presets
        self.font_small = pygame.font.Font(FONT_NAME, 14)
        self.font = pygame.font.Font(FONT_NAME, 18)
        self.font_big = pygame.font.Font(FONT_NAME, 22)

        cell_size = max(14, min(CELL_SIZE_DEFAULT, (720 - GRID_MARGIN*2) // grid.height))
        win_w = GRID_MARGIN*2 + grid.width * cell_size + PANEL_W
        win_h = max(GRID_MARGIN*2 + grid.height * cell_size, 640)
        self.screen = pygame.display.set_mode((win_w, win_h), pygame.RESIZABLE)
        pygame.display.set_caption("Pathfinder")

        self._buttons: List[UIButton] = []

        # search engine + ordered tag feed for the overlays
        self.engine = SearchEngine(name="viewer")
        self.channel = TagChannel()
        self.engine.subscribe(self.channel)

        self.open_set: set = set()
        self.closed_set: set = set()
        self.path: List[Coordinate] = []
        self.agent: Coordinate = grid.start
        self._playback: List[Coordinate] = []

        self.running = False
        self.clock = pygame.time.Clock()
        self.steps_per_sec = settings.steps_per_sec
        self.state = "Build"
        self.message = ""
        self.build_mode = Role.WALL
        self.selected_algo = settings.algorithm
        self.selected_heuristic = settings.heuristic
        self.selected_preset: Optional[str] = None
        self._last_metrics: dict = {}
        self._last_step_t = 0.0

        self._layout(win_w, win_h)

    # ---------- layout ----------
    def _layout(self, win_w: int, win_h: int):
        """Compute integer cell_size that fits window and center the grid."""
        avail_w = max(1, win_w - PANEL_W - 2 * GRID_MARGIN)
        avail_h = max(1, win_h - 2 * GRID_MARGIN)
        self.cell_size = int(max(8, min(avail_w // self.grid.width, avail_h // self.grid.height)))

        plate_w = self.grid.width * self.cell_size + 2 * GRID_MARGIN
        plate_h = self.grid.height * self.cell_size + 2 * GRID_MARGIN
        left_x = max(0, (win_w - (plate_w + PANEL_W)) // 2)
        top_y = max(0, (win_h - plate_h) // 2)

        self.canvas_rect = pygame.Rect(left_x, top_y, plate_w, plate_h)
        self._grid_origin = (self.canvas_rect.x + GRID_MARGIN, self.canvas_rect.y + GRID_MARGIN)
        self._right_band = pygame.Rect(self.canvas_rect.right, 0,
                                       max(PANEL_W, win_w - self.canvas_rect.right), win_h)
        self._build_buttons()

    def cell_at(self, pos: Tuple[int, int]) -> Optional[Coordinate]:
        ox, oy = self._grid_origin
        col = (pos[0] - ox) // self.cell_size
        row = (pos[1] - oy) // self.cell_size
        c = Coordinate(col, row)
        return c if self.grid.in_bounds(c) else None

    def run(self, max_frames: Optional[int] = None):
        frames = 0
        while max_frames is None or frames < max_frames:
            if not self._handle_events():
                break
            self._tick()
            self._draw()
            self.clock.tick(60)
            frames += 1

    # ---------- search ----------
    def _tick(self):
        t0 = time.time()
        if t0 - self._last_step_t < 1.0 / max(1, self.steps_per_sec):
            return
        self._last_step_t = t0
        if self.running:
            self._do_step()
        elif self._playback:
            self.agent = self._playback.pop(0)

    def _do_step(self):
        if self.engine.state is SearchState.IDLE and not self._begin():
            return
        try:
            res = self.engine.step()
        except PathfinderError as ex:
            self._report(ex)
            return
        self._drain_tags()
        if res.path is not None:
            self.path = res.path
        if res.status == "done":
            self.state = "Done"; self.running = False
            self._playback = list(self.path)
        elif res.status == "no_path":
            self.state = "No path"; self.running = False
        elif res.status == "running":
            self.state = "Running" if self.running else "Paused"
        if res.metrics:
            self._last_metrics = res.metrics
        self._refresh_active_states()

    def _begin(self) -> bool:
        self._reset_overlays()
        try:
            self.engine.begin(self.grid, self.selected_algo, self.selected_heuristic)
        except PathfinderError as ex:
            self._report(ex)
            self.running = False
            return False
        self.message = ""
        return True

    def _drain_tags(self):
        for c, tag in self.channel.drain():
            if tag is SearchTag.FRONTIER:
                self.open_set.add(c)
            elif tag is SearchTag.VISITED:
                self.open_set.discard(c)
                self.closed_set.add(c)

    def _report(self, ex: Exception):
        logger.warning("%s: %s", type(ex).__name__, ex)
        self.message = str(ex)

    # ---------- events ----------
    def _handle_events(self) -> bool:
        for e in pygame.event.get():
            if e.type == pygame.QUIT:
                return False
            elif e.type == pygame.KEYDOWN:
                if e.key in (pygame.K_ESCAPE, pygame.K_q):
                    return False
                self._handle_key(e.key)
            elif e.type == pygame.VIDEORESIZE:
                self.screen = pygame.display.set_mode((max(640, e.w), max(480, e.h)), pygame.RESIZABLE)
                self._layout(*self.screen.get_size())
            elif e.type in (pygame.MOUSEMOTION, pygame.MOUSEBUTTONDOWN):
                handled = False
                for b in self._buttons:
                    handled = b.handle_mouse(e) or handled
                if not handled and e.type == pygame.MOUSEBUTTONDOWN and e.button == 1:
                    self._handle_click(e.pos)
        return True

    def _handle_key(self, key: int):
        if key == pygame.K_SPACE:
            self._toggle_run()
        elif key == pygame.K_r:
            self._reset()
        elif key == pygame.K_n:
            self._do_step()
        elif key in (pygame.K_PLUS, pygame.K_EQUALS):
            self._bump_speed(+1)
        elif key in (pygame.K_MINUS, pygame.K_UNDERSCORE):
            self._bump_speed(-1)
        elif key == pygame.K_w:
            self._set_build_mode(Role.WALL)
        elif key == pygame.K_s:
            self._set_build_mode(Role.START)
        elif key == pygame.K_g:
            self._set_build_mode(Role.GOAL)
        elif key == pygame.K_d:
            self._switch_algo(Algorithm.DIJKSTRA)
        elif key == pygame.K_a:
            self._switch_algo(Algorithm.ASTAR)
        elif key == pygame.K_m:
            self._switch_heuristic(Heuristic.MANHATTAN)
        elif key == pygame.K_e:
            self._switch_heuristic(Heuristic.EUCLIDEAN)
        elif pygame.K_1 <= key <= pygame.K_9:
            names = list(self.presets)
            idx = key - pygame.K_1
            if idx < len(names):
                self._apply_preset(names[idx])

    def _handle_click(self, pos: Tuple[int, int]):
        c = self.cell_at(pos)
        if c is None:
            return
        if self.engine.state not in (SearchState.IDLE, SearchState.RUNNING):
            # leaving a finished run's visualisation, back to build mode
            self._reset()
        try:
            self.grid.set_cell_role(c, self.build_mode)
        except PathfinderError as ex:
            self._report(ex)
            return
        self.agent = self.grid.start
        self.message = ""

    # ---------- commands ----------
    def _apply_preset(self, name: str):
        self._reset()
        try:
            self.grid.apply_preset(find_preset(self.presets, name))
        except PathfinderError as ex:
            self._report(ex)
            return
        self.selected_preset = name
        self.agent = self.grid.start
        pygame.display.set_caption(f"Pathfinder - {name}")
        self._refresh_active_states()

    def _set_build_mode(self, role: Role):
        self.build_mode = role
        self._refresh_active_states()

    def _switch_algo(self, algorithm: Algorithm):
        self._reset()
        self.selected_algo = algorithm
        self._refresh_active_states()

    def _switch_heuristic(self, heuristic: Heuristic):
        if self.selected_algo is not Algorithm.ASTAR:
            return
        self._reset()
        self.selected_heuristic = heuristic
        self._refresh_active_states()

    def _toggle_run(self):
        if self.state in ("Done", "No path"):
            return
        self.running = not self.running
        self.state = "Running" if self.running else "Paused"
        self._refresh_active_states()

    def _bump_speed(self, dv: int):
        self.steps_per_sec = int(max(1, min(60, self.steps_per_sec + dv)))

    def _reset_overlays(self):
        self.channel.drain()
        self.open_set.clear()
        self.closed_set.clear()
        self.path = []
        self._playback = []
        self.agent = self.grid.start
        self._last_metrics = {}

    def _reset(self):
        self.running = False
        self.state = "Build"
        self.engine.reset()
        self._reset_overlays()
        self._refresh_active_states()

    # ---------- drawing ----------
    def _draw(self):
        self._draw_backdrop()
        self._draw_grid()
        self._draw_metrics_and_buttons()
        pygame.display.flip()

    def _draw_backdrop(self):
        w, h = self.screen.get_size()
        top = (24, 26, 32); bot = (36, 40, 48)
        for y in range(h):
            t = y / max(1, h-1)
            c = tuple(int(top[i] + (bot[i]-top[i]) * t) for i in range(3))
            pygame.draw.line(self.screen, c, (0, y), (w, y))

    def _cell_rect(self, c: Coordinate) -> pygame.Rect:
        cs = self.cell_size
        ox, oy = self._grid_origin
        return pygame.Rect(ox + c.x*cs, oy + c.y*cs, cs, cs)

    def _draw_grid(self):
        cs = self.cell_size
        for cell in self.grid:
            rect = self._cell_rect(cell.coord)
            pygame.draw.rect(self.screen, BOX_BROWN if cell.role is Role.WALL else DIRT_BROWN, rect)
            pygame.draw.rect(self.screen, BLACK, rect, 1)

        overlay = pygame.Surface((cs, cs), pygame.SRCALPHA)
        overlay.fill(NEON_MAG_A)
        for c in self.closed_set:
            self.screen.blit(overlay, self._cell_rect(c).topleft)
        overlay.fill(NEON_CYAN_A)
        for c in self.open_set:
            self.screen.blit(overlay, self._cell_rect(c).topleft)

        if len(self.path) >= 2:
            pts = [self._cell_rect(c).center for c in self.path]
            pygame.draw.lines(self.screen, NEON_MINT, False, pts, 5)

        self._draw_badge(self.grid.goal, RED, "G")
        self._draw_badge(self.agent, BLUE, "S")

    def _draw_badge(self, c: Coordinate, color: Tuple[int,int,int], label: str):
        rect = self._cell_rect(c)
        pygame.draw.circle(self.screen, color, rect.center, max(6, self.cell_size//2 - 4))
        txt = self.font_small.render(label, True, WHITE)
        self.screen.blit(txt, txt.get_rect(center=rect.center))

    # ---------- buttons + metrics ----------
    def _build_buttons(self):
        self._buttons.clear()
        rb = self._right_band
        x = rb.x + 16
        y = rb.y + 250  # leaves space for metrics card above
        w = max(160, rb.width - 32)
        h = 34
        gap = 8
        half = (w - 8) // 2

        def add(label, cb, rect, *, togglable=False, store_as: Optional[str] = None):
            btn = UIButton(label, rect, cb, togglable=togglable)
            self._buttons.append(btn)
            if store_as:
                setattr(self, store_as, btn)

        add("Run / Pause", self._toggle_run, pygame.Rect(x, y, half, h), togglable=True, store_as="btn_run")
        add("Step Once", self._do_step, pygame.Rect(x + half + 8, y, half, h)); y += h + gap
        add("Reset", self._reset, pygame.Rect(x, y, w, h)); y += h + gap

        for i, (role, label) in enumerate(BUILD_MODES.items()):
            third = (w - 16) // 3
            rect = pygame.Rect(x + i * (third + 8), y, third, h)
            add(label, lambda r=role: self._set_build_mode(r), rect, togglable=True,
                store_as=f"btn_build_{role.name.lower()}")
        y += h + gap

        add("Dijkstra", lambda: self._switch_algo(Algorithm.DIJKSTRA), pygame.Rect(x, y, half, h),
            togglable=True, store_as="btn_algo_d")
        add("A*", lambda: self._switch_algo(Algorithm.ASTAR), pygame.Rect(x + half + 8, y, half, h),
            togglable=True, store_as="btn_algo_a"); y += h + gap
        add("Manhattan", lambda: self._switch_heuristic(Heuristic.MANHATTAN), pygame.Rect(x, y, half, h),
            togglable=True, store_as="btn_heur_m")
        add("Euclidean", lambda: self._switch_heuristic(Heuristic.EUCLIDEAN),
            pygame.Rect(x + half + 8, y, half, h), togglable=True, store_as="btn_heur_e"); y += h + gap

        self._preset_buttons: Dict[str, UIButton] = {}
        for name in self.presets:
            add(f"Preset: {name}", lambda n=name: self._apply_preset(n), pygame.Rect(x, y, w, h), togglable=True)
            self._preset_buttons[name] = self._buttons[-1]
            y += h + gap

        self._refresh_active_states()

    def _refresh_active_states(self):
        if hasattr(self, "btn_run"):
            self.btn_run.set_active(self.running)
        for role in BUILD_MODES:
            btn = getattr(self, f"btn_build_{role.name.lower()}", None)
            if btn:
                btn.set_active(self.build_mode is role)
        if hasattr(self, "btn_algo_d"):
            self.btn_algo_d.set_active(self.selected_algo is Algorithm.DIJKSTRA)
            self.btn_algo_a.set_active(self.selected_algo is Algorithm.ASTAR)
        astar = self.selected_algo is Algorithm.ASTAR
        if hasattr(self, "btn_heur_m"):
            self.btn_heur_m.set_active(astar and self.selected_heuristic is Heuristic.MANHATTAN)
            self.btn_heur_e.set_active(astar and self.selected_heuristic is Heuristic.EUCLIDEAN)
        for name, btn in getattr(self, "_preset_buttons", {}).items():
            btn.set_active(name == self.selected_preset)

    def _draw_metrics_and_buttons(self):
        rb = self._right_band

        card_h = 230
        card = pygame.Surface((rb.width - 20, card_h), pygame.SRCALPHA)
        pygame.draw.rect(card, CARD_BG, card.get_rect(), border_radius=14)
        hi = pygame.Surface((card.get_width(), 24), pygame.SRCALPHA)
        pygame.draw.rect(hi, CARD_HI, hi.get_rect(), border_radius=14)
        card.blit(hi, (0,0))
        self.screen.blit(card, (rb.x + 10, rb.y + 10))

        x0 = rb.x + 24
        y0 = rb.y + 18

        def line(text, big=False, color=TEXT_LIGHT):
            nonlocal y0
            f = self.font_big if big else self.font
            surf = f.render(text, True, color)
            self.screen.blit(surf, (x0, y0))
            y0 += surf.get_height() + 6

        line(f"{self.state}", big=True, color=ACCENT_GOLD)
        m = self._last_metrics
        line(f"Visited: {m.get('closed_count', 0)}   Frontier: {m.get('open_size', 0)}")
        line(f"Path Len: {m.get('path_len', 0)}")
        line("-" * 26)
        algo = self.selected_algo.label
        if self.selected_algo is Algorithm.ASTAR:
            algo += f" ({self.selected_heuristic.label})"
        line(f"Algo: {algo}")
        line(f"Build: {BUILD_MODES[self.build_mode]}")
        line(f"Speed: {self.steps_per_sec} steps/s")
        if self.message:
            line(self.message[:48], color=TEXT_ERROR)

        for b in self._buttons:
            b.draw(self.screen, self.font_small)


# ---------- main ----------
def main(argv: Optional[Sequence[str]] = None):
    try:
        settings = resolve_settings(argv)
    except ValueError as ex:
        print(f"Bad settings: {ex}", file=sys.stderr)
        sys.exit(2)
    configure_logging(settings)

    try:
        presets = load_presets()
        grid = Grid(settings.size, settings.size)
        preset = find_preset(presets, settings.preset)
        grid.apply_preset(preset)
    except PathfinderError as ex:
        logger.error("Failed to load preset %r: %s", settings.preset, ex)
        sys.exit(1)

    viewer = Viewer(grid, settings, presets)
    viewer.selected_preset = preset.name
    viewer._refresh_active_states()
    viewer.run()
    pygame.quit()


if __name__ == "__main__":
    main()
