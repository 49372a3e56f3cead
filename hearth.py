#!/usr/bin/env python3
"""
  ~  H E A R T H  ~
  A fireplace for your terminal.

  Heat rises from a row of logs at the bottom of the screen, spreads to its
  neighbours, cools as it climbs and flickers as it goes. Each cell's heat is
  quantized into a glyph (a few interchangeable candidates per bin, for
  texture) and a colour from a black → red → orange → yellow → white ramp.

  Controls:
    q         quit
    Ctrl-C    quit

  The fire resizes with the terminal; a resize restarts it from cold.
  Set HEARTH_STATS=<path> to log telemetry CSV to that file.
"""

from __future__ import annotations

import curses
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Callable, ClassVar, Mapping, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger("hearth")

# ── Palette ─────────────────────────────────────────────────────────────
# Coldest → hottest. xterm-256 colour numbers.
GRADIENT: tuple[int, ...] = (
    16,                         # black, no heat
    52, 124,                    # deep red → red embers
    203, 209, 215,              # orange-red → orange
    226, 227,                   # yellow → light yellow
    231, 230, 15,               # white core
)

# Same ramp for terminals without 256 colours (curses COLOR_* numbers)
BASIC_GRADIENT: tuple[int, ...] = (0, 1, 1, 1, 3, 3, 3, 3, 7, 7, 7)

# Hottest colour bins are drawn bold
BOLD_BINS: int = 3

# ── Glyphs ──────────────────────────────────────────────────────────────
# Coldest → hottest. Each bin holds equally likely candidates; picking one
# at random per frame makes the flame shimmer even where heat is steady.
GLYPH_BINS: tuple[tuple[str, ...], ...] = (
    (" ",),
    (" ", "."),
    (".", ","),
    (",", "'"),
    ("'", '"'),
    ('"', "~"),
    ("~", "^"),
    ("^", "o"),
    ("o", "O"),
    ("O", "*"),
    ("*", "0"),
    ("0", "M"),
)

# One glyph per bin: a steady, non-random mapping
CLASSIC_GLYPH_BINS: tuple[tuple[str, ...], ...] = tuple(
    (c,) for c in " .,'\"~^oO*0M"
)

MAX_HEAT = 255
HOT_HEAT = 200  # telemetry threshold for a "hot" cell

QUIT_KEYS: frozenset[int] = frozenset({ord("q"), ord("Q"), 3})  # 3 = Ctrl-C in raw mode

TITLE = " Hearth (press q to quit) "

# Set to a file path to record telemetry CSV there
STATS_ENV = "HEARTH_STATS"


def _check_range(name: str, rng_: tuple[int, int]) -> None:
    lo, hi = rng_
    if not 0 <= lo <= hi <= MAX_HEAT:
        raise ValueError(f"{name} must satisfy 0 <= lo <= hi <= {MAX_HEAT}, got {rng_!r}")


# ═══════════════════════════════════════════════════════════════════════
#  Configuration
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FireConfig:
    """Tuning knobs for the fire. All ranges are inclusive."""

    tick_ms: int = 60                               # ~16.6 updates/second
    interior_decay: tuple[int, int] = (15, 18)
    fluctuation: tuple[int, int] = (12, 15)
    fluctuation_chance: float = 0.5                 # chance the flicker adds heat
    ignition_heat: tuple[int, int] = (200, 255)
    ignition_exponent: float = 0.2                  # <1 widens the hot centre
    source_decay: tuple[int, int] = (0, 5)          # (5, 10) burns the logs down faster
    flicker_cold: bool = False                      # flicker cells that have no heat
    glyph_bins: tuple[tuple[str, ...], ...] = GLYPH_BINS
    color_bins: tuple[int, ...] = GRADIENT

    def __post_init__(self) -> None:
        if self.tick_ms <= 0:
            raise ValueError(f"tick_ms must be positive, got {self.tick_ms}")
        _check_range("interior_decay", self.interior_decay)
        _check_range("fluctuation", self.fluctuation)
        _check_range("ignition_heat", self.ignition_heat)
        _check_range("source_decay", self.source_decay)
        if not 0.0 <= self.fluctuation_chance <= 1.0:
            raise ValueError("fluctuation_chance must be within [0, 1]")
        if self.ignition_exponent <= 0:
            raise ValueError("ignition_exponent must be positive")
        if not self.glyph_bins or any(not b for b in self.glyph_bins):
            raise ValueError("glyph_bins must be a non-empty sequence of non-empty bins")
        if not self.color_bins:
            raise ValueError("color_bins must not be empty")

    @property
    def tick(self) -> float:
        """Tick period in seconds."""
        return self.tick_ms / 1000.0


DEFAULT_CONFIG = FireConfig()


# ═══════════════════════════════════════════════════════════════════════
#  Heat state
# ═══════════════════════════════════════════════════════════════════════

class HeatGrid:
    """
    A height × width array of heat values in [0, 255].

    Indexed ``[y, x]``: row 0 is the top of the screen, row ``height - 1``
    is the log row where heat is injected.
    """

    def __init__(self, width: int, height: int) -> None:
        self.cells: NDArray[np.uint8] = np.zeros(
            (max(0, height), max(0, width)), dtype=np.uint8
        )

    @classmethod
    def from_array(cls, values: ArrayLike) -> HeatGrid:
        """Build a grid from a 2-D array, clipping values into [0, 255]."""
        arr = np.asarray(values)
        if arr.ndim != 2:
            raise ValueError(f"heat array must be 2-D, got shape {arr.shape}")
        grid = cls(arr.shape[1], arr.shape[0])
        grid.cells[...] = np.clip(arr, 0, MAX_HEAT)
        return grid

    @property
    def width(self) -> int:
        return self.cells.shape[1]

    @property
    def height(self) -> int:
        return self.cells.shape[0]

    @property
    def shape(self) -> tuple[int, int]:
        """(height, width), numpy order."""
        return self.cells.shape  # type: ignore[return-value]

    def reset(self, width: int, height: int) -> bool:
        """Reallocate a cold grid if the size changed. Returns True if it did."""
        width, height = max(0, width), max(0, height)
        if width == self.width and height == self.height:
            return False
        self.cells = np.zeros((height, width), dtype=np.uint8)
        return True

    def get(self, x: int, y: int) -> int:
        return int(self.cells[y, x])

    def copy(self) -> HeatGrid:
        return HeatGrid.from_array(self.cells)

    def mean(self) -> float:
        if self.cells.size == 0:
            return 0.0
        return float(self.cells.mean())

    def __repr__(self) -> str:
        return f"HeatGrid(width={self.width}, height={self.height})"


# ═══════════════════════════════════════════════════════════════════════
#  The fire
# ═══════════════════════════════════════════════════════════════════════

def center_bias(width: int) -> NDArray[np.float64]:
    """Per-column bias: 1.0 at the centre column, 0.0 at the edges."""
    if width <= 0:
        return np.zeros(0, dtype=np.float64)
    half = width / 2.0
    x = np.arange(width, dtype=np.float64)
    return np.clip(1.0 - np.abs(x - half) / half, 0.0, 1.0)


def ignition_probability(width: int, exponent: float = 0.2) -> NDArray[np.float64]:
    """Per-column chance that a log-row cell reignites this tick."""
    return center_bias(width) ** exponent


class HeatEngine:
    """
    Advances a HeatGrid by one tick.

    Every row above the logs takes half the heat of the cell below it, a
    third of its own and an eighth of each side neighbour, then cools by a
    random amount and flickers up or down. The log row reignites at random,
    most often near the centre, and otherwise smoulders down.

    ``update`` never writes to its input: all reads see the previous tick
    and the result is a fresh grid.
    """

    def __init__(self, config: FireConfig = DEFAULT_CONFIG) -> None:
        self.config = config
        self._ignition_p: NDArray[np.float64] = np.zeros(0)

    def _ignition(self, width: int) -> NDArray[np.float64]:
        if self._ignition_p.shape[0] != width:
            self._ignition_p = ignition_probability(width, self.config.ignition_exponent)
        return self._ignition_p

    def update(self, grid: HeatGrid, rng: np.random.Generator) -> HeatGrid:
        cfg = self.config
        height, width = grid.shape
        nxt: NDArray[np.uint8] = np.zeros((height, width), dtype=np.uint8)
        if height == 0 or width == 0:
            return HeatGrid.from_array(nxt)

        prev = grid.cells.astype(np.int16)

        # ── Rise, spread, cool, flicker (rows 0 .. height-2) ──
        if height > 1:
            current = prev[:-1]
            below = prev[1:]
            heat = below // 2 + current // 3
            side = current // 8
            heat[:, 1:] += side[:, :-1]    # from the left neighbour
            heat[:, :-1] += side[:, 1:]    # from the right neighbour
            np.minimum(heat, MAX_HEAT, out=heat)
            inflow = heat

            shape = heat.shape
            lo, hi = cfg.interior_decay
            heat = np.maximum(heat - rng.integers(lo, hi, size=shape, endpoint=True), 0)

            lo, hi = cfg.fluctuation
            magnitude = rng.integers(lo, hi, size=shape, endpoint=True)
            sign = np.where(rng.random(shape) < cfg.fluctuation_chance, 1, -1)
            if not cfg.flicker_cold:
                # Cold stays cold: no heat in, nothing to flicker
                magnitude = np.where(inflow > 0, magnitude, 0)
            nxt[:-1] = np.clip(heat + sign * magnitude, 0, MAX_HEAT)

        # ── Logs (row height-1) ──
        logs = prev[-1]
        ignite = rng.random(width) < self._ignition(width)
        lo, hi = cfg.ignition_heat
        fresh = rng.integers(lo, hi, size=width, endpoint=True)
        lo, hi = cfg.source_decay
        smoulder = np.maximum(logs - rng.integers(lo, hi, size=width, endpoint=True), 0)
        nxt[-1] = np.where(ignite, fresh, smoulder)

        return HeatGrid.from_array(nxt)


# ═══════════════════════════════════════════════════════════════════════
#  Appearance
# ═══════════════════════════════════════════════════════════════════════

def _quantize(heat: ArrayLike, n_bins: int) -> NDArray[np.intp]:
    """floor(heat / 255 * (n_bins - 1)), clamped to [0, n_bins - 1]."""
    scaled = np.asarray(heat, dtype=np.int64) * (n_bins - 1) // MAX_HEAT
    return np.clip(scaled, 0, n_bins - 1).astype(np.intp)


class AppearanceMapper:
    """Maps heat to a (glyph, colour) pair by linear quantization."""

    def __init__(
        self,
        glyph_bins: Sequence[Sequence[str]] = GLYPH_BINS,
        color_bins: Sequence[int] = GRADIENT,
    ) -> None:
        if not glyph_bins or any(not b for b in glyph_bins):
            raise ValueError("every glyph bin needs at least one candidate")
        if not color_bins:
            raise ValueError("color_bins must not be empty")
        for b in glyph_bins:
            for g in b:
                if len(g) != 1:
                    raise ValueError(f"glyphs must be single characters, got {g!r}")

        self.glyph_bins: tuple[tuple[str, ...], ...] = tuple(tuple(b) for b in glyph_bins)
        self.color_bins: tuple[int, ...] = tuple(color_bins)

        # Padded lookup table: row = bin, column = candidate
        self._counts: NDArray[np.int64] = np.array(
            [len(b) for b in self.glyph_bins], dtype=np.int64
        )
        self._table: NDArray[np.str_] = np.full(
            (len(self.glyph_bins), int(self._counts.max())), " ", dtype="<U1"
        )
        for i, b in enumerate(self.glyph_bins):
            self._table[i, : len(b)] = b

    @property
    def n_glyph(self) -> int:
        return len(self.glyph_bins)

    @property
    def n_color(self) -> int:
        return len(self.color_bins)

    def glyph_bin_index(self, heat: int) -> int:
        return int(_quantize(heat, self.n_glyph))

    def color_bin_index(self, heat: int) -> int:
        return int(_quantize(heat, self.n_color))

    def glyph_and_color(self, heat: int, rng: np.random.Generator) -> tuple[str, int]:
        candidates = self.glyph_bins[self.glyph_bin_index(heat)]
        glyph = candidates[int(rng.integers(len(candidates)))]
        return glyph, self.color_bins[self.color_bin_index(heat)]

    # ── Whole-frame versions of the above ──────────────────────────

    def glyphs(self, cells: ArrayLike, rng: np.random.Generator) -> NDArray[np.str_]:
        idx = _quantize(cells, self.n_glyph)
        if idx.size == 0:
            return np.empty(idx.shape, dtype="<U1")
        pick = rng.integers(0, self._counts[idx])
        return self._table[idx, pick]

    def color_indices(self, cells: ArrayLike) -> NDArray[np.intp]:
        return _quantize(cells, self.n_color)


def render_cells(
    grid: HeatGrid, mapper: AppearanceMapper, rng: np.random.Generator
) -> list[list[tuple[str, int]]]:
    """Like render_rows, but with the colour-bin index in place of the colour."""
    glyphs = mapper.glyphs(grid.cells, rng).tolist()
    bins = mapper.color_indices(grid.cells).tolist()
    return [list(zip(g_row, b_row)) for g_row, b_row in zip(glyphs, bins)]


def render_rows(
    grid: HeatGrid, mapper: AppearanceMapper, rng: np.random.Generator
) -> list[list[tuple[str, int]]]:
    """One list of (glyph, colour) per grid row, top to bottom, left to right."""
    colors = mapper.color_bins
    return [
        [(glyph, colors[i]) for glyph, i in row]
        for row in render_cells(grid, mapper, rng)
    ]


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes fire telemetry to CSV for post-hoc tuning."""

    HEADER: ClassVar[str] = (
        "tick,time_s,width,height,mean_heat,source_heat,top_heat,hot_cells,event\n"
    )

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(self, tick: int, grid: HeatGrid, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        cells = grid.cells
        if cells.size:
            source = float(cells[-1].mean())
            top = float(cells[0].mean())
            hot = int((cells >= HOT_HEAT).sum())
        else:
            source = top = 0.0
            hot = 0
        try:
            self._fh.write(
                f"{tick},{t:.1f},{grid.width},{grid.height},{grid.mean():.1f},"
                f"{source:.1f},{top:.1f},{hot},{event}\n"
            )
            # Flush on events or periodically
            if event or tick % 50 == 0:
                self._fh.flush()
        except OSError:
            self.close()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


def open_stats(environ: Mapping[str, str] = os.environ) -> StatsLogger | None:
    """Open the telemetry CSV named by $HEARTH_STATS, or None when unset."""
    path = environ.get(STATS_ENV)
    if not path:
        return None
    stats = StatsLogger(Path(path).expanduser())
    stats.open()
    return stats


def setup_logging(level: int = logging.WARNING, log_file: str | None = None) -> None:
    """
    Configure the 'hearth' logger.

    Messages go to stderr, so only emit them once curses has released the
    terminal.
    """
    logger.setLevel(level)
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


# ═══════════════════════════════════════════════════════════════════════
#  Color management
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ColorMap:
    """Curses attributes for each bin of the heat gradient."""

    _attrs: dict[int, int] = field(default_factory=dict)

    def setup(self, colors: Sequence[int] = GRADIENT) -> None:
        if not curses.has_colors():
            return
        curses.start_color()
        curses.use_default_colors()

        basic = curses.COLORS < 256
        n = len(colors)
        max_pairs = curses.COLOR_PAIRS - 1

        for i, color in enumerate(colors):
            pair_id = i + 1
            if pair_id > max_pairs:
                break
            fg = color
            if basic:
                fg = BASIC_GRADIENT[i * (len(BASIC_GRADIENT) - 1) // max(1, n - 1)]
            curses.init_pair(pair_id, fg, -1)
            attr = curses.color_pair(pair_id)
            if i >= n - BOLD_BINS:
                attr |= curses.A_BOLD
            self._attrs[i] = attr

    def attr(self, color_idx: int) -> int:
        return self._attrs.get(color_idx, curses.A_NORMAL)


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def drawable_area(stdscr: curses.window) -> tuple[int, int]:
    """(width, height) inside the one-cell border."""
    max_y, max_x = stdscr.getmaxyx()
    return max(0, max_x - 2), max(0, max_y - 2)


def draw(
    stdscr: curses.window,
    rows: list[list[tuple[str, int]]],
    cmap: ColorMap,
) -> None:
    """Border, title, then every non-blank cell of the fire.

    ``rows`` holds (glyph, colour-bin index) pairs, as from render_cells.
    """
    max_y, max_x = stdscr.getmaxyx()
    stdscr.erase()

    if max_y >= 2 and max_x >= 2:
        try:
            stdscr.box()
        except curses.error:
            pass
        title = TITLE[: max(0, max_x - 2)]
        if title:
            try:
                stdscr.addstr(0, (max_x - len(title)) // 2, title, curses.A_BOLD)
            except curses.error:
                pass

    # Local references (avoid attribute lookups in tight loop)
    _addstr = stdscr.addstr
    _attr = cmap.attr

    for y, row in enumerate(rows):
        for x, (glyph, color_idx) in enumerate(row):
            if glyph == " ":
                continue
            try:
                _addstr(y + 1, x + 1, glyph, _attr(color_idx))
            except curses.error:
                pass

    stdscr.refresh()


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def run(
    stdscr: curses.window,
    cmap: ColorMap,
    config: FireConfig = DEFAULT_CONFIG,
    rng: np.random.Generator | None = None,
    clock: Callable[[], float] = time.monotonic,
    stats: StatsLogger | None = None,
) -> int:
    """Draw, poll, update until quit. Returns the number of ticks simulated."""
    if rng is None:
        rng = np.random.default_rng()
    engine = HeatEngine(config)
    mapper = AppearanceMapper(config.glyph_bins, config.color_bins)
    tick = config.tick

    grid = HeatGrid(*drawable_area(stdscr))
    ticks = 0
    last_tick = clock()

    while True:
        # ── Fit the fire to the terminal ───────────────────────────
        width, height = drawable_area(stdscr)
        grid.reset(width, height)

        # ── Render ─────────────────────────────────────────────────
        draw(stdscr, render_cells(grid, mapper, rng), cmap)

        # ── Input (bounded by what is left of this tick) ───────────
        timeout = max(0.0, tick - (clock() - last_tick))
        stdscr.timeout(int(round(timeout * 1000)))
        try:
            key = stdscr.getch()
        except curses.error:
            key = -1

        if key in QUIT_KEYS:
            break
        elif key == curses.KEY_RESIZE:
            # Picked up by reset() on the next pass
            if stats is not None:
                new_w, new_h = drawable_area(stdscr)
                stats.log(ticks, grid, event=f"resize:{new_w}x{new_h}")

        # ── Simulate ───────────────────────────────────────────────
        if clock() - last_tick >= tick:
            grid = engine.update(grid, rng)
            last_tick = clock()
            ticks += 1
            if stats is not None and ticks % 10 == 0:
                stats.log(ticks, grid)

    return ticks


def main(stdscr: curses.window) -> int:
    curses.curs_set(0)
    stdscr.keypad(True)

    cmap = ColorMap()
    cmap.setup(DEFAULT_CONFIG.color_bins)

    stats = open_stats()
    try:
        return run(stdscr, cmap, DEFAULT_CONFIG, stats=stats)
    finally:
        if stats is not None:
            stats.close()


def cli() -> int:
    setup_logging(logging.INFO)
    logger.info("lighting the fire")
    try:
        ticks = curses.wrapper(main)
    except KeyboardInterrupt:
        return 0
    except (curses.error, OSError) as exc:
        logger.error("terminal session failed: %s", exc)
        return 1
    logger.info("fire out after %d ticks", ticks)
    return 0


if __name__ == "__main__":
    sys.exit(cli())
