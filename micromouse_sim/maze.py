"""
Maze model and text-format parser.

A maze file is a list of ``KEY:ARGS`` directives::

    # comment
    SP:0,0          start cell
    SD:U            start direction (R, L, U, D)
    FI:7,7;2        finish region origin cell and size (or ``w,h``)
    FR:0.9          floor friction
    .R0:0-16        horizontal walls on grid line y=0 from x=0 to x=16
    .C3:2-5,7-8     vertical walls on grid line x=3

Wall spans use grid-line (corner) coordinates, so ``.R0:0-16`` walls off
the bottom of cells 0..15. A later ``.R<n>``/``.C<n>`` line for the same
``n`` replaces the earlier one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from .errors import MazeParseError


logger = logging.getLogger(__name__)

DEFAULT_FRICTION = 1.0

Span = Tuple[int, int]


class Wall(IntFlag):
    """Wall bits of a single cell."""

    NONE = 0
    NORTH = 1
    EAST = 2
    SOUTH = 4
    WEST = 8


class Direction(Enum):
    """Cardinal start direction, keyed by its maze-file code."""

    RIGHT = "R"
    UP = "U"
    LEFT = "L"
    DOWN = "D"

    @property
    def code(self) -> str:
        return self.value

    @property
    def heading(self) -> float:
        """Heading in radians, CCW from +x."""
        return _HEADINGS[self]

    @classmethod
    def from_code(cls, code: str) -> "Direction":
        return cls(code.strip().upper())


_HEADINGS = {
    Direction.RIGHT: 0.0,
    Direction.UP: math.pi / 2.0,
    Direction.LEFT: math.pi,
    Direction.DOWN: -math.pi / 2.0,
}


@dataclass(frozen=True)
class FinishRegion:
    """Rectangular block of cells the mouse has to reach."""

    x: int
    y: int
    width: int = 1
    height: int = 1

    def contains_cell(self, cx: int, cy: int) -> bool:
        return self.x <= cx < self.x + self.width and self.y <= cy < self.y + self.height

    def bounds(self, cell_size: float) -> Tuple[float, float, float, float]:
        """Return (xmin, ymin, xmax, ymax) in world units."""
        return (
            self.x * cell_size,
            self.y * cell_size,
            (self.x + self.width) * cell_size,
            (self.y + self.height) * cell_size,
        )


@dataclass(frozen=True, eq=False)
class Maze:
    """Immutable grid of walled cells plus start pose and finish region.

    Attributes
    ----------
    masks : np.ndarray
        ``uint8`` array of shape (height, width), indexed ``[cy, cx]``, each
        entry a combination of :class:`Wall` bits. Read-only.
    start : tuple[int, int]
        Start cell (cx, cy).
    start_direction : Direction
        Facing at the start.
    finish : FinishRegion or None
        Finish region in cells; ``None`` means the run never finishes.
    friction : float
        Friction coefficient of the maze floor.
    """

    masks: np.ndarray
    start: Tuple[int, int] = (0, 0)
    start_direction: Direction = Direction.RIGHT
    finish: Optional[FinishRegion] = None
    friction: float = DEFAULT_FRICTION

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def from_masks(
        cls,
        masks: Sequence[Sequence[int]],
        start: Tuple[int, int] = (0, 0),
        start_direction: Direction = Direction.RIGHT,
        finish: Optional[FinishRegion] = None,
        friction: float = DEFAULT_FRICTION,
    ) -> "Maze":
        """Build a maze from per-cell masks (rows indexed by y).

        A wall marked on either side of a boundary is copied to the other
        side, so both neighbours always agree.
        """
        grid = np.array(masks, dtype=np.uint8)
        if grid.ndim != 2 or grid.size == 0:
            raise ValueError("masks must be a non-empty 2D grid")
        grid = _symmetrize(grid)
        grid.setflags(write=False)
        return cls(
            masks=grid,
            start=start,
            start_direction=start_direction,
            finish=finish,
            friction=friction,
        )

    @classmethod
    def from_text(cls, text: str) -> "Maze":
        return parse_maze(text)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return int(self.masks.shape[1])

    @property
    def height(self) -> int:
        return int(self.masks.shape[0])

    def in_bounds(self, cx: int, cy: int) -> bool:
        return 0 <= cx < self.width and 0 <= cy < self.height

    def walls_at(self, cx: int, cy: int) -> Wall:
        return Wall(int(self.masks[cy, cx]))

    def has_wall(self, cx: int, cy: int, side: Wall) -> bool:
        return bool(self.walls_at(cx, cy) & side)

    def start_pose(self, cell_size: float) -> Tuple[float, float, float]:
        """Centre of the start cell and the start heading."""
        cx, cy = self.start
        return (
            (cx + 0.5) * cell_size,
            (cy + 0.5) * cell_size,
            self.start_direction.heading,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_text(self) -> str:
        """Serialize to the maze text format."""
        lines = [
            f"SP:{self.start[0]},{self.start[1]}",
            f"SD:{self.start_direction.code}",
        ]
        if self.finish is not None:
            f = self.finish
            lines.append(f"FI:{f.x},{f.y};{f.width},{f.height}")
        lines.append(f"FR:{self.friction!r}")

        # Horizontal grid lines: line y=n is the south side of row n,
        # or the north side of the top row when n == height.
        for n in range(self.height + 1):
            if n < self.height:
                walled = [bool(self.masks[n, cx] & Wall.SOUTH) for cx in range(self.width)]
            else:
                walled = [bool(self.masks[n - 1, cx] & Wall.NORTH) for cx in range(self.width)]
            spans = _runs(walled)
            if spans:
                lines.append(f".R{n}:" + ",".join(f"{a}-{b}" for a, b in spans))
        for n in range(self.width + 1):
            if n < self.width:
                walled = [bool(self.masks[cy, n] & Wall.WEST) for cy in range(self.height)]
            else:
                walled = [bool(self.masks[cy, n - 1] & Wall.EAST) for cy in range(self.height)]
            spans = _runs(walled)
            if spans:
                lines.append(f".C{n}:" + ",".join(f"{a}-{b}" for a, b in spans))
        return "\n".join(lines) + "\n"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Maze):
            return NotImplemented
        return (
            np.array_equal(self.masks, other.masks)
            and self.start == other.start
            and self.start_direction == other.start_direction
            and self.finish == other.finish
            and self.friction == other.friction
        )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


@dataclass
class _Directives:
    start: Tuple[int, int] = (0, 0)
    start_line: int = 0
    start_direction: Direction = Direction.RIGHT
    finish: Optional[FinishRegion] = None
    finish_line: int = 0
    friction: float = DEFAULT_FRICTION
    rows: Dict[int, List[Span]] = field(default_factory=dict)
    cols: Dict[int, List[Span]] = field(default_factory=dict)


def parse_maze(text: str) -> Maze:
    """Parse maze source text into a :class:`Maze`.

    Raises
    ------
    MazeParseError
        On malformed numbers, bad directions or coordinates outside the grid.
    """
    d = _Directives()
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if line.startswith("#") or ":" not in line:
            continue
        key, arg = line.split(":", 1)
        key = key.strip().upper()
        arg = arg.strip()

        if key == "SP":
            x, y = _parse_pair(arg, lineno, "starting point")
            d.start = (x, y)
            d.start_line = lineno
        elif key == "SD":
            try:
                d.start_direction = Direction.from_code(arg)
            except ValueError:
                raise MazeParseError(
                    lineno, f"Invalid starting direction '{arg}', expected one of R, L, U, D"
                ) from None
        elif key == "FI":
            d.finish = _parse_finish(arg, lineno)
            d.finish_line = lineno
        elif key == "FR":
            d.friction = _parse_friction(arg, lineno)
        elif key.startswith(".R"):
            n = _parse_int(key[2:], lineno, "row number")
            d.rows[n] = _parse_spans(arg, lineno)
        elif key.startswith(".C"):
            n = _parse_int(key[2:], lineno, "column number")
            d.cols[n] = _parse_spans(arg, lineno)
        else:
            logger.warning("Line %d: unknown directive '%s', skipped", lineno, key)

    return _build(d)


def _build(d: _Directives) -> Maze:
    width = 0
    height = 0
    for n, spans in d.rows.items():
        height = max(height, n)
        for _, b in spans:
            width = max(width, b)
    for n, spans in d.cols.items():
        width = max(width, n)
        for _, b in spans:
            height = max(height, b)

    if width == 0 or height == 0:
        # No usable wall geometry: size the grid from the referenced cells.
        width = max(width, d.start[0] + 1)
        height = max(height, d.start[1] + 1)
        if d.finish is not None:
            width = max(width, d.finish.x + d.finish.width)
            height = max(height, d.finish.y + d.finish.height)

    sx, sy = d.start
    if not (sx < width and sy < height):
        raise MazeParseError(
            d.start_line,
            f"Starting point ({sx},{sy}) is outside the {width}x{height} maze",
        )
    f = d.finish
    if f is not None and (f.x + f.width > width or f.y + f.height > height):
        raise MazeParseError(
            d.finish_line,
            f"Finish region {f.width}x{f.height} at ({f.x},{f.y}) is outside the {width}x{height} maze",
        )

    masks = np.zeros((height, width), dtype=np.uint8)
    for n, spans in d.rows.items():
        for a, b in spans:
            for cx in range(a, b):
                if n < height:
                    masks[n, cx] |= Wall.SOUTH
                if n > 0:
                    masks[n - 1, cx] |= Wall.NORTH
    for n, spans in d.cols.items():
        for a, b in spans:
            for cy in range(a, b):
                if n < width:
                    masks[cy, n] |= Wall.WEST
                if n > 0:
                    masks[cy, n - 1] |= Wall.EAST
    masks.setflags(write=False)

    return Maze(
        masks=masks,
        start=d.start,
        start_direction=d.start_direction,
        finish=d.finish,
        friction=d.friction,
    )


def _parse_int(s: str, lineno: int, what: str) -> int:
    s = s.strip()
    try:
        value = int(s)
    except ValueError:
        raise MazeParseError(lineno, f"Not a valid {what}: '{s}'") from None
    if value < 0:
        raise MazeParseError(lineno, f"The {what} must not be negative: {value}")
    return value


def _parse_pair(arg: str, lineno: int, what: str) -> Tuple[int, int]:
    if "," not in arg:
        raise MazeParseError(lineno, f"Could not parse {what}, expected 'x,y'")
    left, right = arg.split(",", 1)
    return (
        _parse_int(left, lineno, f"X value of {what}"),
        _parse_int(right, lineno, f"Y value of {what}"),
    )


def _parse_finish(arg: str, lineno: int) -> FinishRegion:
    if ";" not in arg:
        raise MazeParseError(lineno, "Could not parse finish, expected 'x,y;size' or 'x,y;w,h'")
    origin, size = arg.split(";", 1)
    x, y = _parse_pair(origin, lineno, "finish origin")
    if "," in size:
        w, h = _parse_pair(size, lineno, "finish size")
    else:
        w = h = _parse_int(size, lineno, "finish size")
    if w < 1 or h < 1:
        raise MazeParseError(lineno, "Finish size must be at least one cell")
    return FinishRegion(x=x, y=y, width=w, height=h)


def _parse_friction(arg: str, lineno: int) -> float:
    try:
        value = float(arg)
    except ValueError:
        raise MazeParseError(lineno, f"Could not parse friction: '{arg}'") from None
    if not math.isfinite(value) or value < 0.0:
        raise MazeParseError(lineno, f"Friction must be a finite, non-negative number: {arg}")
    return value


def _parse_spans(arg: str, lineno: int) -> List[Span]:
    spans: List[Span] = []
    for item in arg.split(","):
        item = item.strip()
        if not item:
            continue
        if "-" not in item:
            raise MazeParseError(lineno, f"Wall span '{item}' is not of the form 'start-end'")
        left, right = item.split("-", 1)
        a = _parse_int(left, lineno, "starting point of the wall")
        b = _parse_int(right, lineno, "end point of the wall")
        if a == b:
            raise MazeParseError(lineno, f"Wall span '{item}' has zero length")
        spans.append((min(a, b), max(a, b)))
    return spans


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _runs(flags: Iterable[bool]) -> List[Span]:
    """Collapse a boolean sequence into half-open (start, end) runs of True."""
    spans: List[Span] = []
    start: Optional[int] = None
    i = -1
    for i, flag in enumerate(flags):
        if flag and start is None:
            start = i
        elif not flag and start is not None:
            spans.append((start, i))
            start = None
    if start is not None:
        spans.append((start, i + 1))
    return spans


def _symmetrize(grid: np.ndarray) -> np.ndarray:
    """Union wall bits across every shared cell boundary."""
    g = grid.copy()
    north = (g[:-1, :] & Wall.NORTH) != 0
    south = (g[1:, :] & Wall.SOUTH) != 0
    horiz = north | south
    g[:-1, :][horiz] |= Wall.NORTH
    g[1:, :][horiz] |= Wall.SOUTH

    east = (g[:, :-1] & Wall.EAST) != 0
    west = (g[:, 1:] & Wall.WEST) != 0
    vert = east | west
    g[:, :-1][vert] |= Wall.EAST
    g[:, 1:][vert] |= Wall.WEST
    return g
