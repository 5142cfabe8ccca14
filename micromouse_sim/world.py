from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple
import math

import numpy as np

from .geometry_utils import (
    GEOMETRY_EPS,
    point_in_rect,
    ray_segments_distance,
    segments_penetrate_box,
)
from .maze import Maze, Wall


DEFAULT_CELL_SIZE = 180.0


@dataclass(frozen=True)
class WallSegment:
    """One walled cell edge in world coordinates.

    Coordinates are defined with origin at the bottom-left of the maze:
    - x increases to the right (East)
    - y increases upward (North)
    """

    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def horizontal(self) -> bool:
        return self.y1 == self.y2

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x1, self.y1, self.x2, self.y2)


class World:
    """Static wall geometry of a maze; the only source of wall queries.

    Parameters
    ----------
    maze : Maze
        Parsed maze. Never mutated.
    cell_size : float
        Edge length of one cell in world units.
    """

    def __init__(self, maze: Maze, cell_size: float = DEFAULT_CELL_SIZE) -> None:
        if not cell_size > 0.0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.maze = maze
        self.cell_size = float(cell_size)
        self._segments = self._build_segments(maze, self.cell_size)
        self._segments.setflags(write=False)

    # ------------------------------------------------------------------
    # Segment construction
    # ------------------------------------------------------------------
    @staticmethod
    def _build_segments(maze: Maze, cell_size: float) -> np.ndarray:
        """One segment per walled boundary, keyed by grid line.

        Horizontal edges are keyed ("h", line_y, cell_x) and vertical edges
        ("v", line_x, cell_y), so a wall recorded by both neighbours is
        emitted once.
        """
        edges: Dict[Tuple[str, int, int], None] = {}
        for cy in range(maze.height):
            for cx in range(maze.width):
                walls = maze.walls_at(cx, cy)
                if walls & Wall.SOUTH:
                    edges[("h", cy, cx)] = None
                if walls & Wall.NORTH:
                    edges[("h", cy + 1, cx)] = None
                if walls & Wall.WEST:
                    edges[("v", cx, cy)] = None
                if walls & Wall.EAST:
                    edges[("v", cx + 1, cy)] = None

        rows: List[Tuple[float, float, float, float]] = []
        for kind, line, cell in edges:
            if kind == "h":
                y = line * cell_size
                rows.append((cell * cell_size, y, (cell + 1) * cell_size, y))
            else:
                x = line * cell_size
                rows.append((x, cell * cell_size, x, (cell + 1) * cell_size))
        return np.array(rows, dtype=float).reshape(-1, 4)

    @property
    def segments(self) -> List[WallSegment]:
        return [WallSegment(*map(float, row)) for row in self._segments]

    @property
    def segment_array(self) -> np.ndarray:
        """Read-only (N, 4) array of (x1, y1, x2, y2)."""
        return self._segments

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Return (xmin, ymin, xmax, ymax) of the maze in world units."""
        return (0.0, 0.0, self.maze.width * self.cell_size, self.maze.height * self.cell_size)

    def cell_of(self, x: float, y: float) -> Tuple[int, int]:
        """Cell containing world point (x, y)."""
        return int(math.floor(x / self.cell_size)), int(math.floor(y / self.cell_size))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def cast_ray(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        max_range: float,
    ) -> float:
        """Distance to the nearest wall along a ray, or ``max_range`` if none is closer.

        Raises
        ------
        ValueError
            If ``direction`` has zero length or ``max_range`` is negative.
        """
        ox, oy = float(origin[0]), float(origin[1])
        dx, dy = float(direction[0]), float(direction[1])
        norm = math.hypot(dx, dy)
        if not norm > 0.0 or not math.isfinite(norm):
            raise ValueError(f"Ray direction must be a non-zero finite vector, got ({dx}, {dy})")
        if not max_range >= 0.0:
            raise ValueError(f"max_range must be non-negative, got {max_range}")
        dx /= norm
        dy /= norm

        distances = ray_segments_distance(ox, oy, dx, dy, self._segments)
        if distances.size == 0:
            return float(max_range)
        return float(min(float(distances.min()), max_range))

    def intersects_box(
        self,
        center: Sequence[float],
        half_extent: Sequence[float],
        rotation: float,
    ) -> bool:
        """True if the oriented box penetrates any wall by more than GEOMETRY_EPS.

        ``half_extent`` is (half_length, half_width): along the heading given
        by ``rotation`` and across it.
        """
        hits = segments_penetrate_box(
            self._segments,
            float(center[0]),
            float(center[1]),
            float(half_extent[0]),
            float(half_extent[1]),
            float(rotation),
            GEOMETRY_EPS,
        )
        return bool(hits.any())

    def in_finish(self, x: float, y: float) -> bool:
        """True if world point (x, y) lies inside the finish region (inclusive)."""
        finish = self.maze.finish
        if finish is None:
            return False
        return point_in_rect(x, y, *finish.bounds(self.cell_size))
