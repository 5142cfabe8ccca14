"""
Geometry utilities for the micromouse simulation.

Provides angle normalization, body/world frame transforms, and the
vectorised ray-segment and segment-box kernels used by the wall
geometry for sensor readings and crash detection.
"""

from __future__ import annotations

from typing import Tuple
import math

import numpy as np


# Shared tolerance (world units) for ray hits and box penetration. Contact
# within this distance is not a collision, and a ray grazing a segment end
# within it still counts as a hit.
GEOMETRY_EPS = 1e-9

# Below this |cross(d, e)| a ray is treated as parallel to a segment.
_PARALLEL_EPS = 1e-12


# ---------------------------------------------------------------------------
# Angle and coordinate helpers
# ---------------------------------------------------------------------------


def wrap_angle(theta: float) -> float:
    """Wrap angle to [-pi, pi) radians."""
    return (theta + math.pi) % (2.0 * math.pi) - math.pi


def clamp(value: float, vmin: float, vmax: float) -> float:
    """Clamp value to [vmin, vmax]."""
    return max(vmin, min(vmax, value))


def point_in_rect(
    px: float,
    py: float,
    xmin: float,
    ymin: float,
    xmax: float,
    ymax: float,
) -> bool:
    """Return True if point (px, py) is inside axis-aligned rectangle [xmin,ymin]-[xmax,ymax]."""
    return xmin <= px <= xmax and ymin <= py <= ymax


def body_to_world(
    bx: float,
    by: float,
    ox: float,
    oy: float,
    yaw: float,
) -> Tuple[float, float]:
    """Transform body frame (bx, by) to world with origin (ox, oy) and heading yaw."""
    c = math.cos(yaw)
    s = math.sin(yaw)
    return ox + c * bx - s * by, oy + s * bx + c * by


def unit_vector(angle: float) -> Tuple[float, float]:
    return math.cos(angle), math.sin(angle)


# ---------------------------------------------------------------------------
# Ray casting
# ---------------------------------------------------------------------------


def ray_segments_distance(
    ox: float,
    oy: float,
    dx: float,
    dy: float,
    segments: np.ndarray,
) -> np.ndarray:
    """
    Distance along a unit ray to each segment.

    Parameters
    ----------
    ox, oy : float
        Ray origin.
    dx, dy : float
        Unit ray direction.
    segments : np.ndarray
        (N, 4) array of (x1, y1, x2, y2).

    Returns
    -------
    np.ndarray
        (N,) distances, ``inf`` where the ray misses or runs parallel.
        Hits a hair behind the origin (within GEOMETRY_EPS) are reported as 0.
    """
    if segments.shape[0] == 0:
        return np.empty(0, dtype=float)
    x1 = segments[:, 0]
    y1 = segments[:, 1]
    ex = segments[:, 2] - x1
    ey = segments[:, 3] - y1

    # Solve o + t*d = p + s*e via 2D cross products.
    denom = dx * ey - dy * ex
    wx = x1 - ox
    wy = y1 - oy
    parallel = np.abs(denom) < _PARALLEL_EPS
    safe = np.where(parallel, 1.0, denom)
    t = (wx * ey - wy * ex) / safe
    s = (wx * dy - wy * dx) / safe

    # s is a fraction of the segment; scale the tolerance to world units.
    seg_len = np.hypot(ex, ey)
    s_eps = GEOMETRY_EPS / np.where(seg_len > 0.0, seg_len, 1.0)

    hit = (~parallel) & (t >= -GEOMETRY_EPS) & (s >= -s_eps) & (s <= 1.0 + s_eps)
    return np.where(hit, np.maximum(t, 0.0), np.inf)


# ---------------------------------------------------------------------------
# Oriented box vs. segments
# ---------------------------------------------------------------------------


def segments_penetrate_box(
    segments: np.ndarray,
    cx: float,
    cy: float,
    half_length: float,
    half_width: float,
    yaw: float,
    eps: float = GEOMETRY_EPS,
) -> np.ndarray:
    """
    Which segments penetrate an oriented rectangle.

    The rectangle is centred at (cx, cy), extends ``half_length`` along the
    heading ``yaw`` and ``half_width`` across it. Each segment is moved into
    the box frame and clipped (Liang-Barsky) against the box shrunk by
    ``eps`` on every side, so touching an edge is not penetration.

    Returns
    -------
    np.ndarray
        (N,) boolean mask.
    """
    if segments.shape[0] == 0:
        return np.zeros(0, dtype=bool)
    c = math.cos(yaw)
    s = math.sin(yaw)

    px = segments[:, 0] - cx
    py = segments[:, 1] - cy
    qx = segments[:, 2] - cx
    qy = segments[:, 3] - cy
    x0 = c * px + s * py
    y0 = -s * px + c * py
    x1 = c * qx + s * qy
    y1 = -s * qx + c * qy

    ax = half_length - eps
    ay = half_width - eps
    if ax <= 0.0 or ay <= 0.0:
        return np.zeros(segments.shape[0], dtype=bool)

    ddx = x1 - x0
    ddy = y1 - y0
    u0 = np.zeros_like(x0)
    u1 = np.ones_like(x0)
    inside = np.ones(x0.shape, dtype=bool)

    for p, q in (
        (-ddx, x0 + ax),
        (ddx, ax - x0),
        (-ddy, y0 + ay),
        (ddy, ay - y0),
    ):
        zero = p == 0.0
        # Parallel to this slab and outside it: no overlap.
        inside &= ~(zero & (q < 0.0))
        with np.errstate(divide="ignore", invalid="ignore"):
            r = np.where(zero, 0.0, q / np.where(zero, 1.0, p))
        entering = (~zero) & (p < 0.0)
        leaving = (~zero) & (p > 0.0)
        u0 = np.where(entering, np.maximum(u0, r), u0)
        u1 = np.where(leaving, np.minimum(u1, r), u1)

    return inside & (u0 <= u1)


def rect_corners(
    cx: float,
    cy: float,
    half_length: float,
    half_width: float,
    yaw: float,
) -> Tuple[Tuple[float, float], ...]:
    """Corners of an oriented rectangle: rear-right, front-right, front-left, rear-left."""
    return tuple(
        body_to_world(bx, by, cx, cy, yaw)
        for bx, by in (
            (-half_length, -half_width),
            (half_length, -half_width),
            (half_length, half_width),
            (-half_length, half_width),
        )
    )
