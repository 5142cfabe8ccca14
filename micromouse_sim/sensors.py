from __future__ import annotations

from typing import Dict, Iterator, Sequence, Tuple

import numpy as np

from .geometry_utils import body_to_world, unit_vector
from .mouse import Pose, SensorConfig
from .world import World


Ray = Tuple[Tuple[float, float], Tuple[float, float], float]


class SensorArray:
    """Distance sensors resolved once into index-aligned arrays.

    Readings are returned in the configured sensor order; ``names`` maps an
    index back to the sensor's name.
    """

    def __init__(self, sensors: Sequence[SensorConfig]) -> None:
        self.configs: Tuple[SensorConfig, ...] = tuple(sensors)
        self.names: Tuple[str, ...] = tuple(s.name for s in self.configs)
        self.offsets = np.array(
            [(s.offset_x, s.offset_y) for s in self.configs], dtype=float
        ).reshape(-1, 2)
        self.angles = np.array([s.angle for s in self.configs], dtype=float)
        self.max_ranges = np.array([s.max_range for s in self.configs], dtype=float)
        for arr in (self.offsets, self.angles, self.max_ranges):
            arr.setflags(write=False)

    def __len__(self) -> int:
        return len(self.configs)

    def index(self, name: str) -> int:
        return self.names.index(name)

    # ------------------------------------------------------------------
    # Ray construction
    # ------------------------------------------------------------------
    def rays(self, pose: Pose) -> Iterator[Ray]:
        """World-space (origin, direction, max_range) for each sensor."""
        for i in range(len(self.configs)):
            bx, by = self.offsets[i]
            origin = body_to_world(float(bx), float(by), pose.x, pose.y, pose.heading)
            direction = unit_vector(pose.heading + float(self.angles[i]))
            yield origin, direction, float(self.max_ranges[i])

    # ------------------------------------------------------------------
    # Readings
    # ------------------------------------------------------------------
    def read(self, world: World, pose: Pose) -> Tuple[float, ...]:
        """Distance to the nearest wall for every sensor, clipped to [0, max_range]."""
        readings = []
        for origin, direction, max_range in self.rays(pose):
            r = world.cast_ray(origin, direction, max_range)
            readings.append(max(0.0, min(max_range, r)))
        return tuple(readings)

    def read_named(self, world: World, pose: Pose) -> Dict[str, float]:
        return dict(zip(self.names, self.read(world, pose)))
