from __future__ import annotations

import math

from micromouse_sim.maze import parse_maze
from micromouse_sim.mouse import Pose, SensorConfig
from micromouse_sim.sensors import SensorArray
from micromouse_sim.world import World


def closed_cell_world() -> World:
    return World(parse_maze("SD:U\n.R0:0-1\n.R1:0-1\n.C0:0-1\n.C1:0-1\n"), cell_size=180.0)


def test_front_sensor_in_single_cell() -> None:
    world = closed_cell_world()
    sensors = SensorArray([SensorConfig("front", offset_x=40.0, angle=0.0, max_range=1000.0)])

    # Mouse 80 long centred in the cell facing up: sensor at y=130, wall at y=180.
    readings = sensors.read(world, Pose(90.0, 90.0, math.pi / 2))
    assert len(readings) == 1
    assert math.isclose(readings[0], 50.0, abs_tol=1e-9)


def test_side_sensor_uses_mount_offset_and_angle() -> None:
    world = closed_cell_world()
    sensors = SensorArray(
        [
            SensorConfig("left", offset_y=35.0, angle=math.pi / 2),
            SensorConfig("right", offset_y=-35.0, angle=-math.pi / 2),
        ]
    )
    readings = sensors.read_named(world, Pose(90.0, 90.0, math.pi / 2))
    # Facing up, the left sensor sits at x=55 and looks west.
    assert math.isclose(readings["left"], 55.0, abs_tol=1e-9)
    assert math.isclose(readings["right"], 55.0, abs_tol=1e-9)


def test_readings_clamped_to_max_range() -> None:
    world = closed_cell_world()
    sensors = SensorArray([SensorConfig("front", offset_x=40.0, max_range=30.0)])
    assert sensors.read(world, Pose(90.0, 90.0, 0.0)) == (30.0,)


def test_readings_keep_configured_order() -> None:
    world = closed_cell_world()
    sensors = SensorArray(
        [
            SensorConfig("b", angle=0.0),
            SensorConfig("a", angle=math.pi),
        ]
    )
    assert sensors.names == ("b", "a")
    assert sensors.index("a") == 1
    readings = sensors.read(world, Pose(60.0, 90.0, 0.0))
    assert math.isclose(readings[0], 120.0)
    assert math.isclose(readings[1], 60.0)


def test_rays_are_in_world_frame() -> None:
    sensors = SensorArray([SensorConfig("front", offset_x=10.0, angle=math.pi / 2)])
    ((ox, oy), (dx, dy), max_range) = next(sensors.rays(Pose(0.0, 0.0, math.pi)))
    assert math.isclose(ox, -10.0)
    assert math.isclose(oy, 0.0, abs_tol=1e-9)
    assert math.isclose(dx, 0.0, abs_tol=1e-9)
    assert math.isclose(dy, -1.0)
    assert max_range == 1000.0


def test_reading_shrinks_when_approaching_wall() -> None:
    world = closed_cell_world()
    sensors = SensorArray([SensorConfig("front", offset_x=40.0)])
    previous = math.inf
    for y in (60.0, 80.0, 100.0, 120.0, 139.0):
        reading = sensors.read(world, Pose(90.0, y, math.pi / 2))[0]
        assert reading < previous
        previous = reading
