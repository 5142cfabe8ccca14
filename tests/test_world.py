from __future__ import annotations

import math

import pytest

from micromouse_sim.maze import Maze, Wall, parse_maze
from micromouse_sim.world import World


CELL = 180.0


def closed_cell() -> Maze:
    return parse_maze(".R0:0-1\n.R1:0-1\n.C0:0-1\n.C1:0-1\n")


def test_closed_cell_has_four_segments() -> None:
    world = World(closed_cell(), cell_size=CELL)
    assert world.segment_array.shape == (4, 4)
    assert world.bounds == (0.0, 0.0, CELL, CELL)


def test_shared_wall_emitted_once() -> None:
    maze = parse_maze(".R0:0-2\n.R1:0-2\n.C0:0-1\n.C1:0-1\n.C2:0-1\n")
    world = World(maze, cell_size=CELL)
    # Perimeter of a 2x1 grid is six edges, plus the shared middle wall.
    assert len(world.segments) == 7
    middle = [s for s in world.segments if not s.horizontal and s.x1 == CELL]
    assert len(middle) == 1
    assert middle[0].as_tuple() == (CELL, 0.0, CELL, CELL)


def test_one_sided_wall_is_a_single_segment() -> None:
    maze = Maze.from_masks([[int(Wall.EAST), 0]])
    segments = World(maze, cell_size=CELL).segments
    assert [s.as_tuple() for s in segments] == [(CELL, 0.0, CELL, CELL)]


def test_cast_ray_hits_simple_wall() -> None:
    world = World(closed_cell(), cell_size=CELL)
    assert math.isclose(world.cast_ray((90.0, 90.0), (1.0, 0.0), 1000.0), 90.0)
    assert math.isclose(world.cast_ray((30.0, 90.0), (0.0, 1.0), 1000.0), 90.0)
    assert math.isclose(world.cast_ray((30.0, 90.0), (-1.0, 0.0), 1000.0), 30.0)


def test_cast_ray_direction_need_not_be_unit() -> None:
    world = World(closed_cell(), cell_size=CELL)
    assert math.isclose(world.cast_ray((90.0, 90.0), (0.0, -7.5), 1000.0), 90.0)


def test_cast_ray_into_corner() -> None:
    world = World(closed_cell(), cell_size=CELL)
    distance = world.cast_ray((90.0, 90.0), (1.0, 1.0), 1000.0)
    assert math.isclose(distance, 90.0 * math.sqrt(2.0), rel_tol=1e-9)


def test_cast_ray_clamped_to_max_range() -> None:
    world = World(closed_cell(), cell_size=CELL)
    assert world.cast_ray((90.0, 90.0), (1.0, 0.0), 50.0) == 50.0
    assert world.cast_ray((90.0, 90.0), (1.0, 0.0), 0.0) == 0.0


def test_cast_ray_through_open_side_returns_max_range() -> None:
    # No wall on the east side.
    world = World(parse_maze(".R0:0-1\n.R1:0-1\n.C0:0-1\n"), cell_size=CELL)
    assert world.cast_ray((90.0, 90.0), (1.0, 0.0), 400.0) == 400.0


def test_cast_ray_ignores_walls_behind_origin() -> None:
    maze = parse_maze(".R0:0-3\n.R1:0-3\n.C0:0-1\n.C1:0-1\n.C3:0-1\n")
    world = World(maze, cell_size=CELL)
    # From the middle cell looking east: the wall at x=180 is behind.
    assert math.isclose(world.cast_ray((270.0, 90.0), (1.0, 0.0), 1000.0), 270.0)


def test_cast_ray_rejects_bad_arguments() -> None:
    world = World(closed_cell(), cell_size=CELL)
    with pytest.raises(ValueError):
        world.cast_ray((90.0, 90.0), (0.0, 0.0), 100.0)
    with pytest.raises(ValueError):
        world.cast_ray((90.0, 90.0), (1.0, 0.0), -1.0)


def test_box_inside_cell_does_not_collide() -> None:
    world = World(closed_cell(), cell_size=CELL)
    assert not world.intersects_box((90.0, 90.0), (40.0, 35.0), math.pi / 2)
    # Rotated 45 degrees: the half-diagonal (about 53.2) still fits.
    assert not world.intersects_box((90.0, 90.0), (40.0, 35.0), math.pi / 4)


def test_touching_a_wall_is_not_a_collision() -> None:
    world = World(closed_cell(), cell_size=CELL)
    # A box exactly as long as the cell touches the west and east walls.
    assert not world.intersects_box((90.0, 90.0), (90.0, 35.0), 0.0)
    assert not world.intersects_box((90.0, 90.0), (90.0, 35.0), math.pi / 2)


def test_penetrating_a_wall_is_a_collision() -> None:
    world = World(closed_cell(), cell_size=CELL)
    assert world.intersects_box((90.0 + 1e-6, 90.0), (90.0, 35.0), 0.0)
    assert world.intersects_box((90.0, 90.0 - 1e-6), (90.0, 35.0), math.pi / 2)


def test_box_corner_crossing_a_wall_collides() -> None:
    world = World(closed_cell(), cell_size=CELL)
    # Centre well inside, corner pokes past x=180 once rotated.
    assert not world.intersects_box((130.0, 90.0), (40.0, 35.0), 0.0)
    assert world.intersects_box((130.0, 90.0), (40.0, 35.0), math.pi / 4)


def test_in_finish_is_inclusive() -> None:
    maze = parse_maze(".R0:0-2\n.R2:0-2\n.C0:0-2\n.C2:0-2\nFI:1,1;1\n")
    world = World(maze, cell_size=CELL)
    assert world.in_finish(270.0, 270.0)
    assert world.in_finish(180.0, 180.0)
    assert not world.in_finish(179.0, 270.0)
    assert not World(closed_cell(), cell_size=CELL).in_finish(90.0, 90.0)


def test_cell_of() -> None:
    world = World(closed_cell(), cell_size=CELL)
    assert world.cell_of(90.0, 90.0) == (0, 0)
    assert world.cell_of(180.0, 359.0) == (1, 1)
