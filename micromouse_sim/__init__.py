"""
Top-level package for the micromouse maze simulator.

Components:
- maze: maze model, text-format parser and serializer
- world: wall segments, ray casting and crash detection
- mouse: mouse configuration and differential-drive integrator
- sensors: distance sensors resolved into index-aligned arrays
- controller: script boundary (snapshots, commands, bounded calls)
- simulation: per-tick orchestration and run status
- config: YAML loading for mice and runs
- env: Gymnasium-compatible environment
- geometry_utils: angle/frame helpers and vectorised geometry kernels
"""

from .errors import ConfigError, MazeParseError, ScriptError, SimulatorError
from .maze import Direction, FinishRegion, Maze, Wall, parse_maze
from .world import World, WallSegment
from .mouse import EncoderMode, Mouse, MouseConfig, MouseState, Pose, SensorConfig
from .sensors import SensorArray
from .controller import (
    Controller,
    FunctionController,
    MouseSnapshot,
    PowerCommand,
    load_script_controller,
)
from .simulation import RunResult, RunStatus, Simulation

__all__ = [
    "ConfigError",
    "MazeParseError",
    "ScriptError",
    "SimulatorError",
    "Direction",
    "FinishRegion",
    "Maze",
    "Wall",
    "parse_maze",
    "World",
    "WallSegment",
    "EncoderMode",
    "Mouse",
    "MouseConfig",
    "MouseState",
    "Pose",
    "SensorConfig",
    "SensorArray",
    "Controller",
    "FunctionController",
    "MouseSnapshot",
    "PowerCommand",
    "load_script_controller",
    "RunResult",
    "RunStatus",
    "Simulation",
]
