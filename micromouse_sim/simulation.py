"""
Tick orchestration for a single micromouse run.

Each tick is fully ordered:

1. sensor readings from the current pose,
2. read-only snapshot for the controller,
3. new wheel powers from the controller (bounded wait),
4. pose integration; a pose that penetrates a wall is rejected and the
   run ends as ``CRASHED``,
5. finish check on the mouse centre, ending the run as ``FINISHED``,
6. tick counter and simulated clock advance.

Crashed, finished and errored runs are terminal: further ``step()`` calls
return the status without moving the mouse.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Optional
import logging
import math

from .controller import Controller, MouseSnapshot, PowerCommand, ScriptRunner
from .errors import ConfigError, ScriptError
from .maze import Maze
from .mouse import EncoderMode, Mouse, MouseConfig, MouseState, Pose
from .sensors import SensorArray
from .world import DEFAULT_CELL_SIZE, World


logger = logging.getLogger(__name__)

DEFAULT_DT = 1.0 / 60.0
DEFAULT_SCRIPT_TIMEOUT = 1.0


class RunStatus(str, Enum):
    RUNNING = "running"
    CRASHED = "crashed"
    FINISHED = "finished"
    ERRORED = "errored"

    @property
    def terminal(self) -> bool:
        return self is not RunStatus.RUNNING


@dataclass(frozen=True)
class RunResult:
    """Outcome of :meth:`Simulation.run`."""

    status: RunStatus
    ticks: int
    elapsed_time: float
    error: Optional[ScriptError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "ticks": self.ticks,
            "elapsed_time": self.elapsed_time,
            "error": None if self.error is None else str(self.error),
            "error_tick": None if self.error is None else self.error.tick,
        }


class Simulation:
    """Owns the mouse state and advances it one tick at a time.

    Parameters
    ----------
    maze : Maze
        Parsed maze, shared read-only.
    mouse_config : MouseConfig
        Validated mouse parameters.
    controller : Controller, optional
        Control script. Without one, drive the run with :meth:`step_with`.
    dt : float
        Tick length in seconds.
    cell_size : float
        Cell edge length in world units.
    script_timeout : float or None
        Bound on each controller call in seconds; ``None`` waits forever.
    encoder_mode : EncoderMode
        Net signed ticks (default) or magnitude-only ticks.
    """

    def __init__(
        self,
        maze: Maze,
        mouse_config: MouseConfig,
        controller: Optional[Controller] = None,
        dt: float = DEFAULT_DT,
        cell_size: float = DEFAULT_CELL_SIZE,
        script_timeout: Optional[float] = DEFAULT_SCRIPT_TIMEOUT,
        encoder_mode: EncoderMode = EncoderMode.NET,
    ) -> None:
        if not (math.isfinite(dt) and dt > 0.0):
            raise ConfigError("dt", f"must be a positive number of seconds, got {dt!r}")
        if not (math.isfinite(cell_size) and cell_size > 0.0):
            raise ConfigError("cell_size", f"must be positive, got {cell_size!r}")
        if script_timeout is not None and not script_timeout > 0.0:
            raise ConfigError("script_timeout", f"must be positive or None, got {script_timeout!r}")

        self.maze = maze
        self.dt = float(dt)
        self.world = World(maze, cell_size)
        self.sensors = SensorArray(mouse_config.sensors)
        self.mouse = Mouse(mouse_config, encoder_mode)

        x, y, heading = maze.start_pose(self.world.cell_size)
        self.mouse.reset(x, y, heading)
        if self._penetrates(self.mouse.state.pose):
            raise ConfigError(
                "mouse",
                f"a {mouse_config.length:g}x{mouse_config.width:g} mouse does not fit "
                f"in start cell {maze.start} of a {self.world.cell_size:g} unit maze",
            )

        self._runner = ScriptRunner(controller, script_timeout) if controller is not None else None
        self._status = RunStatus.RUNNING
        self._error: Optional[ScriptError] = None
        self._cancelled = False

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def status(self) -> RunStatus:
        return self._status

    @property
    def error(self) -> Optional[ScriptError]:
        return self._error

    @property
    def state(self) -> MouseState:
        return self.mouse.get_state()

    @property
    def pose(self) -> Pose:
        return self.mouse.state.pose

    @property
    def config(self) -> MouseConfig:
        return self.mouse.config

    def readings(self) -> Dict[str, float]:
        """Current distance per sensor name. Allowed in any status."""
        return self.sensors.read_named(self.world, self.mouse.state.pose)

    def snapshot(self) -> MouseSnapshot:
        s = self.mouse.state
        c = self.mouse.config
        return MouseSnapshot(
            tick=s.tick,
            elapsed_time=s.elapsed_time,
            delta_time=self.dt,
            width=c.width,
            length=c.length,
            mass=c.mass,
            max_speed=c.max_speed,
            wheel_base=c.wheel_base,
            wheel_radius=c.wheel_radius,
            wheel_friction=c.wheel_friction,
            encoder_resolution=c.encoder_resolution,
            crashed=s.crashed,
            finished=s.finished,
            sensors=MappingProxyType(self.readings()),
            left_encoder=s.left_encoder,
            right_encoder=s.right_encoder,
            left_power=s.left_power,
            right_power=s.right_power,
        )

    def distance_to_finish(self) -> float:
        """Straight-line distance from the mouse centre to the finish region centre."""
        finish = self.maze.finish
        if finish is None:
            return math.inf
        xmin, ymin, xmax, ymax = finish.bounds(self.world.cell_size)
        p = self.mouse.state.pose
        return math.hypot(0.5 * (xmin + xmax) - p.x, 0.5 * (ymin + ymax) - p.y)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def step(self) -> RunStatus:
        """Run one tick, asking the controller for wheel powers."""
        if self._status.terminal:
            return self._status
        if self._runner is None:
            raise RuntimeError("Simulation has no controller; use step_with()")

        snapshot = self.snapshot()
        try:
            answer = self._runner.request(snapshot)
            command = self._current_command()
            if answer is not None:
                command = PowerCommand.coerce(answer, command)
        except ScriptError as exc:
            return self._fail(exc)
        return self._advance(command)

    def step_with(self, command: Any) -> RunStatus:
        """Run one tick with an externally supplied command."""
        if self._status.terminal:
            return self._status
        try:
            cmd = PowerCommand.coerce(command, self._current_command())
        except ScriptError as exc:
            return self._fail(exc)
        return self._advance(cmd)

    def run(
        self,
        max_ticks: Optional[int] = None,
        max_time: Optional[float] = None,
    ) -> RunResult:
        """Step until a terminal status, a limit, or :meth:`cancel`."""
        self._cancelled = False
        ticks_run = 0
        logger.info(
            "Run started at %s facing %s",
            self.maze.start,
            self.maze.start_direction.name,
        )
        while not self._status.terminal and not self._cancelled:
            if max_ticks is not None and ticks_run >= max_ticks:
                logger.info("Tick limit %d reached", max_ticks)
                break
            if max_time is not None and self.mouse.state.elapsed_time >= max_time:
                logger.info("Time limit %.3fs reached", max_time)
                break
            self.step()
            ticks_run += 1
        return self.result()

    def cancel(self) -> None:
        """Stop :meth:`run` before the next tick begins."""
        self._cancelled = True

    def result(self) -> RunResult:
        s = self.mouse.state
        return RunResult(
            status=self._status,
            ticks=s.tick,
            elapsed_time=s.elapsed_time,
            error=self._error,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        if self._runner is not None:
            self._runner.close()

    def __enter__(self) -> "Simulation":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _current_command(self) -> PowerCommand:
        s = self.mouse.state
        return PowerCommand(s.left_power, s.right_power)

    def _penetrates(self, pose: Pose) -> bool:
        return self.world.intersects_box(
            (pose.x, pose.y), self.mouse.config.half_extent, pose.heading
        )

    def _sweep_penetrates(self, start: Pose, end: Pose) -> bool:
        """Check ``end`` and, for long moves, evenly spaced poses on the way.

        A body that travels further than its smallest dimension in one tick
        could otherwise jump a wall. Rotation counts by the arc its corners
        sweep.
        """
        half_length, half_width = self.mouse.config.half_extent
        travel = max(
            math.hypot(end.x - start.x, end.y - start.y),
            abs(end.heading - start.heading) * math.hypot(half_length, half_width),
        )
        steps = max(1, math.ceil(travel / (2.0 * min(half_length, half_width))))
        for i in range(1, steps):
            t = i / steps
            pose = Pose(
                start.x + (end.x - start.x) * t,
                start.y + (end.y - start.y) * t,
                start.heading + (end.heading - start.heading) * t,
            )
            if self._penetrates(pose):
                return True
        return self._penetrates(end)

    def _advance(self, command: PowerCommand) -> RunStatus:
        self.mouse.set_power(command.left, command.right)
        proposed = self.mouse.propose(self.dt, self.maze.friction)

        if self._sweep_penetrates(self.mouse.state.pose, proposed.pose):
            self.mouse.state.crashed = True
            self._status = RunStatus.CRASHED
            p = self.mouse.state.pose
            logger.info(
                "Crashed at tick %d near (%.1f, %.1f)", self.mouse.state.tick, p.x, p.y
            )
            return self._status

        proposed.tick += 1
        proposed.elapsed_time = proposed.tick * self.dt
        self.mouse.state = proposed

        p = proposed.pose
        if self.world.in_finish(p.x, p.y):
            proposed.finished = True
            self._status = RunStatus.FINISHED
            logger.info(
                "Finished at tick %d after %.3fs", proposed.tick, proposed.elapsed_time
            )
        return self._status

    def _fail(self, exc: ScriptError) -> RunStatus:
        self._error = exc.at_tick(self.mouse.state.tick)
        self._status = RunStatus.ERRORED
        logger.error("%s", self._error)
        return self._status
