from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Tuple
import math

from .errors import ConfigError
from .geometry_utils import clamp, rect_corners, wrap_angle


@dataclass(frozen=True)
class SensorConfig:
    """A distance sensor mounted on the mouse.

    Attributes
    ----------
    name : str
        Key under which readings are reported to the controller.
    offset_x : float
        Mounting position forward of the mouse centre.
    offset_y : float
        Mounting position to the left of the mouse centre.
    angle : float
        Mounting angle relative to the heading (radians, CCW).
    max_range : float
        Readings are clamped to this distance.
    """

    name: str
    offset_x: float = 0.0
    offset_y: float = 0.0
    angle: float = 0.0
    max_range: float = 1000.0

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigError("sensors", "sensor name must not be empty")
        for attr in ("offset_x", "offset_y", "angle"):
            if not math.isfinite(getattr(self, attr)):
                raise ConfigError(f"sensors.{self.name}.{attr}", "must be a finite number")
        if not (self.max_range > 0.0 and math.isfinite(self.max_range)):
            raise ConfigError(f"sensors.{self.name}.max_range", "must be positive and finite")


@dataclass(frozen=True)
class MouseConfig:
    """Physical parameters of the mouse. Validated on construction."""

    width: float
    length: float
    mass: float
    max_speed: float
    wheel_base: float
    wheel_radius: float
    encoder_resolution: int
    wheel_friction: float
    sensors: Tuple[SensorConfig, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sensors", tuple(self.sensors))
        for name in ("width", "length", "mass", "max_speed", "wheel_base", "wheel_radius"):
            value = getattr(self, name)
            if not (isinstance(value, (int, float)) and math.isfinite(value) and value > 0.0):
                raise ConfigError(name, f"must be a positive number, got {value!r}")
        if isinstance(self.encoder_resolution, bool) or not isinstance(self.encoder_resolution, int):
            raise ConfigError("encoder_resolution", "must be an integer")
        if self.encoder_resolution < 1:
            raise ConfigError("encoder_resolution", f"must be at least 1, got {self.encoder_resolution}")
        if not (math.isfinite(self.wheel_friction) and self.wheel_friction >= 0.0):
            raise ConfigError("wheel_friction", f"must be non-negative, got {self.wheel_friction!r}")
        if not self.sensors:
            raise ConfigError("sensors", "at least one sensor is required")
        names = [s.name for s in self.sensors]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigError("sensors", f"duplicate sensor names: {', '.join(duplicates)}")

    @property
    def half_extent(self) -> Tuple[float, float]:
        """(half_length, half_width) of the body rectangle."""
        return self.length / 2.0, self.width / 2.0

    @property
    def wheel_circumference(self) -> float:
        return 2.0 * math.pi * self.wheel_radius


class EncoderMode(str, Enum):
    """How wheel encoders count reverse rotation."""

    NET = "net"
    MAGNITUDE = "magnitude"


@dataclass(frozen=True)
class Pose:
    """Mouse pose in world coordinates. Heading is CCW from +x, unwrapped."""

    x: float
    y: float
    heading: float


@dataclass
class MouseState:
    """Mutable simulation state of the mouse.

    Attributes
    ----------
    pose : Pose
        Current pose.
    left_distance, right_distance : float
        Accumulated wheel travel used for the encoder counts.
    left_encoder, right_encoder : int
        Encoder ticks.
    left_power, right_power : float
        Commanded power in [-1, 1].
    crashed, finished : bool
        Terminal flags.
    elapsed_time : float
        Simulated seconds.
    tick : int
        Completed ticks.
    """

    pose: Pose
    left_distance: float = 0.0
    right_distance: float = 0.0
    left_encoder: int = 0
    right_encoder: int = 0
    left_power: float = 0.0
    right_power: float = 0.0
    crashed: bool = False
    finished: bool = False
    elapsed_time: float = 0.0
    tick: int = 0

    def copy(self) -> "MouseState":
        return replace(self)


# ---------------------------------------------------------------------------
# Integrator
# ---------------------------------------------------------------------------


def traction(wheel_friction: float, maze_friction: float) -> float:
    """Fraction of commanded wheel speed that reaches the floor."""
    return clamp(wheel_friction * maze_friction, 0.0, 1.0)


def wheel_speeds(
    left_power: float,
    right_power: float,
    config: MouseConfig,
    maze_friction: float,
) -> Tuple[float, float]:
    """Linear ground speed of each wheel."""
    k = config.max_speed * traction(config.wheel_friction, maze_friction)
    return clamp(left_power, -1.0, 1.0) * k, clamp(right_power, -1.0, 1.0) * k


def encoder_ticks(distance: float, config: MouseConfig) -> int:
    return int(round(distance / config.wheel_circumference * config.encoder_resolution))


def integrate(
    state: MouseState,
    left_power: float,
    right_power: float,
    config: MouseConfig,
    maze_friction: float,
    dt: float,
    encoder_mode: EncoderMode = EncoderMode.NET,
) -> MouseState:
    """Advance the mouse by one Euler step of ``dt`` seconds.

    Returns a new state; ``state`` is not modified. Crash checks, time and
    tick bookkeeping are left to the caller.
    """
    v_left, v_right = wheel_speeds(left_power, right_power, config, maze_friction)
    v = 0.5 * (v_left + v_right)
    omega = (v_right - v_left) / config.wheel_base

    pose = state.pose
    x = pose.x + v * math.cos(pose.heading) * dt
    y = pose.y + v * math.sin(pose.heading) * dt
    heading = pose.heading + omega * dt

    d_left = v_left * dt
    d_right = v_right * dt
    if encoder_mode is EncoderMode.MAGNITUDE:
        d_left = abs(d_left)
        d_right = abs(d_right)
    left_distance = state.left_distance + d_left
    right_distance = state.right_distance + d_right

    return replace(
        state,
        pose=Pose(x=x, y=y, heading=heading),
        left_distance=left_distance,
        right_distance=right_distance,
        left_encoder=encoder_ticks(left_distance, config),
        right_encoder=encoder_ticks(right_distance, config),
        left_power=clamp(left_power, -1.0, 1.0),
        right_power=clamp(right_power, -1.0, 1.0),
    )


class Mouse:
    """Differential-drive micromouse driven by left/right wheel power."""

    def __init__(
        self,
        config: MouseConfig,
        encoder_mode: EncoderMode = EncoderMode.NET,
    ) -> None:
        self.config = config
        self.encoder_mode = EncoderMode(encoder_mode)
        self.state = MouseState(pose=Pose(0.0, 0.0, 0.0))

    # ------------------------------------------------------------------
    # State manipulation
    # ------------------------------------------------------------------
    def reset(self, x: float, y: float, heading: float = 0.0) -> None:
        """Place the mouse at rest with zeroed encoders."""
        self.state = MouseState(pose=Pose(x=x, y=y, heading=heading))

    def get_state(self) -> MouseState:
        """Return a copy of current state."""
        return self.state.copy()

    def set_power(self, left: float, right: float) -> None:
        self.state.left_power = clamp(left, -1.0, 1.0)
        self.state.right_power = clamp(right, -1.0, 1.0)

    # ------------------------------------------------------------------
    # Dynamics integration
    # ------------------------------------------------------------------
    def propose(self, dt: float, maze_friction: float) -> MouseState:
        """Next state under the current power, without committing it."""
        return integrate(
            self.state,
            self.state.left_power,
            self.state.right_power,
            self.config,
            maze_friction,
            dt,
            self.encoder_mode,
        )

    def step(self, dt: float, maze_friction: float) -> None:
        self.state = self.propose(dt, maze_friction)

    # ------------------------------------------------------------------
    # Utility
    # ------------------------------------------------------------------
    def corners(self) -> Tuple[Tuple[float, float], ...]:
        p = self.state.pose
        half_length, half_width = self.config.half_extent
        return rect_corners(p.x, p.y, half_length, half_width, p.heading)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize current mouse state to a dict for logging/telemetry."""
        s = self.state
        return {
            "x": s.pose.x,
            "y": s.pose.y,
            "heading": s.pose.heading,
            "heading_deg": math.degrees(wrap_angle(s.pose.heading)),
            "left_encoder": s.left_encoder,
            "right_encoder": s.right_encoder,
            "left_power": s.left_power,
            "right_power": s.right_power,
            "crashed": s.crashed,
            "finished": s.finished,
            "elapsed_time": s.elapsed_time,
            "tick": s.tick,
        }
