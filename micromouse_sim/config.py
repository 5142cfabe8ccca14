"""
Configuration loading for mice and simulation runs.

Mouse files are YAML (JSON is accepted, being a subset)::

    width: 70
    length: 80
    mass: 0.1
    max_speed: 500
    wheel_base: 60
    wheel_radius: 15
    encoder_resolution: 360
    wheel_friction: 1.0
    sensors:
      front:
        offset: [40, 0]
        angle_deg: 0
        max_range: 900

Sensors may also be a list of mappings carrying a ``name`` key; the list
order is kept. In the mapping form, file order is kept.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
import math

import yaml

from .errors import ConfigError
from .maze import Maze, parse_maze
from .mouse import EncoderMode, MouseConfig, SensorConfig
from .simulation import DEFAULT_DT, DEFAULT_SCRIPT_TIMEOUT
from .world import DEFAULT_CELL_SIZE


DEFAULT_SENSOR_RANGE = 1000.0

_MOUSE_FIELDS = (
    "width",
    "length",
    "mass",
    "max_speed",
    "wheel_base",
    "wheel_radius",
    "wheel_friction",
)


def load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(path, "top level must be a mapping")
    return data


def load_maze(path: str) -> Maze:
    with open(path, "r", encoding="utf-8") as f:
        return parse_maze(f.read())


# ---------------------------------------------------------------------------
# Mouse
# ---------------------------------------------------------------------------


def _number(data: Mapping[str, Any], key: str, field: str, default: Optional[float] = None) -> float:
    if key not in data or data[key] is None:
        if default is None:
            raise ConfigError(field, "missing")
        return default
    return _as_float(data[key], field)


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(field, f"must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(field, f"must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigError(field, f"must be finite, got {value!r}")
    return number


def sensor_config_from_dict(name: str, data: Mapping[str, Any]) -> SensorConfig:
    field = f"sensors.{name}"
    if not isinstance(data, Mapping):
        raise ConfigError(field, "must be a mapping")
    offset = data.get("offset", [0.0, 0.0])
    if isinstance(offset, Mapping):
        offset = [offset.get("x", 0.0), offset.get("y", 0.0)]
    if not isinstance(offset, (list, tuple)) or len(offset) != 2:
        raise ConfigError(f"{field}.offset", "must be [x, y]")
    offset_x = _as_float(offset[0], f"{field}.offset")
    offset_y = _as_float(offset[1], f"{field}.offset")

    if "angle" in data and "angle_deg" not in data:
        angle = _number(data, "angle", f"{field}.angle")
    else:
        angle = math.radians(_number(data, "angle_deg", f"{field}.angle_deg", 0.0))

    return SensorConfig(
        name=str(name),
        offset_x=offset_x,
        offset_y=offset_y,
        angle=angle,
        max_range=_number(data, "max_range", f"{field}.max_range", DEFAULT_SENSOR_RANGE),
    )


def mouse_config_from_dict(data: Mapping[str, Any]) -> MouseConfig:
    """Build and validate a :class:`MouseConfig` from a parsed document.

    ``angle_deg`` is in degrees; a bare ``angle`` is taken as radians.
    """
    if not isinstance(data, Mapping):
        raise ConfigError("mouse", "must be a mapping")
    values = {name: _number(data, name, name) for name in _MOUSE_FIELDS}

    resolution = data.get("encoder_resolution")
    if resolution is None:
        raise ConfigError("encoder_resolution", "missing")
    if isinstance(resolution, bool) or not _as_float(resolution, "encoder_resolution").is_integer():
        raise ConfigError("encoder_resolution", f"must be an integer, got {resolution!r}")

    raw_sensors = data.get("sensors")
    sensors: List[SensorConfig] = []
    if isinstance(raw_sensors, Mapping):
        for name, entry in raw_sensors.items():
            sensors.append(sensor_config_from_dict(str(name), entry or {}))
    elif isinstance(raw_sensors, list):
        for i, entry in enumerate(raw_sensors):
            if not isinstance(entry, Mapping) or "name" not in entry:
                raise ConfigError(f"sensors[{i}]", "list entries need a 'name'")
            sensors.append(sensor_config_from_dict(str(entry["name"]), entry))
    elif raw_sensors is not None:
        raise ConfigError("sensors", "must be a mapping or a list")

    return MouseConfig(
        encoder_resolution=int(resolution),
        sensors=tuple(sensors),
        **values,
    )


def load_mouse_config(path: str) -> MouseConfig:
    data = load_yaml(path)
    # Accept either a bare mouse document or one nested under "mouse".
    if "mouse" in data and isinstance(data["mouse"], Mapping):
        data = data["mouse"]
    return mouse_config_from_dict(data)


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------


@dataclass
class SimConfig:
    dt: float = DEFAULT_DT
    cell_size: float = DEFAULT_CELL_SIZE
    script_timeout: Optional[float] = DEFAULT_SCRIPT_TIMEOUT
    max_ticks: Optional[int] = None
    max_time: Optional[float] = None
    encoder_mode: EncoderMode = EncoderMode.NET

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimConfig":
        cfg = cls()
        if "fps" in data and "dt" not in data:
            fps = _number(data, "fps", "sim.fps")
            if fps <= 0.0:
                raise ConfigError("sim.fps", "must be positive")
            cfg.dt = 1.0 / fps
        elif "dt" in data:
            cfg.dt = _number(data, "dt", "sim.dt")
        if cfg.dt <= 0.0:
            raise ConfigError("sim.dt", "must be positive")

        cfg.cell_size = _number(data, "cell_size", "sim.cell_size", DEFAULT_CELL_SIZE)
        if cfg.cell_size <= 0.0:
            raise ConfigError("sim.cell_size", "must be positive")

        if data.get("script_timeout", DEFAULT_SCRIPT_TIMEOUT) is None:
            cfg.script_timeout = None
        else:
            cfg.script_timeout = _number(data, "script_timeout", "sim.script_timeout", DEFAULT_SCRIPT_TIMEOUT)
            if cfg.script_timeout <= 0.0:
                raise ConfigError("sim.script_timeout", "must be positive")

        if data.get("max_ticks") is not None:
            ticks = _number(data, "max_ticks", "sim.max_ticks")
            if not ticks.is_integer() or ticks < 0:
                raise ConfigError("sim.max_ticks", f"must be a non-negative integer, got {data['max_ticks']!r}")
            cfg.max_ticks = int(ticks)
        if data.get("max_time") is not None:
            cfg.max_time = _number(data, "max_time", "sim.max_time")

        mode = data.get("encoder_mode", EncoderMode.NET.value)
        try:
            cfg.encoder_mode = mode if isinstance(mode, EncoderMode) else EncoderMode(str(mode).lower())
        except ValueError:
            raise ConfigError(
                "sim.encoder_mode", f"must be 'net' or 'magnitude', got {mode!r}"
            ) from None
        return cfg

    @classmethod
    def from_file(cls, path: str) -> "SimConfig":
        data = load_yaml(path)
        return cls.from_dict(data.get("sim", data))
