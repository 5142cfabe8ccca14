from __future__ import annotations

from typing import Optional


class SimulatorError(Exception):
    """Base class for errors caused by bad input to the simulator."""


class MazeParseError(SimulatorError, ValueError):
    """Maze text could not be parsed.

    Attributes
    ----------
    line : int
        1-based line number of the offending directive.
    """

    def __init__(self, line: int, message: str) -> None:
        self.line = line
        self.message = message
        super().__init__(f"Error in line {line}! {message}")


class ConfigError(SimulatorError, ValueError):
    """Invalid mouse or simulation configuration."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Invalid configuration for '{field}': {message}")


class ScriptError(SimulatorError):
    """The control script raised, timed out or returned malformed commands."""

    def __init__(self, message: str, tick: Optional[int] = None) -> None:
        self.message = message
        self.tick = tick
        if tick is None:
            super().__init__(message)
        else:
            super().__init__(f"Script error at tick {tick}: {message}")

    def at_tick(self, tick: int) -> "ScriptError":
        """Return a copy of this error annotated with the tick number."""
        err = ScriptError(self.message, tick)
        err.__cause__ = self.__cause__
        return err
