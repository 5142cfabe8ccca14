from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Tuple
import importlib.util
import logging
import math
import numbers
import os
import queue
import threading

from .errors import ScriptError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MouseSnapshot:
    """Read-only view of the mouse handed to the control script once per tick.

    There is no pose: a controller only knows what a real
    mouse could measure.
    """

    tick: int
    elapsed_time: float
    delta_time: float
    width: float
    length: float
    mass: float
    max_speed: float
    wheel_base: float
    wheel_radius: float
    wheel_friction: float
    encoder_resolution: int
    crashed: bool
    finished: bool
    sensors: Mapping[str, float]
    left_encoder: int
    right_encoder: int
    left_power: float
    right_power: float


@dataclass(frozen=True)
class PowerCommand:
    """Left/right wheel power, each in [-1, 1]."""

    left: float = 0.0
    right: float = 0.0

    @classmethod
    def coerce(cls, value: Any, previous: Optional["PowerCommand"] = None) -> "PowerCommand":
        """Turn a controller's return value into a command.

        Accepts a ``PowerCommand``, a ``(left, right)`` pair, or a mapping
        with ``left_power`` and/or ``right_power`` (a missing key keeps the
        previous value). Out-of-range values are clamped.

        Raises
        ------
        ScriptError
            On any other shape or a non-finite value.
        """
        previous = previous or cls()
        if isinstance(value, PowerCommand):
            left, right = value.left, value.right
        elif isinstance(value, Mapping):
            unknown = set(value) - {"left_power", "right_power"}
            if unknown:
                raise ScriptError(f"unexpected command fields: {', '.join(sorted(map(str, unknown)))}")
            left = value.get("left_power", previous.left)
            right = value.get("right_power", previous.right)
        elif isinstance(value, (str, bytes)):
            raise ScriptError(f"expected (left_power, right_power), got {type(value).__name__}")
        else:
            try:
                items = list(value)
            except TypeError:
                raise ScriptError(
                    f"expected (left_power, right_power), got {type(value).__name__}"
                ) from None
            if len(items) != 2:
                raise ScriptError(f"expected 2 power values, got {len(items)}")
            left, right = items
        return cls(left=_as_power(left, "left_power"), right=_as_power(right, "right_power"))

    def as_tuple(self) -> Tuple[float, float]:
        return (self.left, self.right)


def _as_power(value: Any, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ScriptError(f"{field} must be a number, got {type(value).__name__}")
    power = float(value)
    if not math.isfinite(power):
        raise ScriptError(f"{field} must be finite, got {power}")
    clamped = max(-1.0, min(1.0, power))
    if clamped != power:
        logger.debug("Clamped %s from %g to %g", field, power, clamped)
    return clamped


# ---------------------------------------------------------------------------
# Controllers
# ---------------------------------------------------------------------------


class Controller(ABC):
    """Interface between the simulation and user control code."""

    @abstractmethod
    def control(self, mouse: MouseSnapshot) -> Any:
        """Return new wheel powers, or None to keep the current ones."""

    def close(self) -> None:
        """Release resources held by the controller."""


class FunctionController(Controller):
    """Controller backed by a plain ``control(mouse)`` callable."""

    def __init__(self, fn: Callable[[MouseSnapshot], Any], name: str = "") -> None:
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "controller")

    def control(self, mouse: MouseSnapshot) -> Any:
        return self.fn(mouse)

    def __repr__(self) -> str:
        return f"FunctionController({self.name!r})"


def load_script_controller(path: str) -> FunctionController:
    """Load a Python control script that defines ``control(mouse)``.

    The script module is executed once; its globals persist across ticks,
    so scripts may keep their own state there.
    """
    if not os.path.isfile(path):
        raise ScriptError(f"control script not found: {path}")
    module_name = "micromouse_script_" + os.path.splitext(os.path.basename(path))[0]
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ScriptError(f"cannot load control script: {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except (Exception, SystemExit) as exc:
        raise ScriptError(f"control script {path} failed to load: {exc}") from exc
    fn = getattr(module, "control", None)
    if not callable(fn):
        raise ScriptError(f"control script {path} does not define control(mouse)")
    return FunctionController(fn, name=os.path.basename(path))


# ---------------------------------------------------------------------------
# Bounded calls into the controller
# ---------------------------------------------------------------------------


class ScriptRunner:
    """Calls a controller with a bounded wait.

    With a timeout, calls run on one daemon worker thread so a runaway script
    cannot stall the simulation; ``timeout=None`` calls inline.
    """

    def __init__(self, controller: Controller, timeout: Optional[float] = 1.0) -> None:
        if timeout is not None and not timeout > 0.0:
            raise ValueError(f"timeout must be positive or None, got {timeout}")
        self.controller = controller
        self.timeout = timeout
        self._jobs: Optional["queue.Queue[Any]"] = None
        self._thread: Optional[threading.Thread] = None

    def request(self, snapshot: MouseSnapshot) -> Any:
        """Return the controller's raw answer for ``snapshot``.

        Raises
        ------
        ScriptError
            If the controller raises or does not answer in time.
        """
        if self.timeout is None:
            try:
                return self.controller.control(snapshot)
            except (Exception, SystemExit) as exc:
                raise ScriptError(f"control script raised {type(exc).__name__}: {exc}") from exc

        jobs = self._ensure_worker()
        future: Future = Future()
        jobs.put((future, snapshot))
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            # The worker is stuck inside the script; leave it behind.
            self._jobs = None
            self._thread = None
            raise ScriptError(
                f"control script did not return within {self.timeout:g}s"
            ) from None
        except (Exception, SystemExit) as exc:
            raise ScriptError(f"control script raised {type(exc).__name__}: {exc}") from exc

    def close(self) -> None:
        if self._jobs is not None:
            self._jobs.put(None)
        self._jobs = None
        self._thread = None
        self.controller.close()

    def _ensure_worker(self) -> "queue.Queue[Any]":
        if self._jobs is None:
            jobs: "queue.Queue[Any]" = queue.Queue()
            thread = threading.Thread(
                target=self._serve,
                args=(jobs,),
                name="micromouse-controller",
                daemon=True,
            )
            thread.start()
            self._jobs = jobs
            self._thread = thread
        return self._jobs

    def _serve(self, jobs: "queue.Queue[Any]") -> None:
        while True:
            job = jobs.get()
            if job is None:
                return
            future, snapshot = job
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = self.controller.control(snapshot)
            except (Exception, SystemExit) as exc:  # noqa: BLE001
                future.set_exception(exc)
            else:
                future.set_result(result)
