from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
import math

import gymnasium as gym
from gymnasium import spaces
import numpy as np

from .maze import Maze
from .mouse import EncoderMode, MouseConfig
from .simulation import DEFAULT_DT, RunStatus, Simulation
from .world import DEFAULT_CELL_SIZE
from rl.reward import compute_reward


@dataclass
class EnvConfig:
    dt: float = DEFAULT_DT
    max_steps: int = 3000
    cell_size: float = DEFAULT_CELL_SIZE
    encoder_mode: EncoderMode = EncoderMode.NET


class MicromouseEnv(gym.Env):
    """Gymnasium-compatible environment driving a micromouse through a maze.

    Action is ``[left_power, right_power]`` in [-1, 1]; the observation is
    every sensor reading divided by that sensor's range.
    """

    metadata = {"render_modes": ["none"], "render_fps": 60}

    def __init__(
        self,
        maze: Maze,
        mouse_config: MouseConfig,
        config: Optional[EnvConfig] = None,
    ) -> None:
        super().__init__()
        self.maze = maze
        self.mouse_config = mouse_config
        self.cfg = config or EnvConfig()

        self.sim = self._new_simulation()
        self._max_ranges = self.sim.sensors.max_ranges.astype(np.float32)
        self._step_count = 0
        self._last_distance = 0.0

        self.observation_space = spaces.Box(
            low=0.0, high=1.0, shape=(len(self.sim.sensors),), dtype=np.float32
        )
        self.action_space = spaces.Box(
            low=np.array([-1.0, -1.0], dtype=np.float32),
            high=np.array([1.0, 1.0], dtype=np.float32),
            dtype=np.float32,
        )

    def _new_simulation(self) -> Simulation:
        return Simulation(
            self.maze,
            self.mouse_config,
            dt=self.cfg.dt,
            cell_size=self.cfg.cell_size,
            encoder_mode=self.cfg.encoder_mode,
        )

    # ------------------------------------------------------------------
    # Gym API
    # ------------------------------------------------------------------
    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        super().reset(seed=seed)
        self.sim.close()
        self.sim = self._new_simulation()
        self._step_count = 0
        self._last_distance = self._finish_distance()
        return self._get_obs(), self._info()

    def step(
        self, action: np.ndarray
    ) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        self._step_count += 1

        action = np.clip(np.asarray(action, dtype=np.float32), -1.0, 1.0)
        status = self.sim.step_with((float(action[0]), float(action[1])))

        crashed = status is RunStatus.CRASHED
        finished = status is RunStatus.FINISHED
        terminated = status.terminal
        truncated = bool(self._step_count >= self.cfg.max_steps and not terminated)

        obs = self._get_obs()
        distance = self._finish_distance()
        reward_components = compute_reward(
            prev_distance=self._last_distance,
            current_distance=distance,
            crashed=crashed,
            finished=finished,
            action_norm=float(np.linalg.norm(action, ord=2)),
            min_reading_normalized=float(obs.min()) if obs.size else None,
            cell_size=self.cfg.cell_size,
        )
        self._last_distance = distance

        info = self._info()
        info["reward_components"] = reward_components.as_dict()
        return obs, float(reward_components.total()), terminated, truncated, info

    def close(self) -> None:
        self.sim.close()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    def _get_obs(self) -> np.ndarray:
        readings = self.sim.sensors.read(self.sim.world, self.sim.pose)
        obs = np.asarray(readings, dtype=np.float32) / self._max_ranges
        return np.clip(obs, 0.0, 1.0)

    def _finish_distance(self) -> float:
        d = self.sim.distance_to_finish()
        # No finish region: progress shaping is zero.
        return 0.0 if math.isinf(d) else d

    def _info(self) -> Dict[str, Any]:
        s = self.sim.state
        return {
            "status": self.sim.status.value,
            "tick": s.tick,
            "left_encoder": s.left_encoder,
            "right_encoder": s.right_encoder,
            "distance_to_finish": self.sim.distance_to_finish(),
        }
