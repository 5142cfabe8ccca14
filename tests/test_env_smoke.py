from __future__ import annotations

from pathlib import Path

import numpy as np

from micromouse_sim.config import load_maze, load_mouse_config
from micromouse_sim.env import EnvConfig, MicromouseEnv


ROOT = Path(__file__).resolve().parent.parent


def make_env(max_steps: int = 50) -> MicromouseEnv:
    maze = load_maze(str(ROOT / "mazes" / "example.txt"))
    mouse_cfg = load_mouse_config(str(ROOT / "configs" / "mouse.yaml"))
    return MicromouseEnv(maze=maze, mouse_config=mouse_cfg, config=EnvConfig(max_steps=max_steps))


def test_env_one_episode_smoke() -> None:
    env = make_env()
    env.action_space.seed(0)

    obs, info = env.reset()
    assert obs.shape == env.observation_space.shape
    assert info["status"] == "running"

    done = False
    truncated = False
    steps = 0
    while not (done or truncated) and steps < 50:
        action = env.action_space.sample()
        obs, reward, done, truncated, info = env.step(action)
        assert env.observation_space.contains(obs)
        assert np.isfinite(reward)
        steps += 1

    assert steps > 0
    assert "reward_components" in info
    env.close()


def test_env_truncates_at_max_steps() -> None:
    env = make_env(max_steps=3)
    env.reset()
    truncated = False
    for _ in range(3):
        _, _, terminated, truncated, _ = env.step(np.zeros(2, dtype=np.float32))
        assert not terminated
    assert truncated


def test_env_reset_restores_start() -> None:
    env = make_env()
    first, _ = env.reset()
    for _ in range(10):
        env.step(np.array([0.5, 0.5], dtype=np.float32))
    again, info = env.reset()
    assert np.array_equal(first, again)
    assert info["tick"] == 0


def test_env_is_deterministic_across_seeds() -> None:
    env = make_env()
    action = np.array([0.8, 0.6], dtype=np.float32)
    results = []
    for seed in (0, 123):
        obs, _ = env.reset(seed=seed)
        for _ in range(5):
            obs, reward, _, _, _ = env.step(action)
        results.append((obs, reward))
    assert np.array_equal(results[0][0], results[1][0])
    assert results[0][1] == results[1][1]
