from __future__ import annotations

import math

from rl.reward import PROXIMITY_SAFE, compute_reward


def test_reward_progress_and_crash() -> None:
    comps = compute_reward(
        prev_distance=540.0,
        current_distance=360.0,
        crashed=True,
        finished=False,
        action_norm=0.0,
        cell_size=180.0,
    )
    # Progress +1 cell, crash -1 scaled by 5 => -5, total = 1 - 5 = -4
    assert comps.progress == 1.0
    assert comps.crash_penalty == -1.0
    assert comps.finish_bonus == 0.0
    assert comps.total() == -4.0


def test_reward_finish_bonus_and_action_cost() -> None:
    comps = compute_reward(
        prev_distance=10.0,
        current_distance=10.0,
        crashed=False,
        finished=True,
        action_norm=math.sqrt(2.0),
    )
    assert comps.finish_bonus == 1.0
    assert math.isclose(comps.total(), 10.0 - 0.01 * math.sqrt(2.0))


def test_proximity_penalty_only_near_walls() -> None:
    far = compute_reward(
        prev_distance=1.0,
        current_distance=1.0,
        crashed=False,
        finished=False,
        action_norm=0.0,
        min_reading_normalized=PROXIMITY_SAFE + 0.2,
    )
    near = compute_reward(
        prev_distance=1.0,
        current_distance=1.0,
        crashed=False,
        finished=False,
        action_norm=0.0,
        min_reading_normalized=0.0,
    )
    assert far.proximity_penalty == 0.0
    assert near.proximity_penalty < 0.0
    assert set(near.as_dict()) == {
        "progress",
        "crash_penalty",
        "finish_bonus",
        "action_mag_penalty",
        "proximity_penalty",
    }
