from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


# Proximity: penalise hugging walls once the nearest normalized reading drops below this
PROXIMITY_SAFE = 0.1
PROXIMITY_SCALE = 0.05


@dataclass
class RewardComponents:
    """Decomposed reward terms for easier logging and testing."""

    progress: float
    crash_penalty: float
    finish_bonus: float
    action_mag_penalty: float
    proximity_penalty: float = 0.0

    def total(self) -> float:
        """Return weighted sum (the final reward)."""
        return (
            1.0 * self.progress
            + 10.0 * self.finish_bonus
            + 5.0 * self.crash_penalty
            + self.action_mag_penalty
            + self.proximity_penalty
        )

    def as_dict(self) -> Dict[str, float]:
        return {
            "progress": float(self.progress),
            "crash_penalty": float(self.crash_penalty),
            "finish_bonus": float(self.finish_bonus),
            "action_mag_penalty": float(self.action_mag_penalty),
            "proximity_penalty": float(self.proximity_penalty),
        }


def compute_reward(
    *,
    prev_distance: float,
    current_distance: float,
    crashed: bool,
    finished: bool,
    action_norm: float,
    min_reading_normalized: float | None = None,
    cell_size: float = 1.0,
) -> RewardComponents:
    """Compute shaped reward for reaching the maze finish.

    Parameters
    ----------
    prev_distance : float
        Distance to the finish centre at the previous step.
    current_distance : float
        Distance to the finish centre after the current transition.
    crashed : bool
        Whether the mouse hit a wall at this step.
    finished : bool
        Whether the finish region was reached at this step.
    action_norm : float
        L2 norm of the commanded (left, right) power.
    min_reading_normalized : float, optional
        Smallest sensor reading divided by its range.
    cell_size : float
        Progress is measured in cells.
    """
    progress = (prev_distance - current_distance) / cell_size
    crash_penalty = -1.0 if crashed else 0.0
    finish_bonus = 1.0 if finished else 0.0
    action_mag_penalty = -0.01 * action_norm

    proximity_penalty = 0.0
    if min_reading_normalized is not None and min_reading_normalized < PROXIMITY_SAFE:
        proximity_penalty = -PROXIMITY_SCALE * (PROXIMITY_SAFE - min_reading_normalized)

    return RewardComponents(
        progress=progress,
        crash_penalty=crash_penalty,
        finish_bonus=finish_bonus,
        action_mag_penalty=action_mag_penalty,
        proximity_penalty=proximity_penalty,
    )
