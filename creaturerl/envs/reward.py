"""
Target-reaching reward.

r = -k_dist * ||torso - target||            (proximity cost, skipped without a target)
    + capture_bonus  if distance < capture_radius
    - step_cost                               (every step)
"""
from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass
class RewardConfig:
    distance_penalty: float = 0.001
    capture_radius: float = 1.0
    capture_bonus: float = 1.0
    step_cost: float = 0.001

    def __post_init__(self):
        if self.capture_radius <= 0.0:
            raise ValueError(f"capture_radius must be positive, got {self.capture_radius}")
        if self.distance_penalty < 0.0 or self.step_cost < 0.0:
            raise ValueError("distance_penalty and step_cost are costs and must be >= 0")


@dataclass(frozen=True)
class RewardTerms:
    distance: Optional[float]
    proximity: float
    bonus: float
    step: float

    @property
    def total(self) -> float:
        return self.proximity + self.bonus + self.step

    @property
    def captured(self) -> bool:
        return self.bonus > 0.0


def target_distance(position, target) -> Optional[float]:
    if target is None:
        return None
    return float(np.linalg.norm(np.asarray(target) - np.asarray(position)))


def proximity_cost(distance: Optional[float], k: float) -> float:
    if distance is None:
        return 0.0
    return -distance * k


def reach_reward(position, target, cfg: RewardConfig) -> RewardTerms:
    d = target_distance(position, target)
    bonus = cfg.capture_bonus if (d is not None and d < cfg.capture_radius) else 0.0
    return RewardTerms(
        distance=d,
        proximity=proximity_cost(d, cfg.distance_penalty),
        bonus=bonus,
        step=-cfg.step_cost,
    )
