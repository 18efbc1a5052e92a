"""
Actuation controllers.

PolicyController: every step the action vector overwrites the motor targets of
the live joint slots, physics advances, and the reach reward is scored on the
resulting state.

StaticMotorController: motors keep whatever was drawn at build time; no
reward, never done.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .motors import MotorParameterSource
from .reward import RewardConfig, reach_reward
from .rig import Rig

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    reward: float
    done: bool
    distance: Optional[float] = None
    respawn_target: bool = False


class PolicyController:
    mode = "policy"

    def __init__(self, rig: Rig, motors: MotorParameterSource, reward: Optional[RewardConfig] = None):
        self.rig = rig
        self.motors = motors
        self.reward_cfg = reward or RewardConfig()

    def actuate(self, action) -> None:
        self.motors.apply_action(action)
        self.rig.apply_motors(self.motors)

    def score(self) -> StepResult:
        terms = reach_reward(self.rig.torso_position(), self.rig.target_position(), self.reward_cfg)
        if terms.captured:
            log.info("target captured at distance %.3f", terms.distance)
        return StepResult(
            reward=float(terms.total),
            done=terms.captured,
            distance=terms.distance,
            respawn_target=terms.captured,
        )

    def step(self, action) -> StepResult:
        self.actuate(action)
        self.rig.sim.advance()
        return self.score()


class StaticMotorController:
    mode = "static"

    def __init__(self, rig: Rig, motors: MotorParameterSource, reward: Optional[RewardConfig] = None):
        self.rig = rig
        self.motors = motors

    def actuate(self, action) -> None:
        pass

    def score(self) -> StepResult:
        target = self.rig.target_position()
        distance = None
        if target is not None:
            distance = float(np.linalg.norm(target - self.rig.torso_position()))
        return StepResult(reward=0.0, done=False, distance=distance)

    def step(self, action) -> StepResult:
        self.rig.sim.advance()
        return self.score()


CONTROLLERS = {PolicyController.mode: PolicyController, StaticMotorController.mode: StaticMotorController}
